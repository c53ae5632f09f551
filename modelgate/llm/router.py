"""
Provider router: the single entry point for chat completions.

WHAT: Pick the adapter for a backend, apply the cache policy, return a normalized stream
WHY: Callers send prompts without knowing which backend is active
HOW: Owns the credential cache, cancellation registry, and readiness evaluator
"""

from typing import TYPE_CHECKING, AsyncIterator

from .auth_cache import CredentialCache
from .cancellation import CancellationRegistry, guard_stream
from .provider import BackendAdapter
from .readiness import ReadinessEvaluator
from .types import (
    AuthenticationError,
    AuthStatus,
    BackendKind,
    BackendStatusReport,
    ChatMessage,
    CompletionOptions,
    ConfigurationError,
    ErrorKind,
    FormatError,
    NetworkError,
    ProviderError,
    ReadinessReport,
    SpeakerRole,
    UnavailableError,
    VerifyResult,
)
from ..utils.logger import get_logger, mask_secret

if TYPE_CHECKING:
    from ..core.config_store import ConfigStore

logger = get_logger(__name__)

PROBE_PROMPT = "Hello! Please respond with a brief greeting."

# Suggested next steps reported by status()
ACTION_CONFIGURE_CREDENTIAL = "configure_credential"
ACTION_CHECK_AUTHENTICATION = "check_authentication"
ACTION_SELECT_MODEL = "select_model"

# Error raised when the verification before a first generation fails
VERIFY_ERRORS = {
    ErrorKind.CONFIGURATION: ConfigurationError,
    ErrorKind.AUTHENTICATION: AuthenticationError,
    ErrorKind.FORMAT: FormatError,
    ErrorKind.UNAVAILABLE: UnavailableError,
}


class ProviderRouter:
    """Routes requests to backend adapters behind one uniform interface."""

    def __init__(
        self,
        adapters: dict[BackendKind, BackendAdapter],
        store: "ConfigStore",
        cache: CredentialCache,
        *,
        registry: CancellationRegistry | None = None,
        default_options: CompletionOptions | None = None
    ):
        self.adapters = adapters
        self.store = store
        self.cache = cache
        self.registry = registry or CancellationRegistry()
        self.readiness = ReadinessEvaluator(adapters, cache, store)
        self.default_options = default_options or CompletionOptions()

    def resolve_kind(self, kind: BackendKind | str | None = None) -> BackendKind:
        if kind is None:
            return self.store.get_active_kind()
        try:
            resolved = BackendKind(kind)
        except ValueError:
            raise ConfigurationError(f"Unsupported language model provider: {kind}")
        if resolved not in self.adapters:
            raise ConfigurationError(f"No adapter registered for provider: {resolved.value}")
        return resolved

    def adapter(self, kind: BackendKind | str | None = None) -> BackendAdapter:
        return self.adapters[self.resolve_kind(kind)]

    async def verify(self, kind: BackendKind | str | None = None, force_refresh: bool = False) -> VerifyResult:
        return await self.cache.verify(self.resolve_kind(kind), force_refresh=force_refresh)

    async def check_readiness(self, kind: BackendKind | str | None = None) -> ReadinessReport:
        return await self.readiness.evaluate(self.resolve_kind(kind))

    async def clear_cache(self, kind: BackendKind | str | None = None) -> None:
        await self.cache.clear(self.resolve_kind(kind))

    async def set_active_kind(self, kind: BackendKind | str) -> BackendKind:
        resolved = self.resolve_kind(kind)
        await self.store.set_active_kind(resolved)
        return resolved

    async def set_credential(self, kind: BackendKind | str | None, credential: str | None) -> None:
        """Store a new credential; the cache entry is cleared so it is re-verified."""
        resolved = self.resolve_kind(kind)
        await self.store.set_credential(resolved, credential)
        await self.cache.clear(resolved)
        logger.info(f"Credential updated for {resolved.value} ({mask_secret(credential)})")

    async def select_model(self, kind: BackendKind | str | None, model_id: str) -> None:
        """
        Record the selected model.

        Raises:
            ConfigurationError: model_id is not among the cached models
        """
        resolved = self.resolve_kind(kind)
        models = self.cache.models(resolved)
        if models and model_id not in {model.id for model in models}:
            raise ConfigurationError(f'Model with ID "{model_id}" not found')
        await self.store.set_selected_model(resolved, model_id)

    def status(self, kind: BackendKind | str | None = None) -> BackendStatusReport:
        resolved = self.resolve_kind(kind)
        adapter = self.adapters[resolved]
        config = self.store.get(resolved)
        models = self.cache.models(resolved)
        auth_status = self.cache.status(resolved)

        selected_name = None
        if config.selected_model:
            match = next((m for m in models if m.id == config.selected_model), None)
            selected_name = match.display_name if match else config.selected_model

        actions = []
        credential_configured = config.has_credential or not adapter.requires_credential
        if not credential_configured:
            actions.append(ACTION_CONFIGURE_CREDENTIAL)
        elif auth_status != AuthStatus.AUTHENTICATED:
            actions.append(ACTION_CHECK_AUTHENTICATION)
        if auth_status == AuthStatus.AUTHENTICATED and models:
            actions.append(ACTION_SELECT_MODEL)

        return BackendStatusReport(
            kind=resolved,
            auth_status=auth_status,
            credential_configured=credential_configured,
            model_count=len(models),
            selected_model=config.selected_model,
            selected_model_name=selected_name,
            is_available=adapter.is_available(),
            next_actions=tuple(actions),
        )

    def stream(
        self,
        messages: list[ChatMessage],
        *,
        kind: BackendKind | str | None = None,
        model_id: str | None = None,
        options: CompletionOptions | None = None,
        exclusive: bool = False
    ) -> AsyncIterator[str]:
        """
        Start a completion and return its fragment stream.

        Configuration and cached authentication are checked eagerly, so a
        missing credential or model, or a backend whose last verification
        failed, is raised here before any transport call. A backend that was
        never verified is verified once when the stream is first pulled.

        The generation is registered for cancellation when the stream starts
        and released when it ends, so a stream that is never iterated holds
        no handle. It stops cleanly when its handle (or abort_all) cancels it.

        Args:
            messages: Rendered conversation
            kind: Backend to use (defaults to the active backend)
            model_id: Overrides the selected model
            options: Sampling options (defaults to the router's)
            exclusive: Cancel every in-flight generation first

        Raises:
            ConfigurationError: Missing credential or model, unknown backend
            AuthenticationError: The cached verification of the backend failed
        """
        resolved = self.resolve_kind(kind)
        adapter = self.adapters[resolved]
        config = self.store.get(resolved)

        if adapter.requires_credential and not config.has_credential:
            raise ConfigurationError(f"No {adapter.name} API key configured")
        model_to_use = model_id or config.selected_model
        if not model_to_use:
            raise ConfigurationError(f"No {adapter.name} model selected")

        auth_status = self.cache.effective_status(resolved, config)
        if auth_status == AuthStatus.UNAUTHENTICATED:
            raise AuthenticationError(
                f"{adapter.name} is not authenticated. Check your API key and verify again."
            )

        if exclusive:
            self.registry.cancel_all()

        logger.info(f"Starting {resolved.value} generation (model: {model_to_use})")
        return self._run(
            adapter,
            resolved,
            messages,
            credential=config.credential,
            model_id=model_to_use,
            options=options or self.default_options,
            needs_verification=auth_status == AuthStatus.UNKNOWN,
        )

    async def _ensure_authenticated(self, adapter: BackendAdapter, kind: BackendKind) -> None:
        result = await self.cache.verify(kind, force_refresh=False)
        if not result.authenticated:
            error_type = VERIFY_ERRORS.get(result.error_kind, NetworkError)
            raise error_type(result.error or f"{adapter.name} authentication failed")

    async def _run(
        self,
        adapter: BackendAdapter,
        kind: BackendKind,
        messages: list[ChatMessage],
        *,
        credential: str | None,
        model_id: str,
        options: CompletionOptions,
        needs_verification: bool
    ) -> AsyncIterator[str]:
        handle = self.registry.register()
        try:
            if needs_verification:
                await self._ensure_authenticated(adapter, kind)
            source = adapter.complete(
                messages,
                credential=credential,
                model_id=model_id,
                options=options,
                cancellation=handle,
            )
            async for fragment in guard_stream(source, handle):
                yield fragment
        except ProviderError as e:
            logger.error(f"{adapter.name} generation failed ({e.kind.value}): {e.message}")
            if e.kind != ErrorKind.CONFIGURATION:
                await self.cache.invalidate(kind)
            raise
        finally:
            self.registry.release(handle)
            if handle.cancelled:
                logger.info(f"{adapter.name} generation cancelled")

    async def complete_text(self, messages: list[ChatMessage], **kwargs) -> str:
        """Run a completion to the end and join its fragments."""
        return "".join([fragment async for fragment in self.stream(messages, **kwargs)])

    async def test_configuration(self, kind: BackendKind | str | None = None) -> str:
        """Send a short probe prompt through the backend and return the reply."""
        probe = [ChatMessage(role=SpeakerRole.USER, content=PROBE_PROMPT)]
        return await self.complete_text(
            probe,
            kind=kind,
            options=CompletionOptions(
                temperature=self.default_options.temperature,
                max_tokens=self.default_options.max_tokens,
                stream=True,
            ),
        )

    def abort_all(self) -> int:
        return self.registry.cancel_all()

    async def aclose(self) -> None:
        self.registry.cancel_all()
        for adapter in self.adapters.values():
            await adapter.aclose()
