"""
Host-capability provider implementation.

WHAT: Chat models supplied by the embedding host process instead of an HTTP API
WHY: Reuse models the host already has access to without a separate credential
HOW: Wrap an injected HostModelRuntime; map its native token streams and errors
"""

from typing import AsyncIterator, Protocol

from .cancellation import GenerationHandle
from .types import (
    AuthenticationError,
    BackendKind,
    ChatMessage,
    CompletionOptions,
    ConfigurationError,
    ModelDescriptor,
    NetworkError,
    ProviderError,
    SpeakerRole,
    UnavailableError,
)
from .wire import to_speaker_role
from ..utils.logger import get_logger

logger = get_logger(__name__)


class HostModelError(Exception):
    """Error raised by the host runtime, tagged with a code."""

    NO_PERMISSIONS = "no_permissions"
    BLOCKED = "blocked"
    NOT_FOUND = "not_found"

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class HostCancellationToken:
    """Cancellation token handed to the host runtime."""

    def __init__(self):
        self.is_cancellation_requested = False

    def cancel(self) -> None:
        self.is_cancellation_requested = True


class HostChatModel(Protocol):
    id: str
    vendor: str
    family: str | None
    version: str | None
    max_input_tokens: int | None

    def send_request(
        self,
        messages: list[dict],
        options: dict,
        token: HostCancellationToken
    ) -> AsyncIterator[str]:
        ...


class HostModelRuntime(Protocol):
    def is_available(self) -> bool:
        ...

    async def select_chat_models(self) -> list[HostChatModel]:
        ...


def host_display_name(model: HostChatModel) -> str:
    family = getattr(model, "family", None)
    version = getattr(model, "version", None)
    if family and version:
        return f"{model.vendor} {family} {version}"
    if family:
        return f"{model.vendor} {family}"
    return f"{model.vendor} {model.id}"


def translate_host_error(error: HostModelError) -> ProviderError:
    """Map a host runtime error onto the provider exception taxonomy."""
    if error.code == HostModelError.NO_PERMISSIONS:
        return AuthenticationError(
            "No permission to access language models. Please authenticate with a language model provider.",
            reason=AuthenticationError.INVALID_CREDENTIAL
        )
    if error.code == HostModelError.BLOCKED:
        return AuthenticationError(
            "Access to language models is blocked.",
            reason=AuthenticationError.FORBIDDEN
        )
    if error.code == HostModelError.NOT_FOUND:
        return ConfigurationError("Selected language model not found.")
    return NetworkError(f"Language model error: {error}")


def to_host_messages(messages: list[ChatMessage]) -> list[dict]:
    """
    Convert messages for the host runtime.

    Host chat models accept only user and assistant turns, so system
    messages are sent as named user turns. Rich content is flattened to text.
    """
    converted = []
    for message in messages:
        role = to_speaker_role(message.role)
        if isinstance(message.content, str):
            content = message.content
        else:
            texts = []
            for part in message.content:
                if isinstance(part, str):
                    texts.append(part)
                elif getattr(part, "type", None) == "text":
                    texts.append(part.text or "")
                else:
                    raise ConfigurationError(
                        f"Unsupported content type for host models: {getattr(part, 'type', part)}"
                    )
            content = "".join(texts)

        if role == SpeakerRole.SYSTEM:
            converted.append({"role": "user", "content": content, "name": "system"})
        else:
            converted.append({"role": role.value, "content": content})
    return converted


class HostModelProvider:
    """Adapter over the host's built-in language model capability."""

    kind = BackendKind.HOST
    name = "Host language model"
    requires_credential = False

    def __init__(self, runtime: HostModelRuntime | None = None):
        self.runtime = runtime

    def is_available(self) -> bool:
        if self.runtime is None:
            return False
        try:
            return bool(self.runtime.is_available())
        except Exception as e:
            logger.warning(f"Host capability probe failed: {e}")
            return False

    def _check_available(self) -> None:
        if not self.is_available():
            raise UnavailableError("Host language model API is not available")

    async def _select_models(self) -> list[HostChatModel]:
        try:
            return list(await self.runtime.select_chat_models())
        except HostModelError as e:
            raise translate_host_error(e) from e

    async def discover_models(self, credential: str | None = None) -> list[ModelDescriptor]:
        """
        List host chat models.

        Raises:
            UnavailableError: Host capability missing
            AuthenticationError: No models, no permission, or blocked
        """
        self._check_available()
        models = await self._select_models()

        if not models:
            raise AuthenticationError(
                "No language models available. Please authenticate with a language model provider."
            )

        descriptors = []
        seen = set()
        for model in models:
            if model.id in seen:
                continue
            seen.add(model.id)
            descriptors.append(ModelDescriptor(
                id=model.id,
                display_name=host_display_name(model),
                context_length=getattr(model, "max_input_tokens", None) or 0,
                capabilities=("chat",),
                vendor=model.vendor,
            ))
        logger.info(f"Host discovery success ({len(descriptors)} models available)")
        return descriptors

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        credential: str | None = None,
        model_id: str | None,
        options: CompletionOptions | None = None,
        cancellation: GenerationHandle | None = None
    ) -> AsyncIterator[str]:
        """
        Stream fragments from a host chat model.

        Raises:
            UnavailableError: Host capability missing
            ConfigurationError: No model selected or model not found
            AuthenticationError: No permission or blocked
            NetworkError: Any other host model error
        """
        options = options or CompletionOptions()
        self._check_available()
        if not model_id:
            raise ConfigurationError("No host language model selected.")

        models = await self._select_models()
        model = next((m for m in models if m.id == model_id), None)
        if model is None:
            raise ConfigurationError(f'Model with ID "{model_id}" not found')

        host_options = {}
        if options.temperature is not None:
            host_options["temperature"] = options.temperature
        if options.max_tokens:
            host_options["maxTokens"] = options.max_tokens

        token = HostCancellationToken()
        if cancellation is not None:
            cancellation.on_cancel(token.cancel)

        count = 0
        try:
            stream = model.send_request(to_host_messages(messages), host_options, token)
            async for fragment in stream:
                if cancellation is not None and cancellation.cancelled:
                    logger.info(f"Host stream cancelled after {count} fragments")
                    return
                if fragment:
                    count += 1
                    yield fragment
        except HostModelError as e:
            raise translate_host_error(e) from e

        logger.info(f"Host completion finished ({count} fragments)")

    async def aclose(self) -> None:
        return None
