"""
Readiness evaluation for a configured backend.

WHAT: Compute which setup steps are still missing for a backend
WHY: Skip network round-trips when configuration and cache already prove readiness
HOW: Explicit decision table over credential, selected model, and cached state
"""

from typing import TYPE_CHECKING

from .auth_cache import CredentialCache
from .provider import BackendAdapter
from .types import AuthStatus, BackendKind, ReadinessReport, VerifyResult
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..core.config_store import ConfigStore

logger = get_logger(__name__)


class ReadinessEvaluator:
    """Performs at most one verification per evaluation."""

    def __init__(
        self,
        adapters: dict[BackendKind, BackendAdapter],
        cache: CredentialCache,
        store: "ConfigStore"
    ):
        self._adapters = adapters
        self._cache = cache
        self._store = store

    async def evaluate(self, kind: BackendKind) -> ReadinessReport:
        kind = BackendKind(kind)
        adapter = self._adapters[kind]
        config = self._store.get(kind)

        if not adapter.is_available():
            return ReadinessReport(
                is_ready=False,
                needs_credential=True,
                needs_authentication=True,
                needs_model_selection=True,
                is_available=False,
            )

        has_credential = config.has_credential or not adapter.requires_credential
        if not has_credential:
            return ReadinessReport(
                is_ready=False,
                needs_credential=True,
                needs_authentication=True,
                needs_model_selection=True,
            )

        needs_model_selection = not config.selected_model
        status = self._cache.effective_status(kind, config)

        if status == AuthStatus.AUTHENTICATED and not needs_model_selection:
            if self._cache.models(kind):
                logger.debug(f"{kind.value} ready from cache, skipping network check")
                return ReadinessReport(
                    is_ready=True,
                    needs_credential=False,
                    needs_authentication=False,
                    needs_model_selection=False,
                    skipped_network_check=True,
                )
            return self._from_verification(await self._cache.verify(kind, force_refresh=False))

        needs_authentication = status != AuthStatus.AUTHENTICATED
        if needs_authentication and not needs_model_selection:
            return self._from_verification(await self._cache.verify(kind, force_refresh=False))

        return ReadinessReport(
            is_ready=not needs_authentication and not needs_model_selection,
            needs_credential=False,
            needs_authentication=needs_authentication,
            needs_model_selection=needs_model_selection,
        )

    @staticmethod
    def _from_verification(result: VerifyResult) -> ReadinessReport:
        return ReadinessReport(
            is_ready=result.authenticated,
            needs_credential=False,
            needs_authentication=not result.authenticated,
            needs_model_selection=False,
            skipped_network_check=result.from_cache,
        )
