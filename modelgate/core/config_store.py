"""
Backend configuration store boundary.

WHAT: Read per-backend credential/model/status and write back status and selections
WHY: Persistence belongs to the host application, not the routing core
HOW: ConfigStore protocol plus an in-memory implementation seeded from Settings
"""

from dataclasses import replace
from typing import Protocol

from ..llm.types import AuthStatus, BackendConfig, BackendKind
from ..utils.logger import get_logger
from .config import Settings

logger = get_logger(__name__)


class ConfigStore(Protocol):
    """External configuration store as seen by the core."""

    def get(self, kind: BackendKind) -> BackendConfig:
        ...

    def get_active_kind(self) -> BackendKind:
        ...

    async def set_active_kind(self, kind: BackendKind) -> None:
        ...

    async def set_auth_status(self, kind: BackendKind, status: AuthStatus) -> None:
        ...

    async def set_selected_model(self, kind: BackendKind, model_id: str | None) -> None:
        ...

    async def set_credential(self, kind: BackendKind, credential: str | None) -> None:
        ...


class InMemoryConfigStore:
    """Volatile ConfigStore used by the service and by tests."""

    def __init__(
        self,
        configs: dict[BackendKind, BackendConfig] | None = None,
        active_kind: BackendKind = BackendKind.AGGREGATOR
    ):
        self._configs = {kind: BackendConfig(kind=kind) for kind in BackendKind}
        for kind, config in (configs or {}).items():
            self._configs[kind] = config
        self._active_kind = active_kind

    @classmethod
    def from_settings(cls, settings: Settings) -> "InMemoryConfigStore":
        """Seed credentials and default models from application settings."""
        return cls(
            configs={
                BackendKind.VENDOR: BackendConfig(
                    kind=BackendKind.VENDOR,
                    credential=settings.OPENAI_API_KEY or None,
                    selected_model=settings.OPENAI_DEFAULT_MODEL or None,
                ),
                BackendKind.AGGREGATOR: BackendConfig(
                    kind=BackendKind.AGGREGATOR,
                    credential=settings.OPENROUTER_API_KEY or None,
                    selected_model=settings.OPENROUTER_DEFAULT_MODEL or None,
                ),
                BackendKind.HOST: BackendConfig(
                    kind=BackendKind.HOST,
                    selected_model=settings.HOST_DEFAULT_MODEL or None,
                ),
            },
            active_kind=BackendKind(settings.LLM_PROVIDER),
        )

    def get(self, kind: BackendKind) -> BackendConfig:
        return self._configs[BackendKind(kind)]

    def get_active_kind(self) -> BackendKind:
        return self._active_kind

    async def set_active_kind(self, kind: BackendKind) -> None:
        self._active_kind = BackendKind(kind)
        logger.info(f"Active backend set to {self._active_kind.value}")

    async def set_auth_status(self, kind: BackendKind, status: AuthStatus) -> None:
        self._configs[kind] = replace(self._configs[kind], auth_status=status)

    async def set_selected_model(self, kind: BackendKind, model_id: str | None) -> None:
        self._configs[kind] = replace(self._configs[kind], selected_model=model_id or None)
        logger.info(f"Selected model for {kind.value}: {model_id}")

    async def set_credential(self, kind: BackendKind, credential: str | None) -> None:
        self._configs[kind] = replace(self._configs[kind], credential=credential or None)
