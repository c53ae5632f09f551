"""
Router factory.

WHAT: Build a fully wired ProviderRouter from settings
WHY: Centralize adapter construction without module-level singletons
HOW: One adapter per BackendKind, shared store, cache and registry per router
"""

import time
from typing import TYPE_CHECKING, Callable

from .auth_cache import CredentialCache
from .cancellation import CancellationRegistry
from .host_provider import HostModelProvider, HostModelRuntime
from .openai_provider import OpenAIProvider
from .openrouter import OpenRouterProvider
from .provider import BackendAdapter
from .router import ProviderRouter
from .types import BackendKind, CompletionOptions
from ..core.config import Settings
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..core.config_store import ConfigStore

logger = get_logger(__name__)


def create_adapters(
    settings: Settings,
    host_runtime: HostModelRuntime | None = None
) -> dict[BackendKind, BackendAdapter]:
    """Instantiate one adapter per backend kind."""
    timeouts = {
        "connect_timeout": settings.LLM_CONNECT_TIMEOUT,
        "read_timeout": settings.LLM_READ_TIMEOUT,
    }
    return {
        BackendKind.VENDOR: OpenAIProvider(
            settings.OPENAI_BASE_URL,
            organization=settings.OPENAI_ORGANIZATION or None,
            **timeouts
        ),
        BackendKind.AGGREGATOR: OpenRouterProvider(
            settings.OPENROUTER_BASE_URL,
            app_name=settings.APP_NAME,
            referer=settings.OPENROUTER_REFERER,
            **timeouts
        ),
        BackendKind.HOST: HostModelProvider(host_runtime),
    }


def create_router(
    settings: Settings,
    *,
    store: "ConfigStore | None" = None,
    adapters: dict[BackendKind, BackendAdapter] | None = None,
    host_runtime: HostModelRuntime | None = None,
    clock: Callable[[], float] | None = None
) -> ProviderRouter:
    """
    Build a ProviderRouter.

    Args:
        settings: Application settings
        store: External configuration store (defaults to one seeded from settings)
        adapters: Pre-built adapters (defaults to create_adapters)
        host_runtime: Host model capability, if the environment offers one
        clock: Time source for the credential cache

    Returns:
        ProviderRouter owning its own cache and cancellation registry
    """
    if store is None:
        from ..core.config_store import InMemoryConfigStore
        store = InMemoryConfigStore.from_settings(settings)
    adapters = adapters or create_adapters(settings, host_runtime)

    cache = CredentialCache(
        adapters,
        store,
        ttl=settings.LLM_AUTH_CACHE_TTL,
        clock=clock or time.time,
        trust_external_status=settings.LLM_TRUST_EXTERNAL_AUTH_STATUS,
    )

    router = ProviderRouter(
        adapters,
        store,
        cache,
        registry=CancellationRegistry(),
        default_options=CompletionOptions(
            temperature=settings.LLM_DEFAULT_TEMPERATURE,
            max_tokens=settings.LLM_DEFAULT_MAX_TOKENS or None,
        ),
    )
    logger.info(f"Provider router initialized (active: {store.get_active_kind().value})")
    return router
