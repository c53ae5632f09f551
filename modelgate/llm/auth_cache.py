"""
Credential/model cache with a time-to-live.

WHAT: Per-backend record of auth status, discovered models, and last verification
WHY: Avoid re-authenticating against a backend that was verified minutes ago
HOW: One entry and one asyncio.Lock per backend kind, injected clock, TTL check
"""

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from .provider import BackendAdapter
from .types import (
    AuthStatus,
    BackendConfig,
    BackendKind,
    ErrorKind,
    ModelDescriptor,
    ProviderError,
    VerifyResult,
)
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from ..core.config_store import ConfigStore

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300.0
EPOCH = 0.0


@dataclass
class AuthCacheEntry:
    """Cached verification state of one backend."""
    status: AuthStatus = AuthStatus.UNKNOWN
    models: tuple[ModelDescriptor, ...] = ()
    last_verified_at: float = EPOCH


class CredentialCache:
    """
    Verified credential/model state for every backend kind.

    Entries are only mutated by this class. ``verify`` serves a fresh,
    authenticated, non-empty entry without touching the adapter; every other
    path performs exactly one discovery call and records its outcome.
    """

    def __init__(
        self,
        adapters: dict[BackendKind, BackendAdapter],
        store: "ConfigStore",
        *,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        trust_external_status: bool = False
    ):
        self._adapters = adapters
        self._store = store
        self.ttl = ttl
        self._clock = clock
        self.trust_external_status = trust_external_status
        self._entries: dict[BackendKind, AuthCacheEntry] = {kind: AuthCacheEntry() for kind in adapters}
        self._locks: dict[BackendKind, asyncio.Lock] = {kind: asyncio.Lock() for kind in adapters}

    def entry(self, kind: BackendKind) -> AuthCacheEntry:
        """Snapshot of the entry for kind."""
        current = self._entries[kind]
        return AuthCacheEntry(current.status, current.models, current.last_verified_at)

    def models(self, kind: BackendKind) -> tuple[ModelDescriptor, ...]:
        return self._entries[kind].models

    def status(self, kind: BackendKind) -> AuthStatus:
        return self._entries[kind].status

    def effective_status(self, kind: BackendKind, config: BackendConfig) -> AuthStatus:
        """
        Status used for readiness decisions.

        With trust_external_status enabled, an empty ``unknown`` entry adopts an
        ``authenticated`` status reported by the external store (for example
        after a process restart). Models are never adopted.
        """
        entry = self._entries[kind]
        if (
            self.trust_external_status
            and entry.status == AuthStatus.UNKNOWN
            and not entry.models
            and config.auth_status == AuthStatus.AUTHENTICATED
        ):
            logger.debug(f"Adopting externally reported authenticated status for {kind.value}")
            return AuthStatus.AUTHENTICATED
        return entry.status

    def is_fresh(self, kind: BackendKind) -> bool:
        """Entry can be served without a network call."""
        entry = self._entries[kind]
        return (
            entry.status == AuthStatus.AUTHENTICATED
            and len(entry.models) > 0
            and (self._clock() - entry.last_verified_at) < self.ttl
        )

    async def verify(self, kind: BackendKind, force_refresh: bool = False) -> VerifyResult:
        """
        Check authentication and discover models, using the cache when possible.

        Args:
            kind: Backend to verify
            force_refresh: Always perform the discovery call

        Returns:
            VerifyResult; failures carry a reason and an ErrorKind tag
        """
        kind = BackendKind(kind)
        adapter = self._adapters[kind]

        async with self._locks[kind]:
            config = self._store.get(kind)

            if not adapter.is_available():
                message = f"{adapter.name} API is not available"
                logger.warning(message)
                await self._record_failure(kind)
                return VerifyResult(False, (), message, ErrorKind.UNAVAILABLE)

            if adapter.requires_credential and not config.has_credential:
                message = f"No API key provided. Please set your {adapter.name} API key in settings."
                await self._record_failure(kind)
                return VerifyResult(False, (), message, ErrorKind.CONFIGURATION)

            if not force_refresh and self.is_fresh(kind):
                logger.debug(f"Using cached authentication for {kind.value}")
                return VerifyResult(True, self._entries[kind].models, from_cache=True)

            try:
                models = await adapter.discover_models(config.credential)
            except ProviderError as e:
                logger.warning(f"{adapter.name} verification failed ({e.kind.value}): {e.message}")
                await self._record_failure(kind)
                return VerifyResult(False, (), e.message, e.kind)

            # The credential may be replaced while discovery is awaited; its result
            # must not become trust for the new one.
            if self._store.get(kind).credential != config.credential:
                message = f"{adapter.name} credential changed during verification"
                logger.info(f"{message}, discarding result")
                return VerifyResult(False, (), message, ErrorKind.CONFIGURATION)

            entry = self._entries[kind]
            entry.models = tuple(models)
            entry.status = AuthStatus.AUTHENTICATED
            entry.last_verified_at = max(entry.last_verified_at, self._clock())
            await self._store.set_auth_status(kind, AuthStatus.AUTHENTICATED)

            logger.info(f"{adapter.name} authenticated ({len(models)} models)")
            return VerifyResult(True, entry.models)

    async def invalidate(self, kind: BackendKind) -> None:
        """Drop trust after a failure so the next call re-verifies."""
        async with self._locks[kind]:
            await self._record_failure(kind)

    async def clear(self, kind: BackendKind) -> None:
        """Reset kind to {unknown, no models, epoch}; waits for an in-flight verify."""
        async with self._locks[kind]:
            self._entries[kind] = AuthCacheEntry()
        logger.info(f"Authentication cache cleared for {kind.value}")

    async def _record_failure(self, kind: BackendKind) -> None:
        entry = self._entries[kind]
        entry.status = AuthStatus.UNAUTHENTICATED
        entry.models = ()
        await self._store.set_auth_status(kind, AuthStatus.UNAUTHENTICATED)
