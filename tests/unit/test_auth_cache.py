"""
Unit tests for the credential/model cache.

WHAT: TTL behaviour, failure recording, clear/invalidate, trust shortcut
WHY: The cache decides when backends are contacted at all
HOW: Fake clock and call-counting fake adapters
"""

import asyncio

import pytest

from modelgate.core.config_store import InMemoryConfigStore
from modelgate.llm.auth_cache import EPOCH, CredentialCache
from modelgate.llm.types import (
    AuthenticationError,
    AuthStatus,
    BackendConfig,
    BackendKind,
    ErrorKind,
    FormatError,
    NetworkError,
)

AGG = BackendKind.AGGREGATOR


@pytest.mark.unit
class TestVerify:
    """verify() decision order."""

    @pytest.mark.asyncio
    async def test_missing_credential_is_configuration_failure(self, cache, adapters, store):
        """No credential: failure without any transport call."""
        result = await cache.verify(BackendKind.VENDOR)

        assert result.authenticated is False
        assert result.models == ()
        assert result.error_kind == ErrorKind.CONFIGURATION
        assert "No API key provided" in result.error
        assert adapters[BackendKind.VENDOR].discover_calls == 0
        assert cache.status(BackendKind.VENDOR) == AuthStatus.UNAUTHENTICATED
        assert store.get(BackendKind.VENDOR).auth_status == AuthStatus.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_first_verification_calls_backend_once(self, cache, adapters, store, clock):
        result = await cache.verify(AGG)

        assert result.authenticated is True
        assert result.from_cache is False
        assert [m.id for m in result.models] == ["model-a", "model-b"]
        assert adapters[AGG].discover_calls == 1
        assert cache.entry(AGG).last_verified_at == clock.now
        assert store.get(AGG).auth_status == AuthStatus.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_uses_cache(self, cache, adapters, clock):
        first = await cache.verify(AGG)
        clock.advance(60)
        second = await cache.verify(AGG)

        assert adapters[AGG].discover_calls == 1
        assert second.from_cache is True
        assert second.models == first.models

    @pytest.mark.asyncio
    async def test_expired_entry_is_reverified(self, cache, adapters, clock):
        await cache.verify(AGG)
        clock.advance(300)
        result = await cache.verify(AGG)

        assert adapters[AGG].discover_calls == 2
        assert result.from_cache is False

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, cache, adapters):
        await cache.verify(AGG)
        await cache.verify(AGG, force_refresh=True)

        assert adapters[AGG].discover_calls == 2

    @pytest.mark.asyncio
    async def test_zero_ttl_always_calls_backend(self, adapters, store, clock):
        cache = CredentialCache(adapters, store, ttl=0.0, clock=clock)

        for _ in range(3):
            await cache.verify(AGG)

        assert adapters[AGG].discover_calls == 3

    @pytest.mark.asyncio
    async def test_empty_model_list_is_never_served_from_cache(self, cache, adapters):
        adapters[AGG].models = []

        await cache.verify(AGG)
        await cache.verify(AGG)

        assert adapters[AGG].discover_calls == 2

    @pytest.mark.asyncio
    async def test_rejected_credential(self, cache, adapters, store):
        adapters[AGG].discover_error = AuthenticationError(
            "Invalid API key. Please check your OpenRouter API key."
        )

        result = await cache.verify(AGG)

        assert result.authenticated is False
        assert result.error_kind == ErrorKind.AUTHENTICATION
        assert "Invalid API key" in result.error
        assert cache.status(AGG) == AuthStatus.UNAUTHENTICATED
        assert cache.models(AGG) == ()
        assert store.get(AGG).auth_status == AuthStatus.UNAUTHENTICATED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error, kind", [
        (NetworkError("OpenRouter API error (500): boom", status_code=500), ErrorKind.NETWORK),
        (FormatError("Invalid response format from OpenRouter API"), ErrorKind.FORMAT),
    ])
    async def test_failure_reason_is_tagged(self, cache, adapters, error, kind):
        adapters[AGG].discover_error = error

        result = await cache.verify(AGG)

        assert result.error_kind == kind
        assert result.error == error.message

    @pytest.mark.asyncio
    async def test_failure_after_success_clears_models_keeps_timestamp(self, cache, adapters, clock):
        await cache.verify(AGG)
        verified_at = cache.entry(AGG).last_verified_at

        clock.advance(10)
        adapters[AGG].discover_error = NetworkError("down")
        await cache.verify(AGG, force_refresh=True)

        entry = cache.entry(AGG)
        assert entry.status == AuthStatus.UNAUTHENTICATED
        assert entry.models == ()
        assert entry.last_verified_at == verified_at

    @pytest.mark.asyncio
    async def test_timestamp_never_moves_backwards(self, cache, clock):
        await cache.verify(AGG)
        verified_at = cache.entry(AGG).last_verified_at

        clock.now -= 100
        await cache.verify(AGG, force_refresh=True)

        assert cache.entry(AGG).last_verified_at == verified_at

    @pytest.mark.asyncio
    async def test_unavailable_backend(self, cache, adapters, store):
        adapters[BackendKind.HOST].available = False

        result = await cache.verify(BackendKind.HOST)

        assert result.authenticated is False
        assert result.error_kind == ErrorKind.UNAVAILABLE
        assert adapters[BackendKind.HOST].discover_calls == 0
        assert store.get(BackendKind.HOST).auth_status == AuthStatus.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_backend_without_credential_requirement(self, cache, adapters):
        result = await cache.verify(BackendKind.HOST)

        assert result.authenticated is True
        assert adapters[BackendKind.HOST].discover_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_verifications_share_one_call(self, cache, adapters):
        results = await asyncio.gather(*(cache.verify(AGG) for _ in range(5)))

        assert all(result.authenticated for result in results)
        assert adapters[AGG].discover_calls == 1


@pytest.mark.unit
class TestClearAndInvalidate:

    @pytest.mark.asyncio
    async def test_clear_resets_entry(self, cache, adapters):
        await cache.verify(AGG)

        await cache.clear(AGG)

        entry = cache.entry(AGG)
        assert entry.status == AuthStatus.UNKNOWN
        assert entry.models == ()
        assert entry.last_verified_at == EPOCH

        await cache.verify(AGG)
        assert adapters[AGG].discover_calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_reverification(self, cache, adapters, store):
        await cache.verify(AGG)
        verified_at = cache.entry(AGG).last_verified_at

        await cache.invalidate(AGG)

        entry = cache.entry(AGG)
        assert entry.status == AuthStatus.UNAUTHENTICATED
        assert entry.models == ()
        assert entry.last_verified_at == verified_at
        assert store.get(AGG).auth_status == AuthStatus.UNAUTHENTICATED

        await cache.verify(AGG)
        assert adapters[AGG].discover_calls == 2

    @pytest.mark.asyncio
    async def test_entry_is_a_snapshot(self, cache):
        await cache.verify(AGG)
        snapshot = cache.entry(AGG)

        await cache.clear(AGG)

        assert snapshot.status == AuthStatus.AUTHENTICATED

    @pytest.mark.asyncio
    async def test_clear_waits_for_in_flight_verify(self, cache, adapters, store):
        """A credential replaced mid-verify is never trusted on the old result."""
        gate = asyncio.Event()
        adapters[AGG].discover_gate = gate
        in_flight = asyncio.create_task(cache.verify(AGG))
        await asyncio.sleep(0)
        assert adapters[AGG].discover_calls == 1

        await store.set_credential(AGG, "sk-or-new-key")
        clearing = asyncio.create_task(cache.clear(AGG))
        await asyncio.sleep(0)
        assert not clearing.done()

        gate.set()
        stale = await in_flight
        await clearing

        assert stale.authenticated is False
        assert stale.error_kind == ErrorKind.CONFIGURATION
        assert cache.status(AGG) == AuthStatus.UNKNOWN
        assert store.get(AGG).auth_status != AuthStatus.AUTHENTICATED

        adapters[AGG].discover_gate = None
        result = await cache.verify(AGG)

        assert result.authenticated is True
        assert result.from_cache is False
        assert adapters[AGG].discover_calls == 2

    @pytest.mark.asyncio
    async def test_result_for_replaced_credential_is_discarded(self, cache, adapters, store):
        gate = asyncio.Event()
        adapters[AGG].discover_gate = gate
        in_flight = asyncio.create_task(cache.verify(AGG))
        await asyncio.sleep(0)

        await store.set_credential(AGG, "sk-or-new-key")
        gate.set()
        result = await in_flight

        assert result.authenticated is False
        assert cache.status(AGG) == AuthStatus.UNKNOWN
        assert cache.models(AGG) == ()


@pytest.mark.unit
class TestEffectiveStatus:
    """Adopting an externally reported status."""

    @pytest.fixture
    def trusted_store(self):
        return InMemoryConfigStore(configs={
            AGG: BackendConfig(
                kind=AGG,
                credential="sk-or-test-key",
                selected_model="model-a",
                auth_status=AuthStatus.AUTHENTICATED,
            ),
        })

    def test_external_status_ignored_by_default(self, adapters, trusted_store, clock):
        cache = CredentialCache(adapters, trusted_store, clock=clock)

        assert cache.effective_status(AGG, trusted_store.get(AGG)) == AuthStatus.UNKNOWN

    def test_external_status_adopted_when_trusted(self, adapters, trusted_store, clock):
        cache = CredentialCache(adapters, trusted_store, clock=clock, trust_external_status=True)

        assert cache.effective_status(AGG, trusted_store.get(AGG)) == AuthStatus.AUTHENTICATED
        assert cache.status(AGG) == AuthStatus.UNKNOWN
        assert cache.models(AGG) == ()

    @pytest.mark.asyncio
    async def test_in_memory_failure_wins_over_external_status(self, adapters, trusted_store, clock):
        cache = CredentialCache(adapters, trusted_store, clock=clock, trust_external_status=True)
        adapters[AGG].discover_error = AuthenticationError("Invalid API key.")

        await cache.verify(AGG)

        assert cache.effective_status(AGG, trusted_store.get(AGG)) == AuthStatus.UNAUTHENTICATED
