"""
Pytest configuration and shared fixtures.

WHAT: Markers plus a fully wired router over fake backends
WHY: Cache, readiness, router and API tests share the same setup
HOW: Register markers, build InMemoryConfigStore + CredentialCache + ProviderRouter
"""

import pytest

from modelgate.core.config_store import InMemoryConfigStore
from modelgate.llm.auth_cache import CredentialCache
from modelgate.llm.cancellation import CancellationRegistry
from modelgate.llm.router import ProviderRouter
from modelgate.llm.types import BackendConfig, BackendKind, CompletionOptions
from tests.fixtures.mock_llm import FakeAdapter, FakeClock


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def adapters():
    """One fake adapter per backend kind; host needs no credential."""
    return {
        BackendKind.VENDOR: FakeAdapter(BackendKind.VENDOR, name="FakeVendor"),
        BackendKind.AGGREGATOR: FakeAdapter(BackendKind.AGGREGATOR, name="FakeAggregator"),
        BackendKind.HOST: FakeAdapter(BackendKind.HOST, name="FakeHost", requires_credential=False),
    }


@pytest.fixture
def store():
    """Aggregator configured with a key and a selected model."""
    return InMemoryConfigStore(
        configs={
            BackendKind.AGGREGATOR: BackendConfig(
                kind=BackendKind.AGGREGATOR,
                credential="sk-or-test-key",
                selected_model="model-a",
            ),
        },
        active_kind=BackendKind.AGGREGATOR,
    )


@pytest.fixture
def cache(adapters, store, clock):
    return CredentialCache(adapters, store, ttl=300.0, clock=clock)


@pytest.fixture
def provider_router(adapters, store, cache):
    return ProviderRouter(
        adapters,
        store,
        cache,
        registry=CancellationRegistry(),
        default_options=CompletionOptions(temperature=0.5),
    )


# Test data constants
MOCK_STREAMING_CHUNKS = [
    b'data: {"choices":[{"delta":{"content":"Hello"}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":" "}}]}\n\n',
    b'data: {"choices":[{"delta":{"content":"world"}}]}\n\n',
    b'data: {"choices":[{"delta":{},"finish_reason":"stop"}]}\n\n',
    b'data: [DONE]\n\n',
]

MOCK_COMPLETION_RESPONSE = {
    "choices": [{"message": {"content": "Test response"}}],
    "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    "model": "test-model"
}
