"""
Backend adapter protocol definition.

WHAT: Abstract interface every backend adapter implements
WHY: Decouple the router and cache from specific backend wire protocols
HOW: Protocol with availability probe, model discovery, and streaming completion
"""

from typing import AsyncIterator, Protocol

from .cancellation import GenerationHandle
from .types import BackendKind, ChatMessage, CompletionOptions, ModelDescriptor


class BackendAdapter(Protocol):
    """Protocol defining the interface all backend adapters must implement."""

    kind: BackendKind
    name: str
    requires_credential: bool

    def is_available(self) -> bool:
        """Whether the backend exists in this environment (no I/O)."""
        ...

    async def discover_models(self, credential: str | None) -> list[ModelDescriptor]:
        """List models, proving the credential is accepted."""
        ...

    def complete(
        self,
        messages: list[ChatMessage],
        *,
        credential: str | None,
        model_id: str | None,
        options: CompletionOptions | None = None,
        cancellation: GenerationHandle | None = None
    ) -> AsyncIterator[str]:
        """Stream completion text fragments."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        ...
