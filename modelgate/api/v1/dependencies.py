"""
Shared FastAPI dependencies for v1 endpoints.

WHAT: Access the application's ProviderRouter and parse backend kinds
WHY: Endpoints must not create routers or caches of their own
HOW: The router lives on app.state, created by the application lifespan
"""

from fastapi import Request

from ...llm.router import ProviderRouter
from ...llm.types import BackendKind
from ...utils.exceptions import UnknownBackendError


def get_router(request: Request) -> ProviderRouter:
    return request.app.state.router


def parse_kind(kind: str) -> BackendKind:
    """Convert a path or body value to a BackendKind (404 when unknown)."""
    try:
        return BackendKind(kind)
    except ValueError:
        raise UnknownBackendError(kind, [k.value for k in BackendKind])
