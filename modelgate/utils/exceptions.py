"""
API-level exceptions.

WHAT: Request errors raised by the HTTP layer itself (not by backends)
WHY: Consistent error bodies next to the provider error taxonomy
HOW: APIException base carrying a code and details, one subclass per case
"""

from typing import Any, Optional


class APIException(Exception):
    """Base class for API exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class UnknownBackendError(APIException):
    """Raised when a path names a backend kind that does not exist."""

    def __init__(self, kind: str, known: list[str]):
        super().__init__(
            message=f"Unknown backend: {kind}",
            code="UNKNOWN_BACKEND",
            details={"kind": kind, "known": known}
        )


class ValidationError(APIException):
    """Raised for request payloads that pass schema checks but are still unusable."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else None
        )
