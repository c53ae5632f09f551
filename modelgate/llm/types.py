"""
LLM backend types, dataclasses, and exceptions.

WHAT: Standard type definitions shared by adapters, cache, and router
WHY: Ensure consistent contracts across all backends
HOW: Str enums for tags, frozen dataclasses for values, tagged exceptions for errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class BackendKind(str, Enum):
    """Interchangeable backend families."""
    VENDOR = "vendor"
    AGGREGATOR = "aggregator"
    HOST = "host"


class AuthStatus(str, Enum):
    """Authentication state of one backend."""
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SpeakerRole(str, Enum):
    """Who authored a chat message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ErrorKind(str, Enum):
    """Tag carried by every provider error and failed verification."""
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    NETWORK = "network"
    FORMAT = "format"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class BackendConfig:
    """Configuration for one backend as read from the external store."""
    kind: BackendKind
    credential: str | None = None
    selected_model: str | None = None
    auth_status: AuthStatus = AuthStatus.UNKNOWN

    @property
    def has_credential(self) -> bool:
        return bool(self.credential and self.credential.strip())


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing as delivered by the backend."""
    prompt: str = "0"
    completion: str = "0"


@dataclass(frozen=True)
class ModelDescriptor:
    """One model offered by a backend."""
    id: str
    display_name: str
    context_length: int = 0
    pricing: ModelPricing = field(default_factory=ModelPricing)
    capabilities: tuple[str, ...] = ()
    description: str | None = None
    vendor: str | None = None
    max_completion_tokens: int | None = None


@dataclass(frozen=True)
class ContentPart:
    """A typed piece of rich message content (text or image/*)."""
    type: str
    text: str | None = None
    base64: str | None = None


MessageContent = Union[str, tuple[Union[ContentPart, str], ...]]


@dataclass(frozen=True)
class ChatMessage:
    """Rendered chat message handed to the core."""
    role: Union[SpeakerRole, str]
    content: MessageContent


@dataclass(frozen=True)
class CompletionOptions:
    """Sampling options for one completion request."""
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool = True


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a credential/model verification."""
    authenticated: bool
    models: tuple[ModelDescriptor, ...] = ()
    error: str | None = None
    error_kind: ErrorKind | None = None
    from_cache: bool = False


@dataclass(frozen=True)
class ReadinessReport:
    """Setup steps still required before a backend can be used."""
    is_ready: bool
    needs_credential: bool
    needs_authentication: bool
    needs_model_selection: bool
    skipped_network_check: bool = False
    is_available: bool = True


@dataclass(frozen=True)
class BackendStatusReport:
    """Human-oriented summary of one backend."""
    kind: BackendKind
    auth_status: AuthStatus
    credential_configured: bool
    model_count: int
    selected_model: str | None
    selected_model_name: str | None
    is_available: bool
    next_actions: tuple[str, ...] = ()


# Provider exceptions
class ProviderError(Exception):
    """Base class for all backend failures."""

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ProviderError):
    """Credential or model missing before any call is attempted."""

    kind = ErrorKind.CONFIGURATION


class AuthenticationError(ProviderError):
    """Credential rejected (401) or access forbidden (403)."""

    kind = ErrorKind.AUTHENTICATION

    INVALID_CREDENTIAL = "invalid_credential"
    FORBIDDEN = "forbidden"

    def __init__(self, message: str, reason: str = INVALID_CREDENTIAL):
        super().__init__(message)
        self.reason = reason


class NetworkError(ProviderError):
    """Transport failure or non-auth HTTP error."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProviderTimeoutError(NetworkError):
    """Request to provider timed out."""
    pass


class FormatError(ProviderError):
    """Response body does not match the expected shape."""

    kind = ErrorKind.FORMAT


class UnavailableError(ProviderError):
    """Host capability is not present in the running environment."""

    kind = ErrorKind.UNAVAILABLE
