"""LLM provider routing layer."""

from .types import (
    AuthStatus,
    BackendConfig,
    BackendKind,
    BackendStatusReport,
    ChatMessage,
    CompletionOptions,
    ContentPart,
    ErrorKind,
    ModelDescriptor,
    ModelPricing,
    ReadinessReport,
    SpeakerRole,
    VerifyResult,
    ProviderError,
    ConfigurationError,
    AuthenticationError,
    NetworkError,
    ProviderTimeoutError,
    FormatError,
    UnavailableError,
)
from .provider import BackendAdapter
from .cancellation import CancellationRegistry, GenerationHandle
from .auth_cache import CredentialCache
from .router import ProviderRouter
from .provider_factory import create_router

__all__ = [
    "AuthStatus",
    "BackendConfig",
    "BackendKind",
    "BackendStatusReport",
    "ChatMessage",
    "CompletionOptions",
    "ContentPart",
    "ErrorKind",
    "ModelDescriptor",
    "ModelPricing",
    "ReadinessReport",
    "SpeakerRole",
    "VerifyResult",
    "ProviderError",
    "ConfigurationError",
    "AuthenticationError",
    "NetworkError",
    "ProviderTimeoutError",
    "FormatError",
    "UnavailableError",
    "BackendAdapter",
    "CancellationRegistry",
    "GenerationHandle",
    "CredentialCache",
    "ProviderRouter",
    "create_router",
]
