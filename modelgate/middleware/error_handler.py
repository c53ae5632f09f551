"""
Global error handling middleware.

WHAT: Translate provider and API exceptions to HTTP responses
WHY: Consistent error bodies with status codes that reflect the failure kind
HOW: FastAPI exception handlers per exception class
"""

from datetime import datetime

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..llm.types import (
    AuthenticationError,
    ConfigurationError,
    FormatError,
    NetworkError,
    ProviderError,
    ProviderTimeoutError,
    UnavailableError,
)
from ..utils.exceptions import APIException, UnknownBackendError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _provider_error_response(status_code: int, error: str, exc: ProviderError, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "kind": exc.kind.value,
            "message": exc.message,
            "detail": detail,
            "timestamp": datetime.now().isoformat()
        }
    )


async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """
    Handle ConfigurationError.

    WHAT: Credential or model missing, unknown model or content type
    WHY: Caller must fix configuration before retrying
    HOW: Return 400
    """
    logger.warning(f"LLM configuration error: {exc.message}")
    return _provider_error_response(
        status.HTTP_400_BAD_REQUEST,
        "LLM_CONFIGURATION",
        exc,
        "Check the backend credential and selected model"
    )


async def authentication_error_handler(request: Request, exc: AuthenticationError):
    """
    Handle AuthenticationError.

    WHAT: Backend rejected the credential or the account is blocked
    WHY: 401 and 403 mean different things to the caller
    HOW: Return 403 for forbidden, 401 otherwise
    """
    logger.warning(f"LLM authentication error ({exc.reason}): {exc.message}")
    if exc.reason == AuthenticationError.FORBIDDEN:
        return _provider_error_response(status.HTTP_403_FORBIDDEN, "LLM_FORBIDDEN", exc, "Check account status")
    return _provider_error_response(
        status.HTTP_401_UNAUTHORIZED,
        "LLM_UNAUTHORIZED",
        exc,
        "Check the backend API key"
    )


async def unavailable_error_handler(request: Request, exc: UnavailableError):
    logger.error(f"LLM backend unavailable: {exc.message}")
    return _provider_error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "LLM_UNAVAILABLE",
        exc,
        "Backend is not present in this environment"
    )


async def provider_timeout_handler(request: Request, exc: ProviderTimeoutError):
    logger.error(f"LLM timeout: {exc.message}")
    return _provider_error_response(
        status.HTTP_504_GATEWAY_TIMEOUT,
        "LLM_TIMEOUT",
        exc,
        "LLM backend request timed out"
    )


async def network_error_handler(request: Request, exc: NetworkError):
    """
    Handle NetworkError.

    WHAT: Transport failure or non-auth HTTP error from the backend
    WHY: The gateway could not get a usable answer upstream
    HOW: Return 502 with the upstream status when known
    """
    logger.error(f"LLM network error: {exc.message}")
    response = _provider_error_response(
        status.HTTP_502_BAD_GATEWAY,
        "LLM_BAD_GATEWAY",
        exc,
        "LLM backend request failed"
    )
    if exc.status_code is not None:
        response.headers["X-Upstream-Status"] = str(exc.status_code)
    return response


async def format_error_handler(request: Request, exc: FormatError):
    logger.error(f"LLM response format error: {exc.message}")
    return _provider_error_response(
        status.HTTP_502_BAD_GATEWAY,
        "LLM_BAD_RESPONSE",
        exc,
        "LLM backend returned an invalid response"
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Handle FastAPI RequestValidationError.

    WHAT: Request validation failed
    WHY: Invalid request payload
    HOW: Return 400 with field errors
    """
    logger.warning(f"Validation error: {exc.errors()}")

    # Clean up error details to be JSON serializable
    cleaned_errors = []
    for error in exc.errors():
        cleaned_error = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
        }
        if "ctx" in error:
            cleaned_error["ctx"] = {
                k: str(v) if isinstance(v, Exception) else v
                for k, v in error["ctx"].items()
            }
        cleaned_errors.append(cleaned_error)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": cleaned_errors,
            "timestamp": datetime.now().isoformat()
        }
    )


async def api_exception_handler(request: Request, exc: APIException):
    """
    Handle generic APIException.

    WHAT: Request error raised by the HTTP layer
    WHY: Domain-specific error
    HOW: Return status code based on exception type
    """
    status_code = status.HTTP_400_BAD_REQUEST

    if isinstance(exc, UnknownBackendError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST

    logger.warning(f"API exception: {exc.code} - {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "details": exc.details,
            "timestamp": datetime.now().isoformat()
        }
    )


def register_exception_handlers(app):
    """
    Register all exception handlers with FastAPI app.

    Handlers are looked up along the exception's MRO, so ProviderTimeoutError
    resolves before its NetworkError base.

    Args:
        app: FastAPI application instance
    """
    # LLM provider exceptions
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(UnavailableError, unavailable_error_handler)
    app.add_exception_handler(ProviderTimeoutError, provider_timeout_handler)
    app.add_exception_handler(NetworkError, network_error_handler)
    app.add_exception_handler(FormatError, format_error_handler)

    # API exceptions
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(APIException, api_exception_handler)

    logger.info("Exception handlers registered")
