"""
Error taxonomy for the client.

Every failure the client can surface is an ``ApiError`` subclass. Errors
are built from the server envelope when one is available (code first,
then HTTP status), and from the transport failure otherwise.

The HTTP layer and the facade never swallow these. Callers that show
errors to a person use ``user_message()``.
"""

from __future__ import annotations
from typing import Any, Optional
import logging

import requests
from pydantic import ValidationError as PydanticValidationError

from .schemas import Envelope, ErrorCode, ErrorInfo, InsufficientCreditsDetails


logger = logging.getLogger(__name__)


GENERIC_MESSAGE = "Something went wrong. Please try again."
NETWORK_MESSAGE = "Network error. Please check your connection."


class ApiError(Exception):
    """Base class for all client errors."""
    default_code: ErrorCode = ErrorCode.SERVER_ERROR
    default_message: str = GENERIC_MESSAGE

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code.value
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, status_code={self.status_code!r})"


# Authentication

class AuthError(ApiError):
    default_code = ErrorCode.AUTHENTICATION_REQUIRED
    default_message = "Authentication failed"


class AuthenticationRequiredError(AuthError):
    default_code = ErrorCode.AUTHENTICATION_REQUIRED
    default_message = "Authentication required"


class InvalidTokenError(AuthError):
    default_code = ErrorCode.INVALID_TOKEN
    default_message = "Session token is invalid or expired"


class AccessDeniedError(AuthError):
    default_code = ErrorCode.ACCESS_DENIED
    default_message = "Access denied"


# Validation

class ValidationError(ApiError):
    default_code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request"


class NoFileError(ValidationError):
    default_code = ErrorCode.NO_FILE
    default_message = "No image file provided"


class InvalidImageError(ValidationError):
    default_code = ErrorCode.INVALID_IMAGE
    default_message = "Invalid image format"


class InsufficientCreditsError(ApiError):
    """Not enough photo credits. Carries the counts for a purchase prompt."""
    default_code = ErrorCode.INSUFFICIENT_CREDITS
    default_message = "Insufficient credits"

    def __init__(
        self,
        message: str | None = None,
        *,
        required: int = 1,
        available: int = 0,
        subscription_tier: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.required = required
        self.available = available
        self.subscription_tier = subscription_tier


# Services

class TransformationError(ApiError):
    default_code = ErrorCode.TRANSFORMATION_ERROR
    default_message = "Photo transformation failed"


class PurchaseError(ApiError):
    default_code = ErrorCode.PURCHASE_ERROR
    default_message = "Credit purchase failed"


class SubscriptionError(ApiError):
    default_code = ErrorCode.SUBSCRIPTION_ERROR
    default_message = "Subscription update failed"


# Server

class RateLimitedError(ApiError):
    default_code = ErrorCode.RATE_LIMITED
    default_message = "Too many requests"


class ServerError(ApiError):
    default_code = ErrorCode.SERVER_ERROR
    default_message = "Server error"


class ServiceUnavailableError(ServerError):
    default_code = ErrorCode.SERVICE_UNAVAILABLE
    default_message = "Service unavailable"


# Transport

class NetworkError(ApiError):
    """No response was received."""
    default_code = ErrorCode.NETWORK_ERROR
    default_message = NETWORK_MESSAGE


class ApiTimeoutError(NetworkError):
    default_code = ErrorCode.TIMEOUT
    default_message = "Request timed out"


CODE_TO_ERROR: dict[str, type[ApiError]] = {
    ErrorCode.AUTHENTICATION_REQUIRED.value: AuthenticationRequiredError,
    ErrorCode.INVALID_TOKEN.value: InvalidTokenError,
    ErrorCode.ACCESS_DENIED.value: AccessDeniedError,
    ErrorCode.VALIDATION_ERROR.value: ValidationError,
    ErrorCode.NO_FILE.value: NoFileError,
    ErrorCode.INVALID_IMAGE.value: InvalidImageError,
    ErrorCode.INSUFFICIENT_CREDITS.value: InsufficientCreditsError,
    ErrorCode.TRANSFORMATION_ERROR.value: TransformationError,
    ErrorCode.PURCHASE_ERROR.value: PurchaseError,
    ErrorCode.SUBSCRIPTION_ERROR.value: SubscriptionError,
    ErrorCode.RATE_LIMITED.value: RateLimitedError,
    ErrorCode.SERVER_ERROR.value: ServerError,
    ErrorCode.SERVICE_UNAVAILABLE.value: ServiceUnavailableError,
}

STATUS_TO_ERROR: dict[int, type[ApiError]] = {
    400: ValidationError,
    401: AuthenticationRequiredError,
    402: InsufficientCreditsError,
    403: AccessDeniedError,
    422: ValidationError,
    429: RateLimitedError,
    503: ServiceUnavailableError,
}


def _error_class_for_status(status_code: int | None) -> Optional[type[ApiError]]:
    if status_code is None:
        return None
    if status_code in STATUS_TO_ERROR:
        return STATUS_TO_ERROR[status_code]
    if status_code >= 500:
        return ServerError
    return None


def error_from_envelope(
    error: ErrorInfo | None,
    status_code: int | None = None,
    *,
    default: type[ApiError] = ApiError,
    fallback_message: str | None = None,
) -> ApiError:
    """
    Build a taxonomy error from an envelope error block.

    Resolution order: server code, HTTP status, then ``default``.
    """
    code = error.code if error else None
    message = (error.message if error else None) or fallback_message
    details = error.details if error else None

    error_cls = CODE_TO_ERROR.get(code or "")
    if error_cls is None and status_code is not None and not 200 <= status_code < 300:
        error_cls = _error_class_for_status(status_code)
    if error_cls is None:
        error_cls = default

    if error_cls is InsufficientCreditsError:
        counts = InsufficientCreditsDetails()
        if isinstance(details, dict):
            try:
                counts = InsufficientCreditsDetails.model_validate(details)
            except PydanticValidationError:
                logger.debug("Unparseable credit details: %r", details)
        return InsufficientCreditsError(
            message,
            code=code,
            status_code=status_code,
            details=details,
            required=counts.credits_required,
            available=counts.credits_available,
            subscription_tier=counts.subscription_tier,
        )

    return error_cls(message, code=code, status_code=status_code, details=details)


def error_from_response(
    response: requests.Response,
    *,
    default: type[ApiError] = ApiError,
    fallback_message: str | None = None,
) -> ApiError:
    """Build a taxonomy error from a failed HTTP response."""
    error_info = None
    try:
        envelope = Envelope.model_validate(response.json())
        error_info = envelope.error
    except (ValueError, PydanticValidationError):
        # Not an envelope (proxy error page, empty body, ...)
        logger.debug("Non-envelope error body with status %s", response.status_code)

    return error_from_envelope(
        error_info,
        response.status_code,
        default=default,
        fallback_message=fallback_message or response.reason or None,
    )


USER_MESSAGES: dict[str, str] = {
    ErrorCode.INSUFFICIENT_CREDITS.value: "Insufficient credits. Please purchase more credits to continue.",
    ErrorCode.INVALID_IMAGE.value: "Invalid image format. Please try with a different photo.",
    ErrorCode.TRANSFORMATION_ERROR.value: "Photo transformation failed. Please try again.",
    ErrorCode.AUTHENTICATION_REQUIRED.value: "Please sign in to continue.",
    ErrorCode.INVALID_TOKEN.value: "Session expired. Please sign in again.",
    ErrorCode.RATE_LIMITED.value: "Too many requests. Please try again later.",
    ErrorCode.SERVICE_UNAVAILABLE.value: "Service temporarily unavailable. Please try again later.",
    ErrorCode.NETWORK_ERROR.value: NETWORK_MESSAGE,
    ErrorCode.TIMEOUT.value: "The request took too long. Please try again.",
}


def user_message(error: BaseException) -> str:
    """Human-readable message for any error raised by the client."""
    if isinstance(error, ApiError):
        if error.code in USER_MESSAGES:
            return USER_MESSAGES[error.code]
        return error.message or GENERIC_MESSAGE
    text = str(error)
    return text or NETWORK_MESSAGE
