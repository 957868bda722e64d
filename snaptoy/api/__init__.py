"""
API Module - Client side of the SnapToy backend contract.

Layers, leaf first:
1. TokenStore holds the session token
2. HttpClient sends requests with the token and refreshes it on 401
3. SnapToyAPI exposes typed operations and unwraps the response envelope

Everything raised from this module is an ApiError subclass.
"""

from .schemas import (
    # Enums
    BackgroundType,
    TransformStatus,
    SubscriptionTier,
    PurchaseStatus,
    ErrorCode,
    # Envelope
    Envelope,
    ErrorInfo,
    PageMeta,
    Page,
    # Payloads
    UserProfile,
    AuthResult,
    TokenValidation,
    AppleSignInRequest,
    AppleSignInUser,
    TransformResult,
    TransformHistoryParams,
    PaginationParams,
    CreditBalance,
    CreditPackage,
    PurchaseResult,
    HealthStatus,
    ApiInfo,
)
from .errors import (
    ApiError,
    AuthError,
    AuthenticationRequiredError,
    InvalidTokenError,
    AccessDeniedError,
    ValidationError,
    NoFileError,
    InvalidImageError,
    InsufficientCreditsError,
    TransformationError,
    PurchaseError,
    SubscriptionError,
    RateLimitedError,
    ServerError,
    ServiceUnavailableError,
    NetworkError,
    ApiTimeoutError,
    user_message,
)
from .token_store import TokenStore, MemoryTokenStore, FileTokenStore
from .client import HttpClient
from .service import SnapToyAPI

__all__ = [
    # Enums
    "BackgroundType",
    "TransformStatus",
    "SubscriptionTier",
    "PurchaseStatus",
    "ErrorCode",
    # Envelope
    "Envelope",
    "ErrorInfo",
    "PageMeta",
    "Page",
    # Payloads
    "UserProfile",
    "AuthResult",
    "TokenValidation",
    "AppleSignInRequest",
    "AppleSignInUser",
    "TransformResult",
    "TransformHistoryParams",
    "PaginationParams",
    "CreditBalance",
    "CreditPackage",
    "PurchaseResult",
    "HealthStatus",
    "ApiInfo",
    # Errors
    "ApiError",
    "AuthError",
    "AuthenticationRequiredError",
    "InvalidTokenError",
    "AccessDeniedError",
    "ValidationError",
    "NoFileError",
    "InvalidImageError",
    "InsufficientCreditsError",
    "TransformationError",
    "PurchaseError",
    "SubscriptionError",
    "RateLimitedError",
    "ServerError",
    "ServiceUnavailableError",
    "NetworkError",
    "ApiTimeoutError",
    "user_message",
    # Transport
    "TokenStore",
    "MemoryTokenStore",
    "FileTokenStore",
    "HttpClient",
    "SnapToyAPI",
]
