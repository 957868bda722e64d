"""
Pydantic Schemas for the backend wire contract.

Every backend response is wrapped in the same envelope:

    {"success": bool, "data": ..., "error": {...}, "meta": {...}}

Fields are camelCase on the wire and snake_case in Python. Models accept
either spelling on input and dump camelCase with ``by_alias=True``.

Error Codes:
- AUTHENTICATION_REQUIRED / INVALID_TOKEN / ACCESS_DENIED: session problems
- VALIDATION_ERROR / NO_FILE / INVALID_IMAGE: bad request data
- INSUFFICIENT_CREDITS: not enough photo credits (details carry counts)
- TRANSFORMATION_ERROR / PURCHASE_ERROR / SUBSCRIPTION_ERROR: service failures
- RATE_LIMITED / SERVER_ERROR / SERVICE_UNAVAILABLE: server side
"""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


DataT = TypeVar("DataT")


# =============================================================================
# Enums
# =============================================================================

class BackgroundType(str, Enum):
    """Background styles offered by the transformer."""
    CARTOON = "cartoon"
    LEGO = "lego"
    PHOTO = "photo"


class TransformStatus(str, Enum):
    """Processing state of a transformation."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SubscriptionTier(str, Enum):
    """Subscription tiers."""
    NONE = "none"
    STANDARD = "standard"
    PRO = "pro"


class PurchaseStatus(str, Enum):
    """Credit purchase states."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ErrorCode(str, Enum):
    """Structured error codes."""
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    ACCESS_DENIED = "ACCESS_DENIED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NO_FILE = "NO_FILE"
    INVALID_IMAGE = "INVALID_IMAGE"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    TRANSFORMATION_ERROR = "TRANSFORMATION_ERROR"
    PURCHASE_ERROR = "PURCHASE_ERROR"
    SUBSCRIPTION_ERROR = "SUBSCRIPTION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    SERVER_ERROR = "SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    # Client side only, never sent by the backend
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"


# =============================================================================
# Base
# =============================================================================

class WireModel(BaseModel):
    """Base for all wire models: camelCase aliases, populate by name."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump as a JSON-ready dict using wire names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Envelope
# =============================================================================

class ErrorInfo(WireModel):
    """Error block of a failed envelope."""
    message: str = Field("", description="Human-readable error message")
    code: Optional[str] = Field(None, description="Machine-readable error code")
    details: Optional[Any] = None


class PageMeta(WireModel):
    """Pagination metadata for list endpoints."""
    total: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    has_next: Optional[bool] = None
    has_prev: Optional[bool] = None


class Envelope(WireModel, Generic[DataT]):
    """
    Uniform response wrapper.

    Unparametrized, ``data`` is left as raw JSON so the caller can validate
    it against the expected shape after checking ``success``.
    """
    success: bool
    data: Optional[DataT] = None
    error: Optional[ErrorInfo] = None
    meta: Optional[PageMeta] = None


class Page(WireModel, Generic[DataT]):
    """A page of list results with its metadata."""
    items: list[DataT] = Field(default_factory=list)
    meta: Optional[PageMeta] = None


# =============================================================================
# Auth & users
# =============================================================================

class UserProfile(WireModel):
    """The signed-in user."""
    public_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    photo_credits: int = Field(0, ge=0)
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE
    subscription_ends_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email or self.public_id


class AuthResult(WireModel):
    """Response of sign-in and refresh."""
    user: UserProfile
    session_token: str


class TokenValidation(WireModel):
    """Response of token validation."""
    valid: bool
    user: Optional[UserProfile] = None


class AppleSignInUser(WireModel):
    """Optional name/email shared by the identity provider on first sign-in."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class AppleSignInRequest(WireModel):
    """Identity assertion sent to the backend for verification."""
    identity_token: str = Field(..., min_length=1)
    user: Optional[AppleSignInUser] = None

    @field_validator("identity_token")
    @classmethod
    def _strip_token(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identity token must not be blank")
        return value


class ProfileUpdate(WireModel):
    """Editable profile fields."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


# =============================================================================
# Transformations
# =============================================================================

class TransformResult(WireModel):
    """A photo transformation as reported by the backend."""
    public_id: str
    background_type: BackgroundType
    custom_prompt: Optional[str] = None
    status: TransformStatus
    result_image_url: Optional[str] = None
    error_message: Optional[str] = None
    credits_used: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaginationParams(WireModel):
    """Query parameters for paginated lists."""
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)

    def to_query(self) -> dict[str, Any]:
        return self.to_wire()


class TransformHistoryParams(PaginationParams):
    """Query parameters for transformation history."""
    status: Optional[TransformStatus] = None
    background_type: Optional[BackgroundType] = None


# =============================================================================
# Credits
# =============================================================================

class TierCredits(WireModel):
    """Credits granted per period for each tier."""
    none: int = 0
    standard: int = 0
    pro: int = 0


class CreditBalance(WireModel):
    """Authoritative credit balance."""
    photo_credits: int = Field(0, ge=0)
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE
    subscription_ends_at: Optional[datetime] = None
    tier_credits: Optional[TierCredits] = None


class CreditPackage(WireModel):
    """A purchasable credit package."""
    package_id: str
    name: str
    description: Optional[str] = None
    credits: int
    price: str
    sort_order: int = 0


class PurchaseRequest(WireModel):
    """Body of a credit purchase."""
    package_id: int
    apple_receipt_data: Optional[str] = None


class PurchaseResult(WireModel):
    """A completed (or pending) credit purchase."""
    public_id: str
    credits_added: int = 0
    amount: float = 0.0
    status: PurchaseStatus
    receipt_data: Optional[str] = None
    created_at: Optional[datetime] = None


class SubscriptionUpdateRequest(WireModel):
    """Body of a subscription change."""
    receipt_data: str
    subscription_tier: SubscriptionTier

    @field_validator("subscription_tier")
    @classmethod
    def _paid_tier(cls, value: SubscriptionTier) -> SubscriptionTier:
        if value == SubscriptionTier.NONE:
            raise ValueError("subscription tier must be standard or pro")
        return value


class InsufficientCreditsDetails(WireModel):
    """Details attached to an INSUFFICIENT_CREDITS error."""
    credits_required: int = 1
    credits_available: int = 0
    subscription_tier: Optional[str] = None


# =============================================================================
# System
# =============================================================================

class HealthStatus(WireModel):
    """Health check response."""
    status: str
    timestamp: Optional[datetime] = None
    uptime: Optional[float] = None


class ApiInfo(WireModel):
    """API info served at the root path."""
    name: str
    version: str
    description: Optional[str] = None
    documentation: Optional[str] = None
