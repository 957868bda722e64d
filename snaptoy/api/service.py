"""
API Service - Typed facade over the SnapToy backend.

Each operation:
1. Sends a fixed method/path/payload through the HttpClient
2. Unwraps the {success, data, error, meta} envelope
3. Validates ``data`` into the expected model
4. Raises a taxonomy error with the server message and code on failure

No retries happen here beyond the client's single 401 refresh.
Sign-in and refresh persist the returned token before returning.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import logging

import requests
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from . import endpoints
from .client import HttpClient
from .errors import (
    ApiError,
    AuthError,
    PurchaseError,
    SubscriptionError,
    TransformationError,
    ValidationError,
    error_from_envelope,
)
from .images import prepare_image
from .schemas import (
    ApiInfo,
    AppleSignInRequest,
    AuthResult,
    BackgroundType,
    CreditBalance,
    CreditPackage,
    Envelope,
    HealthStatus,
    Page,
    PageMeta,
    PaginationParams,
    ProfileUpdate,
    PurchaseRequest,
    PurchaseResult,
    SubscriptionTier,
    SubscriptionUpdateRequest,
    TokenValidation,
    TransformHistoryParams,
    TransformResult,
    UserProfile,
)
from .token_store import TokenStore


logger = logging.getLogger(__name__)


@dataclass
class SnapToyAPI:
    """
    Facade for every backend operation.

    Usage:
        api = SnapToyAPI(http=HttpClient(base_url, store), token_store=store)

        api.sign_in({"identityToken": "..."})
        balance = api.get_credit_balance()
        result = api.transform("~/photo.jpg", "lego")
    """
    http: HttpClient
    token_store: TokenStore

    def __post_init__(self):
        # The client refreshes through us so the new token is persisted
        self.http.refresher = self.refresh

    # =========================================================================
    # Auth
    # =========================================================================

    def sign_in(self, request: AppleSignInRequest | dict[str, Any] | None) -> AuthResult:
        """
        Exchange an identity assertion for a session.

        A missing or blank identity token fails with ValidationError before
        anything is sent.
        """
        if not isinstance(request, AppleSignInRequest):
            try:
                request = AppleSignInRequest.model_validate(request)
            except PydanticValidationError as e:
                raise ValidationError("A valid identity token is required to sign in") from e

        result, _ = self._call(
            "POST",
            endpoints.AUTH_APPLE,
            AuthResult,
            json=request.to_wire(),
            default_error=AuthError,
            fallback_message="Sign-in failed",
            retry_on_unauthorized=False,
        )
        self.token_store.set(result.session_token)
        logger.info("Signed in as %s", result.user.public_id)
        return result

    def refresh(self) -> AuthResult:
        """Trade the current token for a new one. Never retried on 401."""
        result, _ = self._call(
            "POST",
            endpoints.AUTH_REFRESH,
            AuthResult,
            default_error=AuthError,
            fallback_message="Token refresh failed",
            retry_on_unauthorized=False,
        )
        self.token_store.set(result.session_token)
        logger.info("Session token refreshed")
        return result

    def validate_token(self) -> TokenValidation:
        result, _ = self._call(
            "GET",
            endpoints.AUTH_VALIDATE,
            TokenValidation,
            default_error=AuthError,
            fallback_message="Token validation failed",
        )
        return result

    def sign_out(self) -> None:
        """Forget the local session. There is no server-side sign-out."""
        self.token_store.clear()
        logger.info("Signed out")

    # =========================================================================
    # Users
    # =========================================================================

    def get_current_user(self) -> UserProfile:
        result, _ = self._call(
            "GET",
            endpoints.USERS_ME,
            UserProfile,
            fallback_message="Failed to get user profile",
        )
        return result

    def update_user_profile(
        self,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> UserProfile:
        updates = ProfileUpdate(first_name=first_name, last_name=last_name, email=email)
        result, _ = self._call(
            "PUT",
            endpoints.USERS_ME,
            UserProfile,
            json=updates.to_wire(),
            fallback_message="Failed to update profile",
        )
        return result

    # =========================================================================
    # Transformations
    # =========================================================================

    def transform(
        self,
        image_ref: str | Path,
        background_type: BackgroundType | str,
        custom_prompt: str | None = None,
    ) -> TransformResult:
        """
        Upload a photo for transformation.

        Validated locally before upload: background type, prompt length
        (at most 200 characters) and the image file itself.
        """
        try:
            background = BackgroundType(background_type)
        except ValueError as e:
            allowed = ", ".join(b.value for b in BackgroundType)
            raise ValidationError(
                f"Unknown background type {background_type!r} (expected one of: {allowed})"
            ) from e

        if custom_prompt is not None:
            custom_prompt = custom_prompt.strip()
            if len(custom_prompt) > endpoints.CUSTOM_PROMPT_MAX_LENGTH:
                raise ValidationError(
                    f"Custom prompt must be at most {endpoints.CUSTOM_PROMPT_MAX_LENGTH} characters"
                )

        image = prepare_image(image_ref)

        form = {"backgroundType": background.value}
        if custom_prompt:
            form["customPrompt"] = custom_prompt

        result, _ = self._call(
            "POST",
            endpoints.TRANSFORM_CREATE,
            TransformResult,
            data=form,
            files={"image": image.as_file_field()},
            default_error=TransformationError,
            fallback_message="Photo transformation failed",
        )
        logger.info("Transformation %s is %s", result.public_id, result.status.value)
        return result

    def get_transformation_history(
        self,
        params: TransformHistoryParams | None = None,
    ) -> Page[TransformResult]:
        items, meta = self._call(
            "GET",
            endpoints.TRANSFORM_HISTORY,
            list[TransformResult],
            params=params.to_query() if params else None,
            fallback_message="Failed to get transformation history",
        )
        return Page[TransformResult](items=items, meta=meta)

    def get_transformation(self, transform_id: str) -> TransformResult:
        result, _ = self._call(
            "GET",
            endpoints.transform_by_id(transform_id),
            TransformResult,
            fallback_message="Failed to get transformation",
        )
        return result

    # =========================================================================
    # Credits
    # =========================================================================

    def get_credit_balance(self) -> CreditBalance:
        result, _ = self._call(
            "GET",
            endpoints.CREDITS_BALANCE,
            CreditBalance,
            fallback_message="Failed to get credit balance",
        )
        return result

    def get_packages(self) -> list[CreditPackage]:
        result, _ = self._call(
            "GET",
            endpoints.CREDITS_PACKAGES,
            list[CreditPackage],
            fallback_message="Failed to get credit packages",
        )
        return sorted(result, key=lambda p: p.sort_order)

    def purchase_credits(self, package_id: int | str, receipt: str | None = None) -> PurchaseResult:
        try:
            request = PurchaseRequest(package_id=package_id, apple_receipt_data=receipt)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid package id: {package_id!r}") from e

        result, _ = self._call(
            "POST",
            endpoints.CREDITS_PURCHASE,
            PurchaseResult,
            json=request.to_wire(),
            default_error=PurchaseError,
            fallback_message="Credit purchase failed",
        )
        logger.info("Purchase %s added %d credits", result.public_id, result.credits_added)
        return result

    def update_subscription(self, tier: SubscriptionTier | str, receipt: str) -> CreditBalance:
        try:
            request = SubscriptionUpdateRequest(subscription_tier=tier, receipt_data=receipt)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid subscription tier: {tier!r}") from e

        result, _ = self._call(
            "PUT",
            endpoints.CREDITS_SUBSCRIPTION,
            CreditBalance,
            json=request.to_wire(),
            default_error=SubscriptionError,
            fallback_message="Subscription update failed",
        )
        return result

    def get_purchase_history(
        self,
        params: PaginationParams | None = None,
    ) -> Page[PurchaseResult]:
        items, meta = self._call(
            "GET",
            endpoints.CREDITS_HISTORY,
            list[PurchaseResult],
            params=params.to_query() if params else None,
            fallback_message="Failed to get purchase history",
        )
        return Page[PurchaseResult](items=items, meta=meta)

    # =========================================================================
    # System
    # =========================================================================

    def health_check(self) -> HealthStatus:
        result, _ = self._call(
            "GET",
            endpoints.SYSTEM_HEALTH,
            HealthStatus,
            fallback_message="Health check failed",
        )
        return result

    def get_api_info(self) -> ApiInfo:
        result, _ = self._call(
            "GET",
            endpoints.SYSTEM_INFO,
            ApiInfo,
            fallback_message="Failed to get API info",
        )
        return result

    # =========================================================================
    # Envelope handling
    # =========================================================================

    def _call(
        self,
        method: str,
        path: str,
        model: Any,
        *,
        default_error: type[ApiError] = ApiError,
        fallback_message: str | None = None,
        **kwargs: Any,
    ) -> tuple[Any, Optional[PageMeta]]:
        """Send a request and return (validated data, page meta)."""
        response = self.http.send(
            method,
            path,
            default_error=default_error,
            fallback_message=fallback_message,
            **kwargs,
        )
        return self._unwrap(response, model, default_error, fallback_message)

    def _unwrap(
        self,
        response: requests.Response,
        model: Any,
        default_error: type[ApiError],
        fallback_message: str | None,
    ) -> tuple[Any, Optional[PageMeta]]:
        try:
            envelope = Envelope.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise default_error(
                fallback_message or "Malformed response from server",
                status_code=response.status_code,
            ) from e

        if not envelope.success or envelope.data is None:
            raise error_from_envelope(
                envelope.error,
                response.status_code,
                default=default_error,
                fallback_message=fallback_message,
            )

        try:
            data = TypeAdapter(model).validate_python(envelope.data)
        except PydanticValidationError as e:
            raise default_error(
                fallback_message or "Malformed response from server",
                status_code=response.status_code,
                details=e.errors(include_url=False),
            ) from e

        return data, envelope.meta
