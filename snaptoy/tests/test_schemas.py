"""
Tests for wire models and error mapping.

Tests:
- Every response shape survives envelope -> model -> wire -> model
- camelCase on the wire, snake_case in Python
- Request validation (sign-in, subscription, pagination)
- Error resolution order and user-facing messages
"""

import pytest
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..api.errors import (
    ApiError,
    ApiTimeoutError,
    AuthError,
    InsufficientCreditsError,
    InvalidTokenError,
    NetworkError,
    PurchaseError,
    RateLimitedError,
    ServerError,
    ValidationError,
    error_from_envelope,
    error_from_response,
    user_message,
)
from ..api.schemas import (
    ApiInfo,
    AppleSignInRequest,
    AuthResult,
    CreditBalance,
    CreditPackage,
    Envelope,
    ErrorInfo,
    HealthStatus,
    PurchaseResult,
    SubscriptionUpdateRequest,
    TokenValidation,
    TransformHistoryParams,
    TransformResult,
    UserProfile,
)
from .conftest import USER, auth_payload, balance_payload, fail, make_response, transform_payload


RESPONSE_SHAPES = [
    (UserProfile, USER),
    (AuthResult, auth_payload("tok")),
    (TokenValidation, {"valid": True, "user": USER}),
    (TransformResult, transform_payload()),
    (TransformResult, {**transform_payload("failed"), "errorMessage": "Model crashed"}),
    (CreditBalance, balance_payload(4, "standard")),
    (CreditPackage, {"packageId": "2", "name": "Value Pack", "credits": 17, "price": "$2.00", "sortOrder": 2}),
    (PurchaseResult, {"publicId": "pur_1", "creditsAdded": 8, "amount": 1.0, "status": "completed"}),
    (HealthStatus, {"status": "healthy", "timestamp": "2024-05-01T10:00:00Z", "uptime": 12.5}),
    (ApiInfo, {"name": "SnapToy API", "version": "1.0.0"}),
]


class TestEnvelopeRoundTrip:
    """Tests for response models inside the envelope."""

    @pytest.mark.parametrize("model, payload", RESPONSE_SHAPES)
    def test_round_trip(self, model, payload):
        """Parsing, dumping with wire names and parsing again is lossless."""
        envelope = Envelope.model_validate({"success": True, "data": payload})
        first = TypeAdapter(model).validate_python(envelope.data)

        wire = Envelope(success=True, data=first.to_wire()).to_wire()
        second = model.model_validate(Envelope.model_validate(wire).data)

        assert second == first

    def test_dump_uses_camel_case(self):
        user = UserProfile.model_validate(USER)

        wire = user.to_wire()

        assert wire["publicId"] == "usr_123"
        assert wire["photoCredits"] == 3
        assert "public_id" not in wire

    def test_populate_by_name(self):
        """Python names are accepted on input too."""
        balance = CreditBalance(photo_credits=2, subscription_tier="pro")

        assert balance.to_wire()["subscriptionTier"] == "pro"

    def test_failed_envelope(self):
        envelope = Envelope.model_validate({
            "success": False,
            "error": {"message": "Nope", "code": "ACCESS_DENIED"},
        })

        assert not envelope.success
        assert envelope.data is None
        assert envelope.error.code == "ACCESS_DENIED"

    def test_meta(self):
        envelope = Envelope.model_validate({
            "success": True,
            "data": [],
            "meta": {"total": 40, "limit": 20, "offset": 0, "hasNext": True, "hasPrev": False},
        })

        assert envelope.meta.has_next
        assert envelope.meta.total == 40

    def test_negative_credits_rejected(self):
        with pytest.raises(PydanticValidationError):
            CreditBalance.model_validate({"photoCredits": -1})

    def test_display_name(self):
        assert UserProfile.model_validate(USER).display_name == "Ada Lovelace"
        assert UserProfile(public_id="usr_9").display_name == "usr_9"


class TestRequests:
    """Tests for request bodies and query parameters."""

    @pytest.mark.parametrize("data", [{}, {"identityToken": ""}, {"identityToken": "   "}])
    def test_sign_in_requires_token(self, data):
        with pytest.raises(PydanticValidationError):
            AppleSignInRequest.model_validate(data)

    def test_sign_in_with_user(self):
        request = AppleSignInRequest.model_validate({
            "identityToken": " jwt ",
            "user": {"firstName": "Ada"},
        })

        assert request.to_wire() == {"identityToken": "jwt", "user": {"firstName": "Ada"}}

    def test_subscription_to_none_rejected(self):
        with pytest.raises(PydanticValidationError):
            SubscriptionUpdateRequest(subscription_tier="none", receipt_data="r")

    def test_history_query(self):
        params = TransformHistoryParams(limit=10, offset=20, background_type="lego")

        assert params.to_query() == {"limit": 10, "offset": 20, "backgroundType": "lego"}

    def test_limit_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            TransformHistoryParams(limit=0)


class TestErrorMapping:
    """Tests for building taxonomy errors."""

    def test_code_wins(self):
        error = error_from_envelope(ErrorInfo(message="Slow down", code="RATE_LIMITED"), 500)

        assert isinstance(error, RateLimitedError)
        assert error.message == "Slow down"
        assert error.status_code == 500

    def test_status_when_code_unknown(self):
        error = error_from_envelope(ErrorInfo(message="Huh", code="SOMETHING_NEW"), 401)

        assert isinstance(error, AuthError)
        assert error.code == "SOMETHING_NEW"

    def test_default_when_nothing_matches(self):
        """A 200 with success=false falls back to the operation default."""
        error = error_from_envelope(ErrorInfo(message="Receipt rejected"), 200, default=PurchaseError)

        assert isinstance(error, PurchaseError)
        assert error.code == "PURCHASE_ERROR"

    def test_missing_error_block_uses_fallback(self):
        error = error_from_envelope(None, 200, default=AuthError, fallback_message="Sign-in failed")

        assert isinstance(error, AuthError)
        assert error.message == "Sign-in failed"

    def test_other_5xx_is_server_error(self):
        assert isinstance(error_from_envelope(None, 504), ServerError)

    def test_insufficient_credits_details(self):
        error = error_from_envelope(ErrorInfo(
            message="Need credits",
            code="INSUFFICIENT_CREDITS",
            details={"creditsRequired": 1, "creditsAvailable": 0, "subscriptionTier": "none"},
        ), 402)

        assert isinstance(error, InsufficientCreditsError)
        assert (error.required, error.available, error.subscription_tier) == (1, 0, "none")

    def test_insufficient_credits_bad_details(self):
        """Unparseable details still give an InsufficientCreditsError."""
        error = error_from_envelope(ErrorInfo(code="INSUFFICIENT_CREDITS", details={"creditsRequired": "many"}), 402)

        assert isinstance(error, InsufficientCreditsError)
        assert error.required == 1

    def test_from_response(self):
        error = error_from_response(fail(401, "Expired", "INVALID_TOKEN"))

        assert isinstance(error, InvalidTokenError)
        assert error.message == "Expired"

    def test_from_empty_response(self):
        error = error_from_response(make_response(400, reason="Bad Request"))

        assert isinstance(error, ValidationError)
        assert error.message == "Bad Request"


class TestUserMessage:
    """Tests for user_message()."""

    @pytest.mark.parametrize("error, expected", [
        (InsufficientCreditsError(), "Insufficient credits. Please purchase more credits to continue."),
        (InvalidTokenError(), "Session expired. Please sign in again."),
        (NetworkError(), "Network error. Please check your connection."),
        (ApiTimeoutError(), "The request took too long. Please try again."),
        (RateLimitedError(), "Too many requests. Please try again later."),
    ])
    def test_known_codes(self, error, expected):
        assert user_message(error) == expected

    def test_unknown_code_uses_server_message(self):
        assert user_message(PurchaseError("Receipt already used")) == "Receipt already used"

    def test_plain_exception(self):
        assert user_message(RuntimeError("boom")) == "boom"
        assert user_message(RuntimeError()) == "Network error. Please check your connection."

    def test_every_error_is_api_error(self):
        assert issubclass(ApiTimeoutError, NetworkError)
        assert issubclass(NetworkError, ApiError)
