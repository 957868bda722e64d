"""
Auth State - Sign-in / sign-out / refresh lifecycle.

States:
    LOADING     Startup probe or an auth call in flight
    SIGNED_OUT  No session
    SIGNED_IN   user and session_token both set
    ERROR       Last sign-in failed (no session underneath)

user and session_token are always set and cleared together. LOADING keeps
whatever session was there while a refresh is in flight.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional
import logging

from pydantic import ValidationError as PydanticValidationError

from ..api.errors import ApiError, user_message
from ..api.schemas import AppleSignInRequest, UserProfile
from ..api.service import SnapToyAPI
from ..api.token_store import TokenStore


logger = logging.getLogger(__name__)


class AuthStatus(Enum):
    """Session status."""
    LOADING = "loading"
    SIGNED_OUT = "signed_out"
    SIGNED_IN = "signed_in"
    ERROR = "error"


@dataclass
class AuthState:
    """Snapshot of the auth container. Treat as immutable."""
    status: AuthStatus = AuthStatus.LOADING
    user: UserProfile | None = None
    session_token: str | None = None
    error: str | None = None
    is_available: bool = False  # Identity provider usable on this device

    @property
    def is_loading(self) -> bool:
        return self.status == AuthStatus.LOADING

    @property
    def is_signed_in(self) -> bool:
        return self.status == AuthStatus.SIGNED_IN


class AuthActionType(Enum):
    """Actions understood by auth_reducer."""
    SIGN_IN_START = "sign_in_start"
    SIGN_IN_SUCCESS = "sign_in_success"
    SIGN_IN_ERROR = "sign_in_error"
    SIGN_OUT = "sign_out"
    SET_LOADING = "set_loading"
    SET_AVAILABILITY = "set_availability"


@dataclass
class AuthAction:
    """An action for auth_reducer."""
    action_type: AuthActionType
    user: UserProfile | None = None
    token: str | None = None
    message: str | None = None
    available: bool | None = None

    @classmethod
    def sign_in_start(cls) -> AuthAction:
        return cls(AuthActionType.SIGN_IN_START)

    @classmethod
    def sign_in_success(cls, user: UserProfile, token: str) -> AuthAction:
        return cls(AuthActionType.SIGN_IN_SUCCESS, user=user, token=token)

    @classmethod
    def sign_in_error(cls, message: str) -> AuthAction:
        return cls(AuthActionType.SIGN_IN_ERROR, message=message)

    @classmethod
    def sign_out(cls) -> AuthAction:
        return cls(AuthActionType.SIGN_OUT)

    @classmethod
    def set_loading(cls) -> AuthAction:
        return cls(AuthActionType.SET_LOADING)

    @classmethod
    def set_availability(cls, available: bool) -> AuthAction:
        return cls(AuthActionType.SET_AVAILABILITY, available=available)


def auth_reducer(state: AuthState, action: AuthAction) -> AuthState:
    """Pure transition function: (state, action) -> new state."""
    kind = action.action_type

    if kind == AuthActionType.SIGN_IN_START:
        return replace(state, status=AuthStatus.LOADING, error=None)

    if kind == AuthActionType.SIGN_IN_SUCCESS:
        if action.user is None or not action.token:
            # Never one without the other
            return replace(
                state,
                status=AuthStatus.ERROR,
                user=None,
                session_token=None,
                error="Sign-in returned an incomplete session",
            )
        return replace(
            state,
            status=AuthStatus.SIGNED_IN,
            user=action.user,
            session_token=action.token,
            error=None,
        )

    if kind == AuthActionType.SIGN_IN_ERROR:
        return replace(
            state,
            status=AuthStatus.ERROR,
            user=None,
            session_token=None,
            error=action.message,
        )

    if kind == AuthActionType.SIGN_OUT:
        return replace(
            state,
            status=AuthStatus.SIGNED_OUT,
            user=None,
            session_token=None,
            error=None,
        )

    if kind == AuthActionType.SET_LOADING:
        return replace(state, status=AuthStatus.LOADING)

    if kind == AuthActionType.SET_AVAILABILITY:
        return replace(state, is_available=bool(action.available))

    return state


Listener = Callable[[AuthState], None]


class AuthSession:
    """
    Drives auth_reducer from API calls.

    Usage:
        auth = AuthSession(api, store)
        auth.initialize()            # LOADING -> SIGNED_IN | SIGNED_OUT
        auth.sign_in({"identityToken": token})
        auth.sign_out()

    Also listens for the HTTP client giving up on a session (refresh
    failed during a 401 retry) and moves to SIGNED_OUT.
    """

    def __init__(
        self,
        api: SnapToyAPI,
        token_store: TokenStore | None = None,
        availability_check: Optional[Callable[[], bool]] = None,
    ):
        self.api = api
        self.token_store = token_store if token_store is not None else api.token_store
        self.availability_check = availability_check
        self._state = AuthState()
        self._listeners: list[Listener] = []
        self.api.http.on_session_expired = self._handle_session_expired

    @property
    def state(self) -> AuthState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: AuthAction) -> AuthState:
        self._state = auth_reducer(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def initialize(self) -> AuthState:
        """Probe provider availability and any stored session."""
        self.dispatch(AuthAction.set_loading())
        self.dispatch(AuthAction.set_availability(self._check_availability()))

        if not self.token_store.get():
            return self.dispatch(AuthAction.sign_out())

        try:
            validation = self.api.validate_token()
        except ApiError as e:
            logger.warning("Stored session could not be validated: %s", e)
            return self.dispatch(AuthAction.sign_out())

        # Validation may have refreshed the token on the way
        token = self.token_store.get()
        if validation.valid and validation.user is not None and token:
            return self.dispatch(AuthAction.sign_in_success(validation.user, token))

        logger.info("Stored session is no longer valid")
        self.token_store.clear()
        return self.dispatch(AuthAction.sign_out())

    def sign_in(self, request: AppleSignInRequest | dict[str, Any] | None) -> bool:
        """
        Sign in with an identity assertion. Returns True when signed in.

        A malformed assertion is rejected before anything is sent. A
        signed-in session is left alone; otherwise the session ends
        SIGNED_OUT.
        """
        if not isinstance(request, AppleSignInRequest):
            try:
                request = AppleSignInRequest.model_validate(request)
            except PydanticValidationError:
                logger.warning("Rejected malformed sign-in request")
                if not self._state.is_signed_in:
                    self.dispatch(AuthAction.sign_out())
                return False

        self.dispatch(AuthAction.sign_in_start())
        try:
            result = self.api.sign_in(request)
        except ApiError as e:
            logger.warning("Sign-in failed: %s", e)
            self.dispatch(AuthAction.sign_in_error(user_message(e)))
            return False

        self.dispatch(AuthAction.sign_in_success(result.user, result.session_token))
        return True

    def sign_out(self) -> AuthState:
        """Always ends signed out, even if the facade call fails."""
        try:
            self.api.sign_out()
        except (ApiError, OSError) as e:
            logger.warning("Sign-out cleanup failed, clearing locally: %s", e)
            self.token_store.clear()
        return self.dispatch(AuthAction.sign_out())

    def refresh(self) -> bool:
        self.dispatch(AuthAction.set_loading())
        try:
            result = self.api.refresh()
        except ApiError as e:
            logger.warning("Token refresh failed: %s", e)
            self.token_store.clear()
            self.dispatch(AuthAction.sign_out())
            return False

        self.dispatch(AuthAction.sign_in_success(result.user, result.session_token))
        return True

    def _check_availability(self) -> bool:
        if self.availability_check is None:
            return True
        try:
            return bool(self.availability_check())
        except Exception as e:
            logger.error("Sign-in availability check failed: %s", e)
            return False

    def _handle_session_expired(self) -> None:
        if self._state.status != AuthStatus.SIGNED_OUT:
            logger.info("Session expired, signing out")
            self.dispatch(AuthAction.sign_out())
