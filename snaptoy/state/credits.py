"""
Credit State - Photo-credit balance with optimistic updates.

States: IDLE -> LOADING -> READY(balance) | ERROR(message)

Balance changes come from exactly two places:
- SET_BALANCE: authoritative value from the server (overwrite)
- CONSUME_CREDIT: optimistic local decrement at transform start,
  floored at 0, applied without changing the status

Every transform attempt ends with an authoritative resync, whatever its
outcome, so the optimistic value never becomes final.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable
import logging

from ..api.endpoints import CREDITS_PER_TRANSFORM
from ..api.errors import ApiError, InsufficientCreditsError, user_message
from ..api.schemas import (
    BackgroundType,
    CreditBalance,
    CreditPackage,
    PurchaseResult,
    SubscriptionTier,
    TransformResult,
)
from ..api.service import SnapToyAPI


logger = logging.getLogger(__name__)


class CreditStatus(Enum):
    """Status of the balance."""
    IDLE = "idle"  # Never fetched
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class CreditState:
    """Snapshot of the credit container. Treat as immutable."""
    status: CreditStatus = CreditStatus.IDLE
    photo_credits: int = 0
    subscription_tier: SubscriptionTier = SubscriptionTier.NONE
    error: str | None = None
    available_packages: list[CreditPackage] = field(default_factory=list)
    purchase_history: list[PurchaseResult] = field(default_factory=list)

    @property
    def is_loading(self) -> bool:
        return self.status == CreditStatus.LOADING

    @property
    def has_credits(self) -> bool:
        return self.photo_credits >= CREDITS_PER_TRANSFORM


class CreditActionType(Enum):
    """Actions understood by credit_reducer."""
    SET_LOADING = "set_loading"
    SET_BALANCE = "set_balance"
    SET_ERROR = "set_error"
    CONSUME_CREDIT = "consume_credit"
    SET_PACKAGES = "set_packages"
    SET_PURCHASE_HISTORY = "set_purchase_history"
    ADD_PURCHASE = "add_purchase"


@dataclass
class CreditAction:
    """An action for credit_reducer."""
    action_type: CreditActionType
    payload: Any = None

    @classmethod
    def loading(cls) -> CreditAction:
        return cls(CreditActionType.SET_LOADING)

    @classmethod
    def balance(cls, balance: CreditBalance) -> CreditAction:
        return cls(CreditActionType.SET_BALANCE, balance)

    @classmethod
    def error(cls, message: str) -> CreditAction:
        return cls(CreditActionType.SET_ERROR, message)

    @classmethod
    def consume(cls) -> CreditAction:
        return cls(CreditActionType.CONSUME_CREDIT)

    @classmethod
    def packages(cls, packages: list[CreditPackage]) -> CreditAction:
        return cls(CreditActionType.SET_PACKAGES, packages)

    @classmethod
    def purchase_history(cls, purchases: list[PurchaseResult]) -> CreditAction:
        return cls(CreditActionType.SET_PURCHASE_HISTORY, purchases)

    @classmethod
    def add_purchase(cls, purchase: PurchaseResult) -> CreditAction:
        return cls(CreditActionType.ADD_PURCHASE, purchase)


def credit_reducer(state: CreditState, action: CreditAction) -> CreditState:
    """
    Pure transition function: (state, action) -> new state.

    Unknown actions return the state unchanged.
    """
    kind = action.action_type

    if kind == CreditActionType.SET_LOADING:
        return replace(state, status=CreditStatus.LOADING, error=None)

    if kind == CreditActionType.SET_BALANCE:
        balance: CreditBalance = action.payload
        return replace(
            state,
            status=CreditStatus.READY,
            photo_credits=max(0, balance.photo_credits),
            subscription_tier=balance.subscription_tier,
            error=None,
        )

    if kind == CreditActionType.SET_ERROR:
        return replace(state, status=CreditStatus.ERROR, error=action.payload)

    if kind == CreditActionType.CONSUME_CREDIT:
        # Side-channel adjustment: status is left alone
        return replace(state, photo_credits=max(0, state.photo_credits - CREDITS_PER_TRANSFORM))

    if kind == CreditActionType.SET_PACKAGES:
        return replace(state, available_packages=list(action.payload))

    if kind == CreditActionType.SET_PURCHASE_HISTORY:
        return replace(state, purchase_history=list(action.payload))

    if kind == CreditActionType.ADD_PURCHASE:
        # Balance is NOT bumped here; the resync after a purchase sets it
        return replace(state, purchase_history=[action.payload, *state.purchase_history])

    return state


Listener = Callable[[CreditState], None]


class CreditManager:
    """
    Drives credit_reducer from API calls.

    Usage:
        credits = CreditManager(api)
        credits.refresh_balance()
        result = credits.transform_photo("photo.jpg", "cartoon")

    Fetch failures land in the ERROR state instead of raising.
    transform_photo raises, but only after the resync.
    """

    def __init__(self, api: SnapToyAPI, state: CreditState | None = None):
        self.api = api
        self._state = state or CreditState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> CreditState:
        return self._state

    @property
    def has_credits(self) -> bool:
        return self._state.has_credits

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action: CreditAction) -> CreditState:
        self._state = credit_reducer(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def refresh_balance(self) -> CreditState:
        """Fetch the authoritative balance."""
        self.dispatch(CreditAction.loading())
        try:
            balance = self.api.get_credit_balance()
        except ApiError as e:
            logger.warning("Credit balance refresh failed: %s", e)
            return self.dispatch(CreditAction.error(user_message(e)))
        return self.dispatch(CreditAction.balance(balance))

    def consume_credit(self) -> CreditState:
        """Optimistically take one credit off the displayed balance."""
        return self.dispatch(CreditAction.consume())

    def transform_photo(
        self,
        image_ref: str | Path,
        background_type: BackgroundType | str,
        custom_prompt: str | None = None,
    ) -> TransformResult:
        """
        Run a transformation with optimistic credit accounting.

        Rejected locally with InsufficientCreditsError when the balance is
        below one credit. Otherwise decrements, calls the backend, and
        resyncs the balance exactly once before returning or raising.
        """
        available = self._state.photo_credits
        if available < CREDITS_PER_TRANSFORM:
            raise InsufficientCreditsError(
                required=CREDITS_PER_TRANSFORM,
                available=available,
                subscription_tier=self._state.subscription_tier.value,
            )

        self.consume_credit()
        try:
            return self.api.transform(image_ref, background_type, custom_prompt)
        finally:
            self.refresh_balance()

    def refresh_packages(self) -> CreditState:
        try:
            packages = self.api.get_packages()
        except ApiError as e:
            logger.warning("Package refresh failed: %s", e)
            return self.dispatch(CreditAction.error(user_message(e)))
        return self.dispatch(CreditAction.packages(packages))

    def purchase_credits(self, package_id: int | str, receipt: str | None = None) -> bool:
        """Buy a package, then resync the balance from the server."""
        self.dispatch(CreditAction.loading())
        try:
            purchase = self.api.purchase_credits(package_id, receipt)
        except ApiError as e:
            logger.warning("Credit purchase failed: %s", e)
            self.dispatch(CreditAction.error(user_message(e)))
            return False

        self.dispatch(CreditAction.add_purchase(purchase))
        self.refresh_balance()
        return True

    def upgrade_subscription(self, tier: SubscriptionTier | str, receipt: str) -> bool:
        self.dispatch(CreditAction.loading())
        try:
            self.api.update_subscription(tier, receipt)
        except ApiError as e:
            logger.warning("Subscription update failed: %s", e)
            self.dispatch(CreditAction.error(user_message(e)))
            return False

        self.refresh_balance()
        return True

    def load_purchase_history(self) -> CreditState:
        try:
            page = self.api.get_purchase_history()
        except ApiError as e:
            logger.warning("Purchase history fetch failed: %s", e)
            return self.dispatch(CreditAction.error(user_message(e)))
        return self.dispatch(CreditAction.purchase_history(page.items))
