"""
State Module - Auth and credit state machines.

Each container is a state dataclass plus a pure reducer:

    new_state = reducer(state, action)

A small manager class feeds API results into its reducer and notifies
subscribers, which is where a UI binds. Nothing here depends on a UI
framework.
"""

from .auth import AuthState, AuthStatus, AuthAction, AuthActionType, AuthSession, auth_reducer
from .credits import (
    CreditState,
    CreditStatus,
    CreditAction,
    CreditActionType,
    CreditManager,
    credit_reducer,
)

__all__ = [
    "AuthState",
    "AuthStatus",
    "AuthAction",
    "AuthActionType",
    "AuthSession",
    "auth_reducer",
    "CreditState",
    "CreditStatus",
    "CreditAction",
    "CreditActionType",
    "CreditManager",
    "credit_reducer",
]
