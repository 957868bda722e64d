"""
Backend endpoints and product constants.

Paths are relative to the API base URL. Style and tier tables let the CLI
describe them offline; packages always come from the backend.
"""

from __future__ import annotations


DEVELOPMENT_BASE_URL = "http://localhost:3000"
PRODUCTION_BASE_URL = "https://api.snaptoy.studio"

# Image transformations can take a while on the backend
DEFAULT_TIMEOUT_SECONDS = 30.0

SESSION_TOKEN_KEY = "sessionToken"

CUSTOM_PROMPT_MAX_LENGTH = 200
CREDITS_PER_TRANSFORM = 1


# Authentication
AUTH_APPLE = "/auth/apple"
AUTH_REFRESH = "/auth/refresh"
AUTH_VALIDATE = "/auth/validate"

# User profile
USERS_ME = "/api/users/me"
USERS_CREDITS = "/api/users/credits"

# Photo transformation
TRANSFORM_CREATE = "/api/transform"
TRANSFORM_HISTORY = "/api/transform/history"

# Credits & packages
CREDITS_BALANCE = USERS_CREDITS
CREDITS_PACKAGES = "/api/packages"
CREDITS_PURCHASE = "/api/credits/purchase"
CREDITS_SUBSCRIPTION = "/api/credits/subscription"
CREDITS_HISTORY = "/api/credits/history"

# System
SYSTEM_HEALTH = "/health"
SYSTEM_INFO = "/"


def transform_by_id(transform_id: str) -> str:
    """Path for a single transformation."""
    return f"{TRANSFORM_CREATE}/{transform_id}"


BACKGROUND_TYPES = {
    "cartoon": {
        "name": "Cartoon",
        "description": "Vibrant cartoon illustration with bright colors and whimsical design",
    },
    "lego": {
        "name": "LEGO World",
        "description": "Authentic LEGO brick environment with plastic textures and geometric shapes",
    },
    "photo": {
        "name": "Studio Photo",
        "description": "Professional photographic background with natural lighting",
    },
}

SUBSCRIPTION_TIERS = {
    "none": {"name": "Free", "credits": 0, "price": 0.0, "duration": "none"},
    "standard": {"name": "Standard", "credits": 8, "price": 1.0, "duration": "week"},
    "pro": {"name": "Pro", "credits": 40, "price": 5.0, "duration": "week"},
}
