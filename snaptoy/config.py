"""
Client configuration from the environment.

Variables:
    SNAPTOY_ENV          development (default) or production
    SNAPTOY_API_URL      Override the base URL chosen by SNAPTOY_ENV
    SNAPTOY_TIMEOUT      Per-request timeout in seconds (default 30)
    SNAPTOY_TOKEN_FILE   Where the session token is kept
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
import os

import requests

from .api.client import HttpClient
from .api.endpoints import DEFAULT_TIMEOUT_SECONDS, DEVELOPMENT_BASE_URL, PRODUCTION_BASE_URL
from .api.service import SnapToyAPI
from .api.token_store import FileTokenStore, TokenStore


BASE_URLS = {
    "development": DEVELOPMENT_BASE_URL,
    "production": PRODUCTION_BASE_URL,
}


def _default_token_file() -> Path:
    return Path.home() / ".snaptoy" / "session.json"


@dataclass
class ClientSettings:
    """Resolved client settings."""
    env: str = "development"
    api_url: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    token_file: Path = field(default_factory=_default_token_file)

    @property
    def base_url(self) -> str:
        if self.api_url:
            return self.api_url
        try:
            return BASE_URLS[self.env]
        except KeyError:
            raise ValueError(
                f"Unknown SNAPTOY_ENV {self.env!r} (expected one of: {', '.join(BASE_URLS)})"
            ) from None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ClientSettings:
        environ = os.environ if environ is None else environ

        timeout_raw = environ.get("SNAPTOY_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ValueError(f"SNAPTOY_TIMEOUT must be a number, got {timeout_raw!r}") from None
        if timeout <= 0:
            raise ValueError("SNAPTOY_TIMEOUT must be positive")

        token_file = environ.get("SNAPTOY_TOKEN_FILE")
        return cls(
            env=environ.get("SNAPTOY_ENV", "development").strip().lower(),
            api_url=environ.get("SNAPTOY_API_URL") or None,
            timeout=timeout,
            token_file=Path(token_file).expanduser() if token_file else _default_token_file(),
        )


def create_api(
    settings: ClientSettings | None = None,
    *,
    token_store: TokenStore | None = None,
    session: requests.Session | None = None,
) -> SnapToyAPI:
    """
    Wire token store, HTTP client and facade from settings.

    One client per process: callers share the returned facade.
    """
    settings = settings or ClientSettings.from_env()
    store = token_store if token_store is not None else FileTokenStore(settings.token_file)
    http = HttpClient(
        settings.base_url,
        store,
        timeout=settings.timeout,
        session=session,
    )
    return SnapToyAPI(http=http, token_store=store)
