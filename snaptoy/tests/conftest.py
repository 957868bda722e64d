"""
Pytest fixtures for SnapToy tests.

HTTP is replaced by FakeSession: a requests.Session stand-in that returns
scripted responses per (method, path) and records every call.
"""

import json
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import pytest
import requests
from PIL import Image

from ..api.client import HttpClient
from ..api.service import SnapToyAPI
from ..api.token_store import MemoryTokenStore


BASE_URL = "http://api.test"


def make_response(status_code: int = 200, body: Any = None, reason: str = "") -> requests.Response:
    """Build a real requests.Response with a JSON body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.headers["Content-Type"] = "application/json"
    response._content = b"" if body is None else json.dumps(body).encode("utf-8")
    return response


def envelope(data: Any = None, *, success: bool = True, error: dict | None = None, meta: dict | None = None) -> dict:
    """Build a backend envelope."""
    body: dict[str, Any] = {"success": success}
    if data is not None:
        body["data"] = data
    if error is not None:
        body["error"] = error
    if meta is not None:
        body["meta"] = meta
    return body


def ok(data: Any, meta: dict | None = None) -> requests.Response:
    return make_response(200, envelope(data, meta=meta))


def fail(status_code: int, message: str, code: str | None = None, details: Any = None) -> requests.Response:
    error = {"message": message}
    if code is not None:
        error["code"] = code
    if details is not None:
        error["details"] = details
    return make_response(status_code, envelope(success=False, error=error))


@dataclass
class RecordedCall:
    method: str
    path: str
    kwargs: dict[str, Any] = field(default_factory=dict)

    @property
    def authorization(self) -> str | None:
        return self.kwargs.get("headers", {}).get("Authorization")


class FakeSession:
    """Scripted replacement for requests.Session."""

    def __init__(self):
        self.headers: dict[str, str] = {}
        self.calls: list[RecordedCall] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}
        self.closed = False

    def queue(self, method: str, path: str, *responses: Any) -> None:
        """Queue responses for a route, in order.

        Items may be responses, exceptions to raise, or zero-argument
        callables returning either.
        """
        self._routes.setdefault((method, path), []).extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        path = urlsplit(url).path or "/"
        self.calls.append(RecordedCall(method, path, kwargs))
        pending = self._routes.get((method, path))
        if not pending:
            raise AssertionError(f"Unexpected request: {method} {path}")
        item = pending.pop(0)
        if callable(item):
            item = item()
        if isinstance(item, Exception):
            raise item
        return item

    def calls_to(self, method: str, path: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def close(self) -> None:
        self.closed = True


USER = {
    "publicId": "usr_123",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
    "photoCredits": 3,
    "subscriptionTier": "none",
    "createdAt": "2024-05-01T10:00:00Z",
    "updatedAt": "2024-05-01T10:00:00Z",
}


def auth_payload(token: str, credits: int = 3) -> dict:
    return {"user": {**USER, "photoCredits": credits}, "sessionToken": token}


def balance_payload(credits: int, tier: str = "none") -> dict:
    return {
        "photoCredits": credits,
        "subscriptionTier": tier,
        "tierCredits": {"none": 0, "standard": 8, "pro": 40},
    }


def transform_payload(status: str = "completed", credits_used: int = 1) -> dict:
    return {
        "publicId": "tr_1",
        "backgroundType": "lego",
        "status": status,
        "resultImageUrl": "https://cdn.test/tr_1.jpg" if status == "completed" else None,
        "creditsUsed": credits_used,
        "createdAt": "2024-05-02T09:00:00Z",
        "updatedAt": "2024-05-02T09:00:30Z",
    }


@pytest.fixture
def token_store() -> MemoryTokenStore:
    return MemoryTokenStore()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def http_client(token_store, fake_session) -> HttpClient:
    return HttpClient(BASE_URL, token_store, timeout=5.0, session=fake_session)


@pytest.fixture
def api(http_client, token_store) -> SnapToyAPI:
    return SnapToyAPI(http=http_client, token_store=token_store)


@pytest.fixture
def image_file(tmp_path):
    """A small PNG on disk."""
    path = tmp_path / "toy.png"
    Image.new("RGBA", (32, 24), (200, 40, 40, 255)).save(path)
    return path
