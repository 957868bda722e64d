"""
HTTP Client Core - Transport shared by every API call.

Wraps one requests.Session with:
1. A base URL and a fixed per-call timeout
2. Auth injection: the stored session token is sent as a bearer credential
3. Refresh-and-retry: a 401 triggers one token refresh and one resend

Retry policy (single attempt, no backoff):
- Only requests that carried a token and were sent with
  retry_on_unauthorized=True are retried (sign-in and refresh never are)
- If the refresh fails, the token is cleared and the ORIGINAL 401 is raised
- A second 401 after the resend is raised as-is

Refreshes are serialized. A request that waited behind another refresh
reuses the token that refresh stored instead of refreshing again.
"""

from __future__ import annotations
from typing import Any, Callable, Optional
import logging
import threading

import requests

from .endpoints import DEFAULT_TIMEOUT_SECONDS
from .errors import ApiError, ApiTimeoutError, NetworkError, error_from_response
from .token_store import TokenStore


logger = logging.getLogger(__name__)

Refresher = Callable[[], Any]


class HttpClient:
    """
    Configured HTTP client with auth injection and 401 handling.

    Usage:
        client = HttpClient("https://api.snaptoy.studio", token_store)
        client.refresher = api.refresh
        response = client.send("GET", "/api/users/me")
    """

    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        refresher: Optional[Refresher] = None,
        on_session_expired: Optional[Callable[[], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        self.refresher = refresher
        self.on_session_expired = on_session_expired
        self._refresh_lock = threading.Lock()

    def url_for(self, path: str) -> str:
        """Absolute URL for an API path."""
        if not path.startswith("/"):
            path = "/" + path
        return self.base_url + path

    def send(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict[str, Any]] = None,
        data: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        retry_on_unauthorized: bool = True,
        default_error: type[ApiError] = ApiError,
        fallback_message: Optional[str] = None,
    ) -> requests.Response:
        """
        Send a request and return the successful response.

        Raises an ApiError subclass for transport failures and for any
        non-2xx status left after the refresh retry. A status with neither
        a known server code nor a mapped status raises ``default_error``.
        """
        token = self.token_store.get()
        response = self._dispatch(method, path, token, json=json, params=params, data=data, files=files)

        if (
            response.status_code == 401
            and token
            and retry_on_unauthorized
            and self.refresher is not None
        ):
            new_token = self._refresh_after_unauthorized(token, response)
            logger.debug("Retrying %s %s with refreshed token", method, path)
            response = self._dispatch(method, path, new_token, json=json, params=params, data=data, files=files)

        if not response.ok:
            raise error_from_response(
                response,
                default=default_error,
                fallback_message=fallback_message,
            )

        return response

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _dispatch(
        self,
        method: str,
        path: str,
        token: str | None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send a single request; no retry logic here."""
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = self.url_for(path)
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            raise ApiTimeoutError(
                f"{method} {path} timed out after {self.timeout:g}s"
            ) from e
        except requests.RequestException as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    def _refresh_after_unauthorized(
        self,
        failed_token: str | None,
        response: requests.Response,
    ) -> str:
        """
        Obtain a fresh token after a 401.

        Returns the token to resend with. Raises the error built from the
        original 401 response when no fresh token can be obtained, including
        when the new token cannot be written to the store. The session is
        expired outside the lock so listeners may send requests.
        """
        refresh_error = None
        new_token = None
        with self._refresh_lock:
            current = self.token_store.get()
            if current and current != failed_token:
                logger.debug("Session token was refreshed by another request")
                return current

            logger.info("Session token rejected, refreshing")
            try:
                self.refresher()
            except (ApiError, OSError) as e:
                refresh_error = e
            else:
                new_token = self.token_store.get()

        if refresh_error is not None:
            logger.warning("Session refresh failed: %s", refresh_error)
            self._expire_session()
            raise error_from_response(response) from refresh_error

        if not new_token:
            logger.warning("Session refresh returned no token")
            self._expire_session()
            raise error_from_response(response)
        return new_token

    def _expire_session(self) -> None:
        self.token_store.clear()
        if self.on_session_expired is not None:
            self.on_session_expired()
