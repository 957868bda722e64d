"""
Token Store - Persistence for the single session token.

The store:
- Holds at most one token (last write wins)
- Is the ONLY client-side persistence
- Never logs the token value

Two implementations:
- MemoryTokenStore: process lifetime only (tests, one-shot scripts)
- FileTokenStore: JSON file readable only by the current user
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
import json
import logging
import os
import threading

from .endpoints import SESSION_TOKEN_KEY


logger = logging.getLogger(__name__)


class TokenStore(ABC):
    """Key-value store for the session token."""

    @abstractmethod
    def get(self) -> str | None:
        """Return the stored token, or None when signed out."""
        pass

    @abstractmethod
    def set(self, token: str) -> None:
        """Replace the stored token."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Forget the stored token. Never raises."""
        pass


class MemoryTokenStore(TokenStore):
    """In-memory token store."""

    def __init__(self, token: str | None = None):
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> str | None:
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._token = None


class FileTokenStore(TokenStore):
    """
    File-backed token store.

    Usage:
        store = FileTokenStore("~/.snaptoy/session.json")
        store.set(token)
        store.get()  # -> token, also after a restart

    Read failures are treated as "no token"; write failures propagate so a
    sign-in never silently loses its credential.
    """

    def __init__(self, path: str | Path | None = None):
        if path is None:
            path = Path.home() / ".snaptoy" / "session.json"
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def get(self) -> str | None:
        with self._lock:
            if not self.path.exists():
                return None
            try:
                with open(self.path, encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.error("Failed to read session token: %s", e)
                return None

        token = data.get(SESSION_TOKEN_KEY) if isinstance(data, dict) else None
        return token or None

    def set(self, token: str) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({SESSION_TOKEN_KEY: token}, f)
            os.replace(tmp_path, self.path)

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                logger.error("Failed to clear session token: %s", e)
