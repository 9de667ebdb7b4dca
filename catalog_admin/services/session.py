"""Session token persistence and lifecycle."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from ..config import AppConfig
from .errors import SessionRequiredError


LOGGER = logging.getLogger(__name__)


TOKEN_STORAGE_KEY = "simply-signed-admin-token"
SIGN_IN_ROUTE = "/sign-in"
HOME_ROUTE = "/"


class TokenStore:
    """Persist a single bearer token inside a JSON file."""

    def __init__(self, path: Path, *, key: str = TOKEN_STORAGE_KEY) -> None:
        self._path = path
        self._key = key
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: AppConfig) -> "TokenStore":
        return cls(config.session_file)

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> Optional[str]:
        """Return the stored token, or ``None`` when absent or unreadable."""

        with self._lock:
            payload = self._read()
        token = payload.get(self._key)
        if isinstance(token, str) and token:
            return token
        return None

    def set(self, token: str) -> None:
        with self._lock:
            payload = self._read()
            payload[self._key] = token
            self._write(payload)

    def clear(self) -> None:
        with self._lock:
            payload = self._read()
            if self._key not in payload:
                return
            payload.pop(self._key)
            if payload:
                self._write(payload)
            else:
                try:
                    self._path.unlink()
                except FileNotFoundError:
                    pass

    def _read(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError:
            return {}
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring corrupt session file at %s", self._path)
            return {}
        if not isinstance(payload, dict):
            return {}
        return payload

    def _write(self, payload: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class Navigator(Protocol):
    """Receives navigation requests triggered by session changes."""

    def redirect(self, route: str) -> None:
        """Move the user to *route*."""


class RecordingNavigator:
    """Navigator that remembers requested routes."""

    def __init__(self) -> None:
        self.history: List[str] = []

    @property
    def current(self) -> Optional[str]:
        return self.history[-1] if self.history else None

    def redirect(self, route: str) -> None:
        self.history.append(route)


class SessionContext:
    """Owns the session token lifecycle for one client instance.

    Every piece of code that needs the token or has to tear the session down
    goes through this object instead of touching the store directly.
    """

    def __init__(self, store: TokenStore, navigator: Optional[Navigator] = None) -> None:
        self._store = store
        self._navigator: Navigator = navigator or RecordingNavigator()
        self.user: Optional[Dict[str, Any]] = None

    @property
    def store(self) -> TokenStore:
        return self._store

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    @property
    def token(self) -> Optional[str]:
        return self._store.get()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def start(self, token: str, user: Optional[Mapping[str, Any]] = None) -> None:
        """Persist a freshly issued token and move to the home route."""

        self._store.set(token)
        self.user = dict(user) if user else None
        LOGGER.info("Session started for %s", (user or {}).get("email") or "admin")
        self._navigator.redirect(HOME_ROUTE)

    def end(self) -> None:
        """Sign out explicitly."""

        self._store.clear()
        self.user = None
        LOGGER.info("Session ended")
        self._navigator.redirect(SIGN_IN_ROUTE)

    def handle_unauthorized(self) -> None:
        self._store.clear()
        self.user = None
        LOGGER.warning("Backend rejected the session; signing out")
        self._navigator.redirect(SIGN_IN_ROUTE)

    def require_token(self) -> str:
        token = self.token
        if token is None:
            self._navigator.redirect(SIGN_IN_ROUTE)
            raise SessionRequiredError("Sign in to continue.")
        return token

    def auth_headers(self, base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        headers = dict(base or {})
        token = self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers


__all__ = [
    "HOME_ROUTE",
    "Navigator",
    "RecordingNavigator",
    "SIGN_IN_ROUTE",
    "SessionContext",
    "TOKEN_STORAGE_KEY",
    "TokenStore",
]
