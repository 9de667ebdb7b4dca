"""Authorized HTTP access to the catalog backend."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from ..config import AppConfig
from .events import emit_http_event
from .session import SessionContext


LOGGER = logging.getLogger(__name__)


UNAUTHORIZED_STATUSES = frozenset({401, 403})


class AuthorizedClient:
    """Send requests with the session bearer token attached.

    Any 401 or 403 answer tears the session down before the response is handed
    back; callers still inspect the status themselves.
    """

    def __init__(
        self,
        session: SessionContext,
        *,
        base_url: str,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        session: SessionContext,
        *,
        http_client: Optional[httpx.Client] = None,
    ) -> "AuthorizedClient":
        return cls(
            session,
            base_url=config.api_base_url,
            http_client=http_client,
            timeout=config.request_timeout,
        )

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def http(self) -> httpx.Client:
        return self._http

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def send_unauthenticated(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Issue a request without session handling, e.g. for signing in."""

        return self._send(method, path, authorized=False, **kwargs)

    def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self._send(method, path, authorized=True, **kwargs)
        if response.status_code in UNAUTHORIZED_STATUSES:
            self._session.handle_unauthorized()
        return response

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return self.request("DELETE", path, **kwargs)

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> "AuthorizedClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _send(self, method: str, path: str, *, authorized: bool, **kwargs: Any) -> httpx.Response:
        headers = kwargs.pop("headers", None)
        if authorized:
            headers = self._session.auth_headers(headers)
        start = time.perf_counter()
        try:
            response = self._http.request(method, self.url(path), headers=headers, **kwargs)
        except httpx.HTTPError as error:
            duration_ms = (time.perf_counter() - start) * 1000.0
            emit_http_event(
                method,
                path,
                payload={"status": "error", "error": f"{error.__class__.__name__}: {error}"},
                duration_ms=duration_ms,
                level=logging.ERROR,
            )
            raise
        duration_ms = (time.perf_counter() - start) * 1000.0
        emit_http_event(
            method,
            path,
            payload={"status": response.status_code, "authorized": authorized},
            duration_ms=duration_ms,
        )
        return response


def read_json(response: httpx.Response, default: Any = None) -> Any:
    """Return the decoded JSON body, or *default* when it is not JSON."""

    try:
        return response.json()
    except ValueError:
        return default


def error_message(response: httpx.Response, fallback: str) -> str:
    """Extract the backend's ``message`` field from an error response."""

    body = read_json(response)
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message
    return fallback


__all__ = ["AuthorizedClient", "UNAUTHORIZED_STATUSES", "error_message", "read_json"]
