from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

pytest.importorskip("fastapi")

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile as StarletteUploadFile

from catalog_admin.config import AppConfig
from catalog_admin.services.api import CatalogApi
from catalog_admin.services.http import AuthorizedClient
from catalog_admin.services.session import RecordingNavigator, SessionContext, TokenStore


BASE_URL = "http://testserver"

UPLOAD_ENDPOINTS = {
    "/api/upload/video": "video",
    "/api/upload/thumbnail": "thumbnail",
    "/api/upload/stageThumbnail": "stage-thumbnail",
    "/api/upload/categoryThumbnail": "category-thumbnail",
    "/api/upload/pathAsset": "path-asset",
}


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: Dict[str, str]
    json: Any = None
    form: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, str] = field(default_factory=dict)


Reply = Tuple[int, Any]
Handler = Union[Reply, Callable[[RecordedRequest], Reply]]


class FakeBackend:
    """In-process stand-in for the catalog REST API."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[RecordedRequest] = []
        self._upload_counter = 0
        self.app = FastAPI()

        @self.app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
        async def dispatch(path: str, request: Request) -> Response:
            return await self._handle(request, "/" + path)

    def reply(self, method: str, path: str, status: int, body: Any = None) -> None:
        self.routes[(method.upper(), path)] = (status, body)

    def on(self, method: str, path: str, handler: Callable[[RecordedRequest], Reply]) -> None:
        self.routes[(method.upper(), path)] = handler

    def requests_to(self, path: str) -> List[RecordedRequest]:
        return [request for request in self.requests if request.path == path]

    @property
    def paths(self) -> List[str]:
        return [f"{request.method} {request.path}" for request in self.requests]

    async def _handle(self, request: Request, path: str) -> Response:
        recorded = RecordedRequest(
            method=request.method,
            path=path,
            headers={key.lower(): value for key, value in request.headers.items()},
        )
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("multipart/form-data"):
            form = await request.form()
            for key, value in form.multi_items():
                if isinstance(value, StarletteUploadFile):
                    recorded.files[key] = value.filename or ""
                else:
                    recorded.form[key] = str(value)
        else:
            raw = await request.body()
            if raw:
                recorded.json = await request.json()
        self.requests.append(recorded)

        handler = self.routes.get((request.method, path))
        if handler is None and request.method == "POST" and path in UPLOAD_ENDPOINTS:
            self._upload_counter += 1
            handler = (200, {"data": {"key": f"{UPLOAD_ENDPOINTS[path]}-key-{self._upload_counter}"}})
        if handler is None:
            handler = (404, {"message": f"No route for {request.method} {path}"})
        status, body = handler(recorded) if callable(handler) else handler
        if isinstance(body, str):
            return PlainTextResponse(body, status_code=status)
        return JSONResponse(body, status_code=status)


@pytest.fixture()
def temp_config(tmp_path: Path) -> AppConfig:
    return AppConfig.from_mapping(
        {"storage_root": "storage", "api_base_url": BASE_URL},
        base_path=tmp_path,
        environ={},
    )


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture()
def token_store(temp_config: AppConfig) -> TokenStore:
    return TokenStore.from_config(temp_config)


@pytest.fixture()
def session(token_store: TokenStore, navigator: RecordingNavigator) -> SessionContext:
    return SessionContext(token_store, navigator=navigator)


@pytest.fixture()
def signed_in(session: SessionContext) -> SessionContext:
    session.store.set("admin-token")
    return session


@pytest.fixture()
def client(temp_config: AppConfig, session: SessionContext, backend: FakeBackend) -> AuthorizedClient:
    return AuthorizedClient.from_config(temp_config, session, http_client=TestClient(backend.app))


@pytest.fixture()
def api(client: AuthorizedClient) -> CatalogApi:
    return CatalogApi(client)

