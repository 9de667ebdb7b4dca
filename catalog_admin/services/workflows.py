"""Create, update, delete and upload workflows against the catalog backend."""

from __future__ import annotations

import logging
import mimetypes
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from .errors import MutationError, UploadError
from .events import emit_task_event, emit_upload_event
from .http import AuthorizedClient, error_message, read_json
from .models import (
    DEFAULT_COLOR_CODES,
    CategoryCreatePayload,
    ColorCodes,
    ColorCodesPayload,
    EntityUpdatePayload,
    PathAssetKeys,
    ResourceCreatePayload,
    ResourceType,
    StageCreatePayload,
)


LOGGER = logging.getLogger(__name__)


@dataclass
class UploadFile:
    """A binary asset ready to be sent as a multipart field."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_path(cls, path: Path) -> "UploadFile":
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream",
        )

    def as_multipart(self) -> tuple[str, bytes, str]:
        return (self.filename, self.content, self.content_type)


class EntityKind(str, Enum):
    STAGE = "stage"
    CATEGORY = "category"
    RESOURCE = "resource"


class PathAssetType(str, Enum):
    STATIC = "static"
    DYNAMIC = "dynamic"
    PIVOT = "pivot"


def _uploaded_key(response: httpx.Response, fallback: str) -> str:
    if not response.is_success:
        raise MutationError(error_message(response, fallback), status_code=response.status_code)
    body = read_json(response, default={})
    data = body.get("data") if isinstance(body, dict) else None
    key = data.get("key") if isinstance(data, dict) else None
    if not key:
        raise MutationError(fallback, status_code=response.status_code)
    return str(key)


def _payload_or_error(factory: Callable[..., Any], fallback: str, **values: Any) -> Any:
    try:
        return factory(**values)
    except ValidationError as error:
        LOGGER.debug("Rejected payload for %s: %s", fallback, error)
        raise MutationError(fallback) from error


class CatalogMutations:
    """Stage and category maintenance plus deletion of any catalog entity."""

    def __init__(self, client: AuthorizedClient) -> None:
        self._client = client

    def upload_stage_thumbnail(self, thumbnail: UploadFile) -> str:
        response = self._client.post(
            "/api/upload/stageThumbnail",
            files={"thumbnail": thumbnail.as_multipart()},
        )
        return _uploaded_key(response, "Failed to upload thumbnail")

    def upload_category_thumbnail(self, thumbnail: UploadFile) -> str:
        response = self._client.post(
            "/api/upload/categoryThumbnail",
            files={"thumbnail": thumbnail.as_multipart()},
        )
        return _uploaded_key(response, "Failed to upload thumbnail")

    def upload_path_asset(self, asset: UploadFile, asset_type: PathAssetType) -> str:
        response = self._client.post(
            "/api/upload/pathAsset",
            data={"type": asset_type.value},
            files={"asset": asset.as_multipart()},
        )
        return _uploaded_key(response, "Failed to upload path asset")

    def create_stage(
        self,
        name: str,
        *,
        color_codes: Optional[ColorCodes] = None,
        thumbnail: Optional[UploadFile] = None,
        static_assets: Sequence[UploadFile] = (),
        dynamic_assets: Sequence[UploadFile] = (),
        pivot_assets: Sequence[UploadFile] = (),
    ) -> Dict[str, Any]:
        """Upload the stage's assets in order, then create the stage record.

        The record fields are validated before anything is uploaded, so an
        invalid form never leaves assets behind on the server.
        """

        colors = color_codes or DEFAULT_COLOR_CODES
        payload = _payload_or_error(
            StageCreatePayload,
            "Failed to create stage",
            name=name,
            color_codes=ColorCodesPayload(
                bg=colors.bg, path=colors.path, dotted_path=colors.dotted_path
            ),
        )

        thumbnail_key = self.upload_stage_thumbnail(thumbnail) if thumbnail is not None else ""

        keys = PathAssetKeys()
        for asset_type, assets, bucket in (
            (PathAssetType.STATIC, static_assets, keys.static),
            (PathAssetType.DYNAMIC, dynamic_assets, keys.dynamic),
            (PathAssetType.PIVOT, pivot_assets, keys.pivot),
        ):
            for asset in assets:
                bucket.append(self.upload_path_asset(asset, asset_type))

        payload = payload.model_copy(
            update={"thumbnail_key": thumbnail_key, "path_asset_keys": keys}
        )
        response = self._client.post("/api/upload/stage", json=payload.to_json())
        return self._expect_success(response, "Failed to create stage")

    def create_category(self, name: str, stage_id: str) -> Dict[str, Any]:
        payload = _payload_or_error(
            CategoryCreatePayload, "Failed to create category", name=name, stage=stage_id
        )
        response = self._client.post("/api/upload/category", json=payload.to_json())
        return self._expect_success(response, "Failed to create category")

    def update_stage(
        self, stage_id: str, name: str, *, thumbnail: Optional[UploadFile] = None
    ) -> Dict[str, Any]:
        return self._update(
            EntityKind.STAGE, stage_id, name, thumbnail, self.upload_stage_thumbnail
        )

    def update_category(
        self, category_id: str, name: str, *, thumbnail: Optional[UploadFile] = None
    ) -> Dict[str, Any]:
        return self._update(
            EntityKind.CATEGORY, category_id, name, thumbnail, self.upload_category_thumbnail
        )

    def delete(self, kind: EntityKind, entity_id: str) -> Dict[str, Any]:
        """Delete one entity; backend rule violations surface verbatim."""

        response = self._client.delete(f"/api/upload/{kind.value}/{entity_id}")
        result = self._expect_success(response, f"Failed to delete {kind.value}")
        emit_task_event("deleted", f"Deleted {kind.value}", payload={"id": entity_id})
        return result

    def _update(
        self,
        kind: EntityKind,
        entity_id: str,
        name: str,
        thumbnail: Optional[UploadFile],
        upload_thumbnail: Callable[[UploadFile], str],
    ) -> Dict[str, Any]:
        fallback = f"Failed to update {kind.value}"
        payload = _payload_or_error(EntityUpdatePayload, fallback, name=name)
        if thumbnail is not None:
            payload = payload.model_copy(update={"thumbnail_key": upload_thumbnail(thumbnail)})
        response = self._client.put(
            f"/api/upload/{kind.value}/{entity_id}", json=payload.to_json()
        )
        return self._expect_success(response, fallback)

    @staticmethod
    def _expect_success(response: httpx.Response, fallback: str) -> Dict[str, Any]:
        if not response.is_success:
            message = error_message(response, fallback)
            LOGGER.error("%s (status %s): %s", fallback, response.status_code, message)
            raise MutationError(message, status_code=response.status_code)
        body = read_json(response, default={})
        return body if isinstance(body, dict) else {"data": body}


class UploadStep(str, Enum):
    IDLE = "idle"
    UPLOADING_VIDEO = "uploading-video"
    UPLOADING_THUMBNAIL = "uploading-thumbnail"
    CREATING_RECORD = "creating-record"
    COMPLETE = "complete"


@dataclass
class ResourceForm:
    """Field values of the "new resource" form."""

    name: str = ""
    video: Optional[UploadFile] = None
    thumbnail: Optional[UploadFile] = None
    order: Optional[int] = None
    resource_type: ResourceType = ResourceType.LEARNING
    is_open: bool = False

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def reset(self) -> None:
        self.name = ""
        self.video = None
        self.thumbnail = None
        self.order = None
        self.resource_type = ResourceType.LEARNING


@dataclass
class UploadTarget:
    """Where a new resource lands; names are used to file assets server-side."""

    category_id: str
    category_name: str = ""
    stage_name: str = ""


StepCallback = Callable[[UploadStep], None]


@dataclass
class ResourceUploadWorkflow:
    """Upload video, then thumbnail, then create the resource record.

    The form is validated before the first upload. Steps run strictly one
    after another and are skipped when the matching file is missing. A
    failing step aborts the rest and returns the workflow to ``idle``; assets
    already uploaded by that attempt stay on the server.
    """

    client: AuthorizedClient
    on_step: Optional[StepCallback] = None
    on_complete: Optional[Callable[[], None]] = None
    step: UploadStep = UploadStep.IDLE
    history: List[UploadStep] = field(default_factory=list)

    def submit(self, form: ResourceForm, target: UploadTarget) -> Dict[str, Any]:
        self.history = []
        self._enter(UploadStep.IDLE)
        start = time.perf_counter()
        try:
            result = self._run(form, target)
        except (MutationError, httpx.HTTPError) as error:
            self._enter(UploadStep.IDLE)
            LOGGER.error("Resource upload failed: %s", error)
            if isinstance(error, UploadError):
                raise
            status_code = getattr(error, "status_code", None)
            raise UploadError(str(error) or "Error creating resource", status_code=status_code) from error

        emit_task_event(
            "completed",
            "Resource created",
            payload={"name": form.name, "category": target.category_id},
            duration_ms=(time.perf_counter() - start) * 1000.0,
        )
        form.reset()
        form.close()
        if self.on_complete is not None:
            self.on_complete()
        return result

    def _run(self, form: ResourceForm, target: UploadTarget) -> Dict[str, Any]:
        payload = _payload_or_error(
            ResourceCreatePayload,
            "Failed to create resource",
            name=form.name,
            type=form.resource_type.value,
            category=target.category_id,
            order=form.order,
        )
        video_key = ""
        thumbnail_key = ""
        names = {"stage": target.stage_name, "category": target.category_name}

        if form.video is not None:
            self._enter(UploadStep.UPLOADING_VIDEO)
            response = self.client.post(
                "/api/upload/video",
                data=names,
                files={"video": form.video.as_multipart()},
            )
            video_key = self._key_or_raise(response, "Failed to upload video")

        if form.thumbnail is not None:
            self._enter(UploadStep.UPLOADING_THUMBNAIL)
            response = self.client.post(
                "/api/upload/thumbnail",
                data=names,
                files={"thumbnail": form.thumbnail.as_multipart()},
            )
            thumbnail_key = self._key_or_raise(response, "Failed to upload thumbnail")

        self._enter(UploadStep.CREATING_RECORD)
        payload = payload.model_copy(
            update={"video_key": video_key, "thumbnail_key": thumbnail_key}
        )
        response = self.client.post("/api/upload/resource", json=payload.to_json())
        if not response.is_success:
            raise UploadError(
                error_message(response, "Failed to create resource"),
                status_code=response.status_code,
            )
        body = read_json(response, default={})

        self._enter(UploadStep.COMPLETE)
        return body if isinstance(body, dict) else {"data": body}

    @staticmethod
    def _key_or_raise(response: httpx.Response, fallback: str) -> str:
        try:
            return _uploaded_key(response, fallback)
        except MutationError as error:
            raise UploadError(str(error), status_code=error.status_code) from error

    def _enter(self, step: UploadStep) -> None:
        self.step = step
        self.history.append(step)
        emit_upload_event(step)
        if self.on_step is not None:
            self.on_step(step)


__all__ = [
    "CatalogMutations",
    "EntityKind",
    "PathAssetType",
    "ResourceForm",
    "ResourceUploadWorkflow",
    "UploadFile",
    "UploadStep",
    "UploadTarget",
]
