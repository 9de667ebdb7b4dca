"""Domain records for the learning-content catalog and request payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResourceType(str, Enum):
    LEARNING = "learning"
    AVATAR = "avatar"
    UI = "ui"
    HUGGY = "huggy"
    PREBUILD_AVATAR = "prebuildAvatar"


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text or None


def _entity_id(mapping: Mapping[str, Any]) -> Optional[str]:
    raw = mapping.get("_id", mapping.get("id"))
    return _optional_str(raw)


def _reference_id(value: Any) -> Optional[str]:
    # References arrive either as plain ids or as populated documents.
    if isinstance(value, Mapping):
        return _entity_id(value)
    return _optional_str(value)


@dataclass
class ColorCodes:
    bg: str
    path: str
    dotted_path: str

    @classmethod
    def from_mapping(cls, mapping: Any) -> Optional["ColorCodes"]:
        if not isinstance(mapping, Mapping):
            return None
        return cls(
            bg=str(mapping.get("bg") or ""),
            path=str(mapping.get("path") or ""),
            dotted_path=str(mapping.get("dottedPath") or ""),
        )

    def to_payload(self) -> Dict[str, str]:
        return {"bg": self.bg, "path": self.path, "dottedPath": self.dotted_path}


DEFAULT_COLOR_CODES = ColorCodes(bg="#e6f9ff", path="#b6ebff", dotted_path="#2384b7")


@dataclass
class StageRecord:
    id: str
    name: str
    thumbnail: Optional[str] = None
    color_codes: Optional[ColorCodes] = None
    path_assets: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Optional["StageRecord"]:
        entity_id = _entity_id(mapping)
        if entity_id is None:
            return None
        path_assets: Dict[str, List[str]] = {}
        raw_assets = mapping.get("pathAssets")
        if isinstance(raw_assets, Mapping):
            for name, urls in raw_assets.items():
                if isinstance(urls, list):
                    path_assets[str(name)] = [str(url) for url in urls]
        return cls(
            id=entity_id,
            name=str(mapping.get("name") or ""),
            thumbnail=_optional_str(mapping.get("thumbnail")),
            color_codes=ColorCodes.from_mapping(mapping.get("colorCodes")),
            path_assets=path_assets,
        )


@dataclass
class CategoryRecord:
    id: str
    name: str
    stage_id: Optional[str] = None
    thumbnail: Optional[str] = None
    color_codes: Optional[ColorCodes] = None
    path_data: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Optional["CategoryRecord"]:
        entity_id = _entity_id(mapping)
        if entity_id is None:
            return None
        path_data: Dict[str, Dict[str, List[str]]] = {}
        raw_path_data = mapping.get("pathData")
        if isinstance(raw_path_data, Mapping):
            for outer, inner in raw_path_data.items():
                if not isinstance(inner, Mapping):
                    continue
                path_data[str(outer)] = {
                    str(name): [str(url) for url in urls]
                    for name, urls in inner.items()
                    if isinstance(urls, list)
                }
        return cls(
            id=entity_id,
            name=str(mapping.get("name") or ""),
            stage_id=_reference_id(mapping.get("stage")),
            thumbnail=_optional_str(mapping.get("thumbnail")),
            color_codes=ColorCodes.from_mapping(mapping.get("colorCodes")),
            path_data=path_data,
        )


@dataclass
class ResourceRecord:
    id: str
    name: str
    type: str
    url: Optional[str] = None
    thumbnail: Optional[str] = None
    category_id: Optional[str] = None
    order: Optional[int] = None

    @property
    def resource_type(self) -> Optional[ResourceType]:
        try:
            return ResourceType(self.type)
        except ValueError:
            return None

    @property
    def is_video(self) -> bool:
        return bool(self.url) and self.url.lower().split("?", 1)[0].endswith((".mp4", ".webm", ".mov"))

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Optional["ResourceRecord"]:
        entity_id = _entity_id(mapping)
        if entity_id is None:
            return None
        order: Optional[int]
        try:
            order = int(mapping["order"]) if mapping.get("order") is not None else None
        except (TypeError, ValueError):
            order = None
        return cls(
            id=entity_id,
            name=str(mapping.get("name") or ""),
            type=str(mapping.get("type") or ""),
            url=_optional_str(mapping.get("url")),
            thumbnail=_optional_str(mapping.get("thumbnail")),
            category_id=_reference_id(mapping.get("category")),
            order=order,
        )


GENDER_LABELS: Dict[str, str] = {"boy": "Boy", "girl": "Girl", "huggy": "Huggy"}


@dataclass
class DistributionBucket:
    key: Optional[str]
    count: int


@dataclass
class StatsSnapshot:
    total_users: int = 0
    total_resources: int = 0
    gender_distribution: List[DistributionBucket] = field(default_factory=list)
    age_distribution: List[DistributionBucket] = field(default_factory=list)
    avg_progress_per_user: float = 0.0
    total_progress: Optional[float] = None

    @property
    def completion_rate(self) -> float:
        """Average progress per user as a percentage of all resources."""

        if self.total_resources <= 0:
            return 0.0
        return self.avg_progress_per_user / self.total_resources * 100.0

    def gender_breakdown(self) -> List[tuple[str, int]]:
        return [
            (GENDER_LABELS.get(bucket.key or "", "Unknown"), bucket.count)
            for bucket in self.gender_distribution
        ]

    def age_breakdown(self) -> List[tuple[str, int]]:
        return [
            (f"Age {bucket.key}", bucket.count)
            for bucket in self.age_distribution
            if bucket.key
        ]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "StatsSnapshot":
        progress = mapping.get("progressStats")
        if not isinstance(progress, Mapping):
            progress = {}
        total_progress = progress.get("totalProgress")
        return cls(
            total_users=_as_int(mapping.get("totalUsers")),
            total_resources=_as_int(mapping.get("totalResources")),
            gender_distribution=_buckets(mapping.get("genderDistribution")),
            age_distribution=_buckets(mapping.get("ageDistribution")),
            avg_progress_per_user=_as_float(progress.get("avgProgressPerUser")),
            total_progress=_as_float(total_progress) if total_progress is not None else None,
        )


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _buckets(raw: Any) -> List[DistributionBucket]:
    if not isinstance(raw, list):
        return []
    buckets: List[DistributionBucket] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        key = entry.get("_id")
        buckets.append(
            DistributionBucket(
                key=str(key) if key is not None else None,
                count=_as_int(entry.get("count")),
            )
        )
    return buckets


def parse_records(entries: Iterable[Any], factory) -> List[Any]:
    """Build records from raw mappings, skipping entries without an id."""

    records: List[Any] = []
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        record = factory(entry)
        if record is not None:
            records.append(record)
    return records


# ----------------------------------------------------------------------
# Request payloads
# ----------------------------------------------------------------------
class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SignInPayload(_Payload):
    email: str
    password: str


class ColorCodesPayload(_Payload):
    bg: str
    path: str
    dotted_path: str = Field(..., alias="dottedPath")


class PathAssetKeys(_Payload):
    static: List[str] = Field(default_factory=list)
    dynamic: List[str] = Field(default_factory=list)
    pivot: List[str] = Field(default_factory=list)


class StageCreatePayload(_Payload):
    name: str = Field(..., min_length=1)
    color_codes: ColorCodesPayload = Field(..., alias="colorCodes")
    thumbnail_key: str = Field("", alias="thumbnailKey")
    path_asset_keys: PathAssetKeys = Field(default_factory=PathAssetKeys, alias="pathAssetKeys")


class CategoryCreatePayload(_Payload):
    name: str = Field(..., min_length=1)
    stage: str = Field(..., min_length=1)


class EntityUpdatePayload(_Payload):
    name: str = Field(..., min_length=1)
    thumbnail_key: Optional[str] = Field(None, alias="thumbnailKey")


class ResourceCreatePayload(_Payload):
    name: str = Field(..., min_length=1)
    type: str = ResourceType.LEARNING.value
    category: str = Field(..., min_length=1)
    video_key: str = Field("", alias="videoKey")
    thumbnail_key: str = Field("", alias="thumbnailKey")
    order: Optional[int] = None


__all__ = [
    "CategoryCreatePayload",
    "CategoryRecord",
    "ColorCodes",
    "ColorCodesPayload",
    "DEFAULT_COLOR_CODES",
    "DistributionBucket",
    "EntityUpdatePayload",
    "GENDER_LABELS",
    "PathAssetKeys",
    "ResourceCreatePayload",
    "ResourceRecord",
    "ResourceType",
    "SignInPayload",
    "StageCreatePayload",
    "StageRecord",
    "StatsSnapshot",
    "parse_records",
]
