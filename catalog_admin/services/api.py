"""Typed read access to the catalog backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .errors import ApiError, SignInError
from .http import AuthorizedClient, read_json
from .models import (
    CategoryRecord,
    ResourceRecord,
    SignInPayload,
    StageRecord,
    StatsSnapshot,
    parse_records,
)


LOGGER = logging.getLogger(__name__)


SIGN_IN_FALLBACK_MESSAGE = "Failed to sign in"


# ----------------------------------------------------------------------
# Response normalization
# ----------------------------------------------------------------------
def unwrap_payload(body: Any) -> Any:
    """Return ``body["data"]`` when the envelope carries one, else *body*."""

    if isinstance(body, Mapping) and body.get("data") is not None:
        return body["data"]
    return body


def normalize_entity_list(body: Any, key: str) -> List[Any]:
    """Return the entity list found in any of the known envelope shapes.

    Accepts a bare list, ``{"data": [...]}``, ``{"data": {key: [...]}}`` and
    ``{key: [...]}``. Anything else yields an empty list.
    """

    payload = unwrap_payload(body)
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        nested = payload.get(key)
        if isinstance(nested, list):
            return nested
    return []


def flatten_avatar_groups(body: Any) -> List[Any]:
    """Flatten ``{gender: {category: [resources]}}`` into one list.

    Order is preserved within every leaf list and groups are visited in the
    order the backend sent them. A bare list passes through unchanged.
    """

    payload = unwrap_payload(body)
    if isinstance(payload, list):
        return payload
    flattened: List[Any] = []
    if not isinstance(payload, Mapping):
        return flattened
    for gender_groups in payload.values():
        if not isinstance(gender_groups, Mapping):
            continue
        for resources in gender_groups.values():
            if isinstance(resources, list):
                flattened.extend(resources)
    return flattened


@dataclass
class SignInResult:
    token: str
    user: Optional[Dict[str, Any]] = None


class CatalogApi:
    """One fetch function per entity family, each returning normalized records."""

    def __init__(self, client: AuthorizedClient) -> None:
        self._client = client

    @property
    def client(self) -> AuthorizedClient:
        return self._client

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def sign_in(self, email: str, password: str) -> SignInResult:
        payload = SignInPayload(email=email, password=password)
        response = self._client.send_unauthenticated(
            "POST",
            "/api/auth/signIn",
            json=payload.to_json(),
        )
        body = read_json(response)
        if not isinstance(body, dict):
            body = {}
        token = body.get("token")
        if not response.is_success or not token:
            message = body.get("message") or body.get("error") or SIGN_IN_FALLBACK_MESSAGE
            LOGGER.info("Sign-in rejected with status %s", response.status_code)
            raise SignInError(str(message))
        user = body.get("user")
        return SignInResult(token=str(token), user=user if isinstance(user, dict) else None)

    # ------------------------------------------------------------------
    # Catalog reads
    # ------------------------------------------------------------------
    def get_stages(self) -> List[StageRecord]:
        body = self._fetch("/api/data/getAllStages", "stages")
        return parse_records(normalize_entity_list(body, "stages"), StageRecord.from_mapping)

    def get_stage(self, stage_id: str) -> Optional[StageRecord]:
        body = self._fetch(f"/api/data/getStageById/{stage_id}", "stage")
        payload = unwrap_payload(body)
        if not isinstance(payload, Mapping):
            return None
        return StageRecord.from_mapping(payload)

    def get_categories_by_stage(self, stage_id: str) -> List[CategoryRecord]:
        body = self._fetch(f"/api/data/getAllDataByStageId/{stage_id}", "categories")
        return parse_records(
            normalize_entity_list(body, "categories"), CategoryRecord.from_mapping
        )

    def get_resources_by_category(self, category_id: str) -> List[ResourceRecord]:
        body = self._fetch(f"/api/data/getAllDataByCategoryId/{category_id}", "resources")
        return parse_records(
            normalize_entity_list(body, "resources"), ResourceRecord.from_mapping
        )

    def get_resource(self, resource_id: str) -> Optional[ResourceRecord]:
        body = self._fetch(f"/api/data/getResourceById/{resource_id}", "resource")
        payload = unwrap_payload(body)
        if not isinstance(payload, Mapping):
            return None
        return ResourceRecord.from_mapping(payload)

    def get_all_avatars(self) -> List[ResourceRecord]:
        body = self._fetch("/api/data/getAllAvatars", "avatars")
        return parse_records(flatten_avatar_groups(body), ResourceRecord.from_mapping)

    def get_all_huggies(self) -> List[ResourceRecord]:
        body = self._fetch("/api/data/getAllHuggies", "huggies")
        return parse_records(normalize_entity_list(body, "resources"), ResourceRecord.from_mapping)

    def get_all_prebuild_avatars(self) -> List[ResourceRecord]:
        body = self._fetch("/api/data/getAllPrebuildAvatars", "prebuild avatars")
        return parse_records(normalize_entity_list(body, "resources"), ResourceRecord.from_mapping)

    def get_stats(self) -> StatsSnapshot:
        body = self._fetch("/api/data/getStats", "stats")
        payload = unwrap_payload(body)
        if not isinstance(payload, Mapping):
            payload = {}
        return StatsSnapshot.from_mapping(payload)

    def _fetch(self, path: str, entity: str) -> Any:
        response: httpx.Response = self._client.get(path)
        if not response.is_success:
            raise ApiError(f"Failed to fetch {entity}", status_code=response.status_code)
        return read_json(response)


__all__ = [
    "CatalogApi",
    "SIGN_IN_FALLBACK_MESSAGE",
    "SignInResult",
    "flatten_avatar_groups",
    "normalize_entity_list",
    "unwrap_payload",
]
