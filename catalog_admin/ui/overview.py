"""Shared helpers for building overview snapshots of the remote catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from ..services.api import CatalogApi
from ..services.models import CategoryRecord, ResourceRecord, ResourceType, StageRecord


RESOURCE_TYPE_LABELS: Dict[str, str] = {
    ResourceType.LEARNING.value: "🎬 Learning videos",
    ResourceType.AVATAR.value: "🧒 Avatars",
    ResourceType.UI.value: "🧩 UI assets",
    ResourceType.HUGGY.value: "🧸 Huggies",
    ResourceType.PREBUILD_AVATAR.value: "🎭 Prebuild avatars",
}


@dataclass
class CategoryOverview:
    record: CategoryRecord
    resources: List[ResourceRecord]


@dataclass
class StageOverview:
    record: StageRecord
    categories: List[CategoryOverview]


@dataclass
class OverviewSnapshot:
    stages: List[StageOverview]
    stage_count: int
    category_count: int
    resource_count: int
    type_totals: Dict[str, int]


def collect_overview(api: CatalogApi) -> OverviewSnapshot:
    """Walk the catalog hierarchy into a convenient snapshot for UIs."""

    stages: List[StageOverview] = []
    category_count = 0
    resource_count = 0
    type_totals = {key: 0 for key in RESOURCE_TYPE_LABELS}

    for stage_record in api.get_stages():
        categories: List[CategoryOverview] = []
        for category_record in api.get_categories_by_stage(stage_record.id):
            category_count += 1
            resources = sorted(
                api.get_resources_by_category(category_record.id),
                key=lambda resource: (resource.order is None, resource.order or 0),
            )
            resource_count += len(resources)
            for resource in resources:
                type_totals[resource.type] = type_totals.get(resource.type, 0) + 1
            categories.append(CategoryOverview(record=category_record, resources=resources))

        stages.append(StageOverview(record=stage_record, categories=categories))

    return OverviewSnapshot(
        stages=stages,
        stage_count=len(stages),
        category_count=category_count,
        resource_count=resource_count,
        type_totals=type_totals,
    )


def describe_resource_type(type_tag: str) -> str:
    return RESOURCE_TYPE_LABELS.get(type_tag, type_tag or "Unknown")


__all__ = [
    "CategoryOverview",
    "OverviewSnapshot",
    "RESOURCE_TYPE_LABELS",
    "StageOverview",
    "collect_overview",
    "describe_resource_type",
]
