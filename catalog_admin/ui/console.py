"""Plain console rendering of the catalog hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..services.api import CatalogApi
from ..services.models import ResourceRecord
from .overview import CategoryOverview, StageOverview, collect_overview, describe_resource_type


@dataclass
class ConsoleSection:
    title: str
    entries: Iterable[str]


class ConsoleUI:
    """Minimal console UI that lists stages, categories and resources."""

    def __init__(self, api: CatalogApi) -> None:
        self._api = api

    def run(self) -> None:
        """Render the current stage/category/resource hierarchy to stdout."""

        print("Catalog Admin – Console Overview")
        print("=" * 40)
        snapshot = collect_overview(self._api)
        if not snapshot.stages:
            print("(no stages)")
            return
        for section in self._build_sections(snapshot.stages):
            print(section.title)
            print("-" * len(section.title))
            has_entries = False
            for entry in section.entries:
                has_entries = True
                print(entry)
            if not has_entries:
                print("(empty)")
            print()

    def _build_sections(self, stages: Iterable[StageOverview]) -> Iterable[ConsoleSection]:
        for stage in stages:
            yield ConsoleSection(
                title=f"Stage: {stage.record.name}",
                entries=self._format_categories(stage),
            )

    def _format_categories(self, stage: StageOverview) -> Iterable[str]:
        if not stage.categories:
            yield "  No categories registered"
            return

        for category in stage.categories:
            yield from self._format_category_details(category)

    def _format_category_details(self, category: CategoryOverview) -> Iterable[str]:
        header = f"  Category: {category.record.name}"
        if not category.resources:
            yield f"{header} (no resources)"
            return

        yield header
        for resource in category.resources:
            yield f"    Resource: {resource.name}" + self._format_resource_meta(resource)

    @staticmethod
    def _format_resource_meta(resource: ResourceRecord) -> str:
        parts = [describe_resource_type(resource.type)]
        if resource.order is not None:
            parts.append(f"order {resource.order}")
        if resource.url:
            parts.append("media")
        if resource.thumbnail:
            parts.append("thumbnail")
        return " (" + ", ".join(parts) + ")"


__all__ = ["ConsoleUI"]
