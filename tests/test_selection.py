from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from catalog_admin.services.errors import ApiError, SelectionError
from catalog_admin.services.models import CategoryRecord, ResourceRecord, StageRecord
from catalog_admin.services.selection import (
    LearningBrowser,
    LevelState,
    ResourceBrowser,
    ResourceView,
    SelectionLevel,
    ViewMode,
    filter_entries,
    matches_search,
)


def stage(stage_id: str, name: str) -> StageRecord:
    return StageRecord(id=stage_id, name=name)


def category(category_id: str, name: str) -> CategoryRecord:
    return CategoryRecord(id=category_id, name=name)


def resource(resource_id: str, name: str, kind: str = "learning") -> ResourceRecord:
    return ResourceRecord(id=resource_id, name=name, type=kind)


class StubCatalogApi:
    """Serves canned records; a value may be an exception to raise instead."""

    def __init__(
        self,
        stages: Any = (),
        categories: Optional[Dict[str, Any]] = None,
        resources: Optional[Dict[str, Any]] = None,
        avatars: Any = (),
        prebuild: Any = (),
        huggies: Any = (),
    ) -> None:
        self.stages = stages
        self.categories = categories or {}
        self.resources = resources or {}
        self.avatars = avatars
        self.prebuild = prebuild
        self.huggies = huggies
        self.hooks: Dict[str, Callable[[], None]] = {}
        self.calls: List[str] = []

    def _answer(self, key: str, value: Any) -> List[Any]:
        self.calls.append(key)
        hook = self.hooks.pop(key, None)
        if hook is not None:
            hook()
        if isinstance(value, Exception):
            raise value
        return list(value)

    def get_stages(self) -> List[StageRecord]:
        return self._answer("stages", self.stages)

    def get_categories_by_stage(self, stage_id: str) -> List[CategoryRecord]:
        return self._answer(f"categories:{stage_id}", self.categories.get(stage_id, []))

    def get_resources_by_category(self, category_id: str) -> List[ResourceRecord]:
        return self._answer(f"resources:{category_id}", self.resources.get(category_id, []))

    def get_all_avatars(self) -> List[ResourceRecord]:
        return self._answer("avatars", self.avatars)

    def get_all_prebuild_avatars(self) -> List[ResourceRecord]:
        return self._answer("prebuild", self.prebuild)

    def get_all_huggies(self) -> List[ResourceRecord]:
        return self._answer("huggies", self.huggies)


@pytest.fixture()
def catalog() -> StubCatalogApi:
    return StubCatalogApi(
        stages=[stage("s1", "Toddlers"), stage("s2", "Preschool"), stage("s3", "Kindergarten")],
        categories={
            "s1": [category("c1", "Shapes")],
            "s2": [],
            "s3": [category("c3", "Colors"), category("c4", "Numbers")],
        },
        resources={
            "c1": [resource("r1", "Circle"), resource("r2", "Square")],
            "c3": [resource("r3", "Red")],
            "c4": [],
        },
    )


# ----------------------------------------------------------------------
# Search
# ----------------------------------------------------------------------
def test_search_matches_name_or_id_case_insensitively() -> None:
    entries = [category("c1", "Colors"), category("c2", "Shapes")]

    assert filter_entries(entries, "sha") == [entries[1]]
    assert filter_entries(entries, "C1") == [entries[0]]
    assert filter_entries(entries, "   ") == entries
    assert matches_search(entries[0], "")


def test_set_search_filters_without_touching_selection(catalog: StubCatalogApi) -> None:
    catalog.categories["s1"] = [category("c1", "Colors"), category("c2", "Shapes")]
    browser = LearningBrowser(catalog)
    browser.load_stages()
    calls_before = list(catalog.calls)

    visible = browser.set_search(browser.categories, "sha")

    assert [entry.id for entry in visible] == ["c2"]
    assert browser.categories.selected_id == "c1"
    assert catalog.calls == calls_before


# ----------------------------------------------------------------------
# Cascading selection
# ----------------------------------------------------------------------
def test_initial_load_auto_selects_down_the_hierarchy(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)

    browser.load_stages()

    assert browser.stages.selected_id == "s1"
    assert browser.categories.selected_id == "c1"
    assert browser.selected_category is not None
    assert browser.selected_category.name == "Shapes"
    assert [entry.id for entry in browser.resource_list] == ["r1", "r2"]
    assert browser.categories.state is LevelState.LOADED
    assert catalog.calls == ["stages", "categories:s1", "resources:c1"]


def test_switching_to_stage_without_categories_clears_children(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()

    browser.select_stage("s2")

    assert browser.stages.selected_id == "s2"
    assert browser.categories.selected_id == ""
    assert browser.categories.items == []
    assert browser.categories.state is LevelState.EMPTY
    assert browser.resource_list == []
    assert browser.resources.state is LevelState.NO_SELECTION


def test_selecting_stage_clears_category_search(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    browser.set_search(browser.categories, "sha")

    browser.select_stage("s3")

    assert browser.categories.search_term == ""
    assert browser.categories.selected_id == "c3"
    assert [entry.id for entry in browser.resource_list] == ["r3"]


def test_empty_stage_list_clears_selection_and_dependents(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    catalog.stages = []

    browser.reload_stages()

    assert browser.stages.state is LevelState.EMPTY
    assert browser.stages.selected_id == ""
    assert browser.selected_stage is None
    assert browser.categories.state is LevelState.NO_SELECTION
    assert browser.categories.items == []
    assert browser.resources.state is LevelState.NO_SELECTION
    assert browser.resource_list == []


def test_selecting_the_current_stage_does_not_refetch(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    calls_before = len(catalog.calls)

    browser.select_stage("s1")

    assert len(catalog.calls) == calls_before


def test_selecting_unknown_entry_is_rejected(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()

    with pytest.raises(SelectionError):
        browser.select_category("missing")

    assert browser.categories.selected_id == "c1"


def test_reload_keeps_valid_selection(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    browser.select_stage("s3")
    browser.select_category("c4")

    browser.reload_categories()

    assert browser.categories.selected_id == "c4"
    assert browser.resources.state is LevelState.EMPTY


def test_reload_falls_back_to_first_entry_when_selection_vanishes(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    browser.select_stage("s3")
    browser.select_category("c4")
    catalog.categories["s3"] = [category("c3", "Colors")]

    browser.reload_categories()

    assert browser.categories.selected_id == "c3"
    assert [entry.id for entry in browser.resource_list] == ["r3"]


# ----------------------------------------------------------------------
# Failures and stale responses
# ----------------------------------------------------------------------
def test_stage_failure_resets_dependent_levels(catalog: StubCatalogApi) -> None:
    catalog.stages = ApiError("Failed to fetch stages", status_code=500)
    browser = LearningBrowser(catalog)

    browser.load_stages()

    assert browser.stages.state is LevelState.ERROR
    assert browser.stages.error == "Failed to load stages"
    assert browser.stages.items == []
    assert browser.categories.state is LevelState.NO_SELECTION
    assert browser.resources.state is LevelState.NO_SELECTION
    assert catalog.calls == ["stages"]


def test_category_failure_clears_resources(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    catalog.categories["s3"] = ApiError("Failed to fetch categories", status_code=500)

    browser.select_stage("s3")

    assert browser.stages.selected_id == "s3"
    assert browser.categories.state is LevelState.ERROR
    assert browser.categories.error == "Failed to load categories"
    assert browser.resource_list == []


def test_stale_category_response_is_discarded(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    # While the s2 request is in flight the user moves on to s3.
    catalog.categories["s2"] = [category("c9", "Late")]
    catalog.hooks["categories:s2"] = lambda: browser.select_stage("s3")

    browser.select_stage("s2")

    assert browser.stages.selected_id == "s3"
    assert [entry.id for entry in browser.categories.items] == ["c3", "c4"]
    assert browser.categories.selected_id == "c3"
    assert [entry.id for entry in browser.resource_list] == ["r3"]


def test_resource_load_is_cancelled_when_categories_become_empty(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()

    def empty_the_stage() -> None:
        catalog.categories["s1"] = []
        browser.reload_categories()

    catalog.hooks["resources:c1"] = empty_the_stage

    browser.reload_resources()

    assert browser.categories.state is LevelState.EMPTY
    assert browser.resource_list == []
    assert browser.resources.loading is False
    assert browser.resources.state is LevelState.NO_SELECTION


def test_stale_failure_does_not_mark_current_level_as_failed(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    catalog.categories["s2"] = ApiError("Failed to fetch categories", status_code=500)
    catalog.hooks["categories:s2"] = lambda: browser.select_stage("s3")

    browser.select_stage("s2")

    assert browser.categories.state is LevelState.LOADED
    assert browser.categories.error is None


# ----------------------------------------------------------------------
# Preserve vs clear during reloads
# ----------------------------------------------------------------------
def test_learning_browser_keeps_resources_visible_while_reloading(catalog: StubCatalogApi) -> None:
    browser = LearningBrowser(catalog)
    browser.load_stages()
    seen: List[List[str]] = []
    catalog.hooks["resources:c1"] = lambda: seen.append([entry.id for entry in browser.resource_list])

    browser.reload_resources()

    assert seen == [["r1", "r2"]]
    assert browser.resources.loading is False


def test_resource_browser_clears_resources_while_reloading(catalog: StubCatalogApi) -> None:
    browser = ResourceBrowser(catalog, ResourceView.category())
    browser.load_stages()
    seen: List[List[str]] = []
    catalog.hooks["resources:c1"] = lambda: seen.append([entry.id for entry in browser.resource_list])

    browser.reload_resources()

    assert seen == [[]]
    assert [entry.id for entry in browser.resource_list] == ["r1", "r2"]


def test_selection_level_begin_load_bumps_generation() -> None:
    level = SelectionLevel("stages")
    level.items = [stage("s1", "Toddlers")]
    level.selected_id = "s1"

    first = level.begin_load(preserve=False)
    second = level.begin_load(preserve=False)

    assert second == first + 1
    assert not level.is_current(first)
    assert level.items == []
    assert level.selected_id == ""


# ----------------------------------------------------------------------
# Resource views
# ----------------------------------------------------------------------
def test_resource_browser_defaults_to_avatars(catalog: StubCatalogApi) -> None:
    catalog.avatars = [resource("a1", "Hair", "avatar")]
    browser = ResourceBrowser(catalog)

    browser.load_stages()
    browser.reload_resources()

    assert browser.view.mode is ViewMode.AVATARS
    assert "resources:c1" not in catalog.calls
    assert [entry.id for entry in browser.resource_list] == ["a1"]


def test_switching_views_loads_the_matching_dataset(catalog: StubCatalogApi) -> None:
    catalog.huggies = [resource("h1", "Bear", "huggy")]
    browser = ResourceBrowser(catalog)
    browser.load_stages()

    browser.set_view(ResourceView.huggies())
    assert [entry.id for entry in browser.resource_list] == ["h1"]

    browser.set_view(ResourceView.category())
    assert browser.view == ResourceView.category("c1")
    assert [entry.id for entry in browser.resource_list] == ["r1", "r2"]


def test_leaving_category_view_clears_search_terms(catalog: StubCatalogApi) -> None:
    browser = ResourceBrowser(catalog, ResourceView.category())
    browser.load_stages()
    browser.set_search(browser.stages, "tod")
    browser.set_search(browser.categories, "sha")

    browser.set_view(ResourceView.prebuild())

    assert browser.stages.search_term == ""
    assert browser.categories.search_term == ""
    assert "prebuild" in catalog.calls


def test_category_view_follows_category_selection(catalog: StubCatalogApi) -> None:
    browser = ResourceBrowser(catalog, ResourceView.category())
    browser.load_stages()
    browser.select_stage("s3")

    browser.select_category("c4")

    assert browser.view == ResourceView.category("c4")
    assert browser.resources.state is LevelState.EMPTY


@pytest.mark.parametrize(
    "view, expected",
    [
        (ResourceView.avatars(), "No avatars are available at the moment."),
        (ResourceView.prebuild(), "No prebuild avatars are available yet."),
        (ResourceView.huggies(), "No huggies are available yet."),
        (ResourceView.category(), "Select a stage to browse learning resources."),
    ],
)
def test_empty_messages_per_view(view: ResourceView, expected: str) -> None:
    browser = ResourceBrowser(StubCatalogApi(), view)

    assert browser.empty_message() == expected


def test_empty_message_for_category_without_resources(catalog: StubCatalogApi) -> None:
    browser = ResourceBrowser(catalog, ResourceView.category())
    browser.load_stages()
    browser.select_stage("s2")

    assert browser.empty_message() == "Select a category to view its learning resources."

    browser.select_stage("s3")
    browser.select_category("c4")

    assert browser.empty_message() == "No learning resources found for this category yet."
