"""Cascading stage → category → resource selection with dependent loading."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import httpx

from .api import CatalogApi
from .errors import CatalogAdminError, SelectionError
from .models import CategoryRecord, ResourceRecord, StageRecord


LOGGER = logging.getLogger(__name__)


class LevelState(str, Enum):
    NO_SELECTION = "no-selection"
    LOADING = "loading"
    LOADED = "loaded-with-selection"
    EMPTY = "loaded-empty"
    ERROR = "error"


def matches_search(entry: Any, term: str) -> bool:
    """Case-insensitive substring match against an entry's name and id."""

    if not term.strip():
        return True
    haystack = f"{getattr(entry, 'name', '')} {getattr(entry, 'id', '')}".lower()
    return term.lower() in haystack


def filter_entries(entries: Sequence[Any], term: str) -> List[Any]:
    if not term.strip():
        return list(entries)
    return [entry for entry in entries if matches_search(entry, term)]


@dataclass
class SelectionLevel:
    """State of one hierarchy level.

    ``generation`` increases with every load and every reset; a response is
    applied only while its generation is still the current one.
    """

    label: str
    auto_select: bool = True
    items: List[Any] = field(default_factory=list)
    selected_id: str = ""
    state: LevelState = LevelState.NO_SELECTION
    loading: bool = False
    error: Optional[str] = None
    search_term: str = ""
    generation: int = 0
    _remembered_id: str = ""

    @property
    def filtered(self) -> List[Any]:
        return filter_entries(self.items, self.search_term)

    @property
    def selected(self) -> Optional[Any]:
        for entry in self.items:
            if entry.id == self.selected_id:
                return entry
        return None

    def contains(self, entry_id: str) -> bool:
        return any(entry.id == entry_id for entry in self.items)

    def begin_load(self, *, preserve: bool) -> int:
        self.generation += 1
        self._remembered_id = self.selected_id
        self.loading = True
        self.error = None
        self.state = LevelState.LOADING
        if not preserve:
            self.items = []
            self.selected_id = ""
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def finish(self, items: Sequence[Any]) -> bool:
        """Apply loaded *items*; return ``True`` when the selection changed."""

        previous = self._remembered_id
        self.items = list(items)
        self.loading = False
        self.error = None
        if not self.items:
            self.selected_id = ""
            self.state = LevelState.EMPTY
            return previous != ""
        if self.auto_select:
            if previous and self.contains(previous):
                self.selected_id = previous
            else:
                self.selected_id = self.items[0].id
        self.state = LevelState.LOADED
        return self.selected_id != previous

    def fail(self, message: str) -> None:
        self.items = []
        self.selected_id = ""
        self.loading = False
        self.error = message
        self.state = LevelState.ERROR

    def reset(self) -> None:
        self.generation += 1
        self.items = []
        self.selected_id = ""
        self._remembered_id = ""
        self.loading = False
        self.error = None
        self.state = LevelState.NO_SELECTION

    def select(self, entry_id: str) -> bool:
        if not self.contains(entry_id):
            raise SelectionError(f"'{entry_id}' is not among the loaded {self.label}")
        changed = entry_id != self.selected_id
        self.selected_id = entry_id
        self._remembered_id = entry_id
        self.state = LevelState.LOADED
        return changed


class CatalogBrowser:
    """Keep stages, their categories and the selected category's resources in sync.

    The learning view keeps the previous child list visible while a reload is
    running; see :class:`ResourceBrowser` for the variant that clears it.
    """

    preserve_children_on_reload = True

    def __init__(self, api: CatalogApi) -> None:
        self._api = api
        self._lock = threading.RLock()
        self.stages = SelectionLevel("stages")
        self.categories = SelectionLevel("categories")
        self.resources = SelectionLevel("resources", auto_select=False)

    @property
    def api(self) -> CatalogApi:
        return self._api

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def load_stages(self) -> None:
        with self._lock:
            generation = self.stages.begin_load(preserve=True)

        items = self._fetch(self._api.get_stages, self.stages, generation)
        if items is None:
            return

        with self._lock:
            if not self.stages.is_current(generation):
                LOGGER.debug("Discarding stale stage list")
                return
            changed = self.stages.finish(items)
            stage_id = self.stages.selected_id
            if not stage_id:
                self.categories.reset()
                self._clear_resources()
                return
            needs_children = changed or self.categories.state in {
                LevelState.NO_SELECTION,
                LevelState.ERROR,
            }
        if needs_children:
            self.load_categories(stage_id)

    reload_stages = load_stages

    def select_stage(self, stage_id: str) -> None:
        with self._lock:
            changed = self.stages.select(stage_id)
            if not changed:
                return
            self.categories.search_term = ""
        self.load_categories(stage_id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------
    def load_categories(self, stage_id: str) -> None:
        preserve = self.preserve_children_on_reload
        with self._lock:
            generation = self.categories.begin_load(preserve=preserve)
            if not preserve:
                self._clear_resources()

        items = self._fetch(
            lambda: self._api.get_categories_by_stage(stage_id), self.categories, generation
        )
        if items is None:
            return

        with self._lock:
            if not self.categories.is_current(generation):
                LOGGER.debug("Discarding stale categories for stage %s", stage_id)
                return
            changed = self.categories.finish(items)
            category_id = self.categories.selected_id
            if not category_id:
                self._clear_resources()
                return
            needs_children = changed or self.resources.state in {
                LevelState.NO_SELECTION,
                LevelState.ERROR,
            }
        if needs_children:
            self._cascade_resources(category_id)

    def reload_categories(self) -> None:
        stage_id = self.stages.selected_id
        if stage_id:
            self.load_categories(stage_id)

    def select_category(self, category_id: str) -> None:
        with self._lock:
            if not self.categories.select(category_id):
                return
        self._cascade_resources(category_id)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------
    def load_resources(self, category_id: str) -> None:
        self._load_resource_list(lambda: self._api.get_resources_by_category(category_id))

    def reload_resources(self) -> None:
        category_id = self.categories.selected_id
        if category_id:
            self.load_resources(category_id)
        else:
            with self._lock:
                self.resources.reset()

    def set_search(self, level: SelectionLevel, term: str) -> List[Any]:
        """Filter *level* locally; no request is made and selection is untouched."""

        level.search_term = term
        return level.filtered

    @property
    def selected_stage(self) -> Optional[StageRecord]:
        return self.stages.selected

    @property
    def selected_category(self) -> Optional[CategoryRecord]:
        return self.categories.selected

    @property
    def resource_list(self) -> List[ResourceRecord]:
        return list(self.resources.items)

    def _cascade_resources(self, category_id: str) -> None:
        self.load_resources(category_id)

    def _clear_resources(self) -> None:
        self.resources.reset()

    def _load_resource_list(self, fetch: Callable[[], List[ResourceRecord]]) -> None:
        with self._lock:
            generation = self.resources.begin_load(
                preserve=self.preserve_children_on_reload
            )

        items = self._fetch(fetch, self.resources, generation)
        if items is None:
            return

        with self._lock:
            if not self.resources.is_current(generation):
                LOGGER.debug("Discarding stale resource list")
                return
            self.resources.finish(items)

    def _fetch(
        self, fetch: Callable[[], List[Any]], level: SelectionLevel, generation: int
    ) -> Optional[List[Any]]:
        """Run *fetch*; on failure put *level* into the error state and cascade."""

        try:
            return fetch()
        except (CatalogAdminError, httpx.HTTPError) as error:
            with self._lock:
                if not level.is_current(generation):
                    return None
                LOGGER.error("Failed to load %s list: %s", level.label, error)
                level.fail(f"Failed to load {level.label}")
                if level is self.stages:
                    self.categories.reset()
                    self._clear_resources()
                elif level is self.categories:
                    self._clear_resources()
            return None


class LearningBrowser(CatalogBrowser):
    """Learning management view: child lists stay visible during reloads."""

    preserve_children_on_reload = True


class ViewMode(str, Enum):
    CATEGORY = "category"
    AVATARS = "avatars"
    PREBUILD = "prebuild"
    HUGGIES = "huggies"


@dataclass(frozen=True)
class ResourceView:
    """Which resource dataset the resource browser shows."""

    mode: ViewMode
    category_id: str = ""

    @classmethod
    def category(cls, category_id: str = "") -> "ResourceView":
        return cls(ViewMode.CATEGORY, category_id)

    @classmethod
    def avatars(cls) -> "ResourceView":
        return cls(ViewMode.AVATARS)

    @classmethod
    def prebuild(cls) -> "ResourceView":
        return cls(ViewMode.PREBUILD)

    @classmethod
    def huggies(cls) -> "ResourceView":
        return cls(ViewMode.HUGGIES)


class ResourceBrowser(CatalogBrowser):
    """Resource browsing view: child lists are cleared as soon as a reload starts."""

    preserve_children_on_reload = False

    def __init__(self, api: CatalogApi, view: Optional[ResourceView] = None) -> None:
        super().__init__(api)
        self.view = view or ResourceView.avatars()

    def set_view(self, view: ResourceView) -> None:
        with self._lock:
            if view.mode is ViewMode.CATEGORY and not view.category_id:
                view = replace(view, category_id=self.categories.selected_id)
            if view.mode is not ViewMode.CATEGORY:
                self.stages.search_term = ""
                self.categories.search_term = ""
            self.view = view
        self.reload_resources()

    def reload_resources(self) -> None:
        view = self.view
        if view.mode is ViewMode.CATEGORY:
            if view.category_id:
                self.load_resources(view.category_id)
            else:
                with self._lock:
                    self.resources.reset()
        elif view.mode is ViewMode.AVATARS:
            self._load_resource_list(self._api.get_all_avatars)
        elif view.mode is ViewMode.PREBUILD:
            self._load_resource_list(self._api.get_all_prebuild_avatars)
        elif view.mode is ViewMode.HUGGIES:
            self._load_resource_list(self._api.get_all_huggies)
        else:  # pragma: no cover - exhaustive over ViewMode
            raise TypeError(f"Unhandled view mode: {view.mode!r}")

    def empty_message(self) -> str:
        mode = self.view.mode
        if mode is ViewMode.CATEGORY:
            if not self.stages.selected_id:
                return "Select a stage to browse learning resources."
            if not self.categories.selected_id:
                return "Select a category to view its learning resources."
            return "No learning resources found for this category yet."
        if mode is ViewMode.AVATARS:
            return "No avatars are available at the moment."
        if mode is ViewMode.PREBUILD:
            return "No prebuild avatars are available yet."
        if mode is ViewMode.HUGGIES:
            return "No huggies are available yet."
        raise TypeError(f"Unhandled view mode: {mode!r}")

    def _cascade_resources(self, category_id: str) -> None:
        with self._lock:
            if self.view.mode is not ViewMode.CATEGORY:
                return
            self.view = ResourceView.category(category_id)
        self.load_resources(category_id)

    def _clear_resources(self) -> None:
        if self.view.mode is not ViewMode.CATEGORY:
            return
        self.view = ResourceView.category()
        self.resources.reset()


__all__ = [
    "CatalogBrowser",
    "LearningBrowser",
    "LevelState",
    "ResourceBrowser",
    "ResourceView",
    "SelectionLevel",
    "ViewMode",
    "filter_entries",
    "matches_search",
]
