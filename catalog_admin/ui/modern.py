"""A Rich-powered console front-end for browsing the catalog."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..services.api import CatalogApi
from ..services.models import CategoryRecord, ResourceRecord, StageRecord
from .overview import (
    RESOURCE_TYPE_LABELS,
    CategoryOverview,
    OverviewSnapshot,
    StageOverview,
    collect_overview,
    describe_resource_type,
)


class ModernUI:
    """Render the catalog as a tree next to an at-a-glance panel."""

    def __init__(self, api: CatalogApi, *, console: Optional[Console] = None) -> None:
        self._api = api
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self) -> None:
        snapshot = collect_overview(self._api)
        console = self._console

        console.rule("[bold magenta]Catalog Overview")

        if snapshot.stage_count == 0:
            console.print(
                Panel(
                    "No stages have been created yet.\n"
                    "Use [bold]python run.py create-stage[/bold] to add the first one.",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        tree_panel = Panel(
            self._build_tree(snapshot.stages),
            title="Curriculum",
            border_style="cyan",
            box=box.ROUNDED,
        )
        stats_panel = self._build_stats_panel(snapshot)

        console.print(Columns([tree_panel, stats_panel], expand=True, equal=True))
        console.print()
        console.print(
            Text(
                "Tip: pass --style console for the plain layout.",
                style="dim",
            ),
            justify="center",
        )

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_tree(self, stages: Iterable[StageOverview]) -> Tree:
        tree = Tree("[bold cyan]Stages", guide_style="cyan")

        for stage_overview in stages:
            stage_node = tree.add(Text(stage_overview.record.name, style="bold"))
            if not stage_overview.categories:
                stage_node.add("[dim]No categories yet")
                continue

            for category_overview in stage_overview.categories:
                category_node = stage_node.add(self._build_category_label(category_overview))
                if not category_overview.resources:
                    category_node.add("[dim]No resources yet")
                    continue

                for resource in category_overview.resources:
                    category_node.add(self._build_resource_label(resource))

        return tree

    @staticmethod
    def _build_category_label(overview: CategoryOverview) -> Text:
        label = Text(overview.record.name, style="bright_cyan")
        label.append(f"  {len(overview.resources)} resources", style="dim")
        return label

    @staticmethod
    def _build_resource_label(resource: ResourceRecord) -> Text:
        label = Text(resource.name, style="white")
        label.append("  ")
        label.append(describe_resource_type(resource.type), style="green")
        if resource.order is not None:
            label.append(f"  #{resource.order}", style="dim")
        return label

    def _build_stats_panel(self, snapshot: OverviewSnapshot) -> Panel:
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Stages", str(snapshot.stage_count))
        metrics.add_row("Categories", str(snapshot.category_count))
        metrics.add_row("Resources", str(snapshot.resource_count))

        type_table = Table.grid(expand=True, padding=(0, 1))
        type_table.add_column(style="dim")
        type_table.add_column(justify="right", style="bold")
        for key, label in RESOURCE_TYPE_LABELS.items():
            type_table.add_row(label, str(snapshot.type_totals.get(key, 0)))

        body = Group(metrics, Rule(style="magenta"), type_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)


def _empty_row(table: Table, message: str) -> Table:
    table.add_row(Text(message, style="dim italic"), *([""] * (len(table.columns) - 1)))
    return table


def build_stage_table(
    stages: Sequence[StageRecord], *, selected_id: str = "", error: Optional[str] = None
) -> Table:
    table = Table(title="Stages", box=box.SIMPLE_HEAVY, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Colors")
    table.add_column("Thumbnail")
    if error:
        return _empty_row(table, error)
    if not stages:
        return _empty_row(table, "No stages yet. Create your first stage to get started.")
    for stage in stages:
        marker = "▶ " if stage.id == selected_id else ""
        colors = ""
        if stage.color_codes is not None:
            colors = f"{stage.color_codes.bg} / {stage.color_codes.path} / {stage.color_codes.dotted_path}"
        table.add_row(stage.id, marker + stage.name, colors, "yes" if stage.thumbnail else "")
    return table


def build_category_table(
    categories: Sequence[CategoryRecord],
    *,
    selected_id: str = "",
    empty_message: str = "No categories found for this stage yet.",
    error: Optional[str] = None,
) -> Table:
    table = Table(title="Categories", box=box.SIMPLE_HEAVY, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Stage", style="dim")
    table.add_column("Thumbnail")
    if error:
        return _empty_row(table, error)
    if not categories:
        return _empty_row(table, empty_message)
    for category in categories:
        marker = "▶ " if category.id == selected_id else ""
        table.add_row(
            category.id,
            marker + category.name,
            category.stage_id or "",
            "yes" if category.thumbnail else "",
        )
    return table


def build_resource_table(
    resources: Sequence[ResourceRecord],
    *,
    empty_message: str = "No resources found.",
    show_order: bool = False,
    error: Optional[str] = None,
) -> Table:
    table = Table(title="Resources", box=box.SIMPLE_HEAVY, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    if show_order:
        table.add_column("Order", justify="right")
    table.add_column("Media", overflow="fold")
    if error:
        return _empty_row(table, error)
    if not resources:
        return _empty_row(table, empty_message)
    for resource in resources:
        row = [resource.id, resource.name, describe_resource_type(resource.type)]
        if show_order:
            row.append("" if resource.order is None else str(resource.order))
        row.append(resource.url or "")
        table.add_row(*row)
    return table


__all__ = [
    "ModernUI",
    "build_category_table",
    "build_resource_table",
    "build_stage_table",
]
