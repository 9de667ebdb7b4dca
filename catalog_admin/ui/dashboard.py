"""Rich rendering of the aggregate usage statistics."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..services.models import StatsSnapshot


GENDER_STYLES = {"Boy": "blue", "Girl": "magenta", "Huggy": "purple", "Unknown": "grey50"}
BAR_WIDTH = 30


def _bar(value: int, maximum: int, style: str) -> Text:
    filled = 0 if maximum <= 0 else int(round(value / maximum * BAR_WIDTH))
    return Text("█" * filled, style=style)


def _distribution_table(
    title: str, rows: Sequence[Tuple[str, int]], *, default_style: str
) -> Table:
    table = Table(title=title, box=box.SIMPLE, show_header=False, expand=True)
    table.add_column("Bucket", style="bold")
    table.add_column("Bar")
    table.add_column("Count", justify="right")
    if not rows:
        table.add_row(Text("No data yet", style="dim"), "", "")
        return table
    maximum = max(count for _, count in rows)
    for label, count in rows:
        style = GENDER_STYLES.get(label, default_style)
        table.add_row(label, _bar(count, maximum, style), str(count))
    return table


def build_summary_cards(stats: StatsSnapshot) -> List[Panel]:
    cards = [
        ("Total Users", str(stats.total_users), "orange3"),
        ("Avg Progress", f"{stats.avg_progress_per_user:.1f}", "green"),
        ("Completion Rate", f"{stats.completion_rate:.1f}%", "cyan"),
        ("Total Resources", str(stats.total_resources), "magenta"),
    ]
    return [
        Panel(Text(value, style="bold", justify="center"), title=title, border_style=style, box=box.ROUNDED)
        for title, value, style in cards
    ]


def render_dashboard(stats: StatsSnapshot, console: Console) -> None:
    console.rule("[bold magenta]Dashboard")
    console.print(Columns(build_summary_cards(stats), expand=True, equal=True))
    charts = Group(
        _distribution_table("Gender distribution", stats.gender_breakdown(), default_style="grey50"),
        _distribution_table("Age distribution", stats.age_breakdown(), default_style="cyan"),
    )
    console.print(Panel(charts, title="Users", border_style="cyan", box=box.ROUNDED))


__all__ = ["build_summary_cards", "render_dashboard"]
