"""Entry-point for the Catalog Admin command line client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import httpx
import typer
from rich.console import Console

from catalog_admin.bootstrap import initialize_app
from catalog_admin.config import AppConfig
from catalog_admin.logging_utils import build_cli_handlers, configure_logging
from catalog_admin.services.api import CatalogApi
from catalog_admin.services.errors import CatalogAdminError
from catalog_admin.services.http import AuthorizedClient
from catalog_admin.services.models import ColorCodes, DEFAULT_COLOR_CODES, ResourceType
from catalog_admin.services.progress import build_upload_progress_message, planned_upload_steps
from catalog_admin.services.selection import (
    LearningBrowser,
    ResourceBrowser,
    ResourceView,
    ViewMode,
    filter_entries,
)
from catalog_admin.services.session import HOME_ROUTE, SIGN_IN_ROUTE, SessionContext, TokenStore
from catalog_admin.services.workflows import (
    CatalogMutations,
    EntityKind,
    ResourceForm,
    ResourceUploadWorkflow,
    UploadFile,
    UploadTarget,
)
from catalog_admin.ui.console import ConsoleUI
from catalog_admin.ui.dashboard import render_dashboard
from catalog_admin.ui.modern import (
    ModernUI,
    build_category_table,
    build_resource_table,
    build_stage_table,
)


LOGGER = logging.getLogger("catalog_admin.cli")


cli = typer.Typer(add_completion=False, help="Catalog Admin management commands")


def _prepare_logging(storage_root: Path) -> None:
    configure_logging(handlers=build_cli_handlers(storage_root))


class CliNavigator:
    """Translate navigation requests into hints on the terminal."""

    def redirect(self, route: str) -> None:
        if route == SIGN_IN_ROUTE:
            typer.echo("Session is not active. Run `python run.py sign-in` to continue.", err=True)
        elif route == HOME_ROUTE:
            typer.echo("Signed in. Try `python run.py stats` for the dashboard.")


@dataclass
class CliContext:
    config: AppConfig
    session: SessionContext
    client: AuthorizedClient
    api: CatalogApi
    console: Console


def _build_context(ctx: typer.Context) -> CliContext:
    """Assemble the services for one command.

    ``ctx.obj`` may carry a preconfigured ``httpx.Client`` (for example
    ``CliRunner().invoke(cli, args, obj=client)``); otherwise the wrapper opens
    its own. The wrapper is closed when the command finishes.
    """

    config = initialize_app()
    _prepare_logging(config.storage_root)
    session = SessionContext(TokenStore.from_config(config), navigator=CliNavigator())
    http_client = ctx.obj if isinstance(ctx.obj, httpx.Client) else None
    client = AuthorizedClient.from_config(config, session, http_client=http_client)
    ctx.call_on_close(client.close)
    return CliContext(
        config=config,
        session=session,
        client=client,
        api=CatalogApi(client),
        console=Console(),
    )


def _authorized_context(ctx: typer.Context) -> CliContext:
    context = _build_context(ctx)
    try:
        context.session.require_token()
    except CatalogAdminError as error:
        raise typer.Exit(code=1) from error
    return context


def _run_or_exit(action: Callable[[], None], failure_prefix: str) -> None:
    try:
        action()
    except (CatalogAdminError, httpx.HTTPError) as error:
        LOGGER.error("%s: %s", failure_prefix, error)
        typer.echo(f"{failure_prefix}: {error}", err=True)
        raise typer.Exit(code=1) from error


def _load_files(paths: Optional[List[Path]]) -> List[UploadFile]:
    return [UploadFile.from_path(path) for path in paths or []]


_EXISTING_FILE = dict(exists=True, file_okay=True, dir_okay=False, resolve_path=True)


# ----------------------------------------------------------------------
# Session
# ----------------------------------------------------------------------
@cli.command("sign-in")
def sign_in(
    ctx: typer.Context,
    email: str = typer.Option(..., prompt=True, help="Administrator e-mail"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Administrator password"),
) -> None:
    """Exchange credentials for a session token."""

    context = _build_context(ctx)

    def _sign_in() -> None:
        result = context.api.sign_in(email, password)
        context.session.start(result.token, result.user)

    _run_or_exit(_sign_in, "Sign-in failed")


@cli.command("sign-out")
def sign_out(ctx: typer.Context) -> None:
    """Forget the stored session token."""

    context = _build_context(ctx)
    context.session.end()


# ----------------------------------------------------------------------
# Read-only views
# ----------------------------------------------------------------------
@cli.command()
def stats(ctx: typer.Context) -> None:
    """Show the aggregate usage dashboard."""

    context = _authorized_context(ctx)

    def _show() -> None:
        render_dashboard(context.api.get_stats(), context.console)

    _run_or_exit(_show, "Failed to load dashboard statistics")


class UIStyle(str, Enum):
    MODERN = "modern"
    CONSOLE = "console"


@cli.command()
def overview(
    ctx: typer.Context,
    style: UIStyle = typer.Option(
        UIStyle.MODERN,
        "--style",
        "-s",
        help="Select the overview presentation style.",
        show_default=True,
    ),
) -> None:
    """Render the whole stage/category/resource hierarchy."""

    context = _authorized_context(ctx)
    if style is UIStyle.MODERN:
        ui = ModernUI(context.api, console=context.console)
    else:
        ui = ConsoleUI(context.api)
    _run_or_exit(ui.run, "Failed to load catalog")


@cli.command()
def browse(
    ctx: typer.Context,
    stage: Optional[str] = typer.Option(None, help="Stage id to select"),
    category: Optional[str] = typer.Option(None, help="Category id to select"),
    search: str = typer.Option("", help="Filter categories by name or id"),
) -> None:
    """Walk stages → categories → resources like the learning management page."""

    context = _authorized_context(ctx)
    browser = LearningBrowser(context.api)

    def _browse() -> None:
        browser.load_stages()
        if stage:
            browser.select_stage(stage)
        if category:
            browser.select_category(category)
        browser.set_search(browser.categories, search)

        console = context.console
        console.print(
            build_stage_table(
                browser.stages.items,
                selected_id=browser.stages.selected_id,
                error=browser.stages.error,
            )
        )
        console.print(
            build_category_table(
                browser.categories.filtered,
                selected_id=browser.categories.selected_id,
                empty_message=(
                    "No categories match your search."
                    if search.strip()
                    else "No categories found for this stage yet."
                ),
                error=browser.categories.error,
            )
        )
        console.print(
            build_resource_table(
                browser.resources.items,
                empty_message="No learning resources found for this category yet.",
                show_order=True,
                error=browser.resources.error,
            )
        )

    _run_or_exit(_browse, "Failed to browse catalog")


@cli.command()
def stages(ctx: typer.Context, search: str = typer.Option("", help="Filter by name or id")) -> None:
    """List stages."""

    context = _authorized_context(ctx)
    browser = LearningBrowser(context.api)

    def _list() -> None:
        browser.load_stages()
        context.console.print(
            build_stage_table(
                browser.set_search(browser.stages, search),
                selected_id=browser.stages.selected_id,
                error=browser.stages.error,
            )
        )

    _run_or_exit(_list, "Failed to list stages")


@cli.command()
def categories(
    ctx: typer.Context,
    stage: str = typer.Option(..., help="Stage id"),
    search: str = typer.Option("", help="Filter by name or id"),
) -> None:
    """List the categories of one stage."""

    context = _authorized_context(ctx)

    def _list() -> None:
        records = context.api.get_categories_by_stage(stage)
        context.console.print(build_category_table(filter_entries(records, search)))

    _run_or_exit(_list, "Failed to list categories")


@cli.command()
def resources(
    ctx: typer.Context,
    view: ViewMode = typer.Option(ViewMode.AVATARS, "--view", "-v", help="Dataset to show"),
    stage: Optional[str] = typer.Option(None, help="Stage id for the category view"),
    category: Optional[str] = typer.Option(None, help="Category id for the category view"),
) -> None:
    """List resources of a category, or one of the avatar pools."""

    context = _authorized_context(ctx)
    browser = ResourceBrowser(context.api, ResourceView(view))

    def _list() -> None:
        if view is ViewMode.CATEGORY:
            browser.load_stages()
            if stage:
                browser.select_stage(stage)
            if category:
                browser.select_category(category)
        else:
            browser.reload_resources()
        context.console.print(
            build_resource_table(
                browser.resources.items,
                empty_message=browser.empty_message(),
                show_order=view is ViewMode.CATEGORY,
                error=browser.resources.error,
            )
        )

    _run_or_exit(_list, "Failed to load resources")


# ----------------------------------------------------------------------
# Mutations
# ----------------------------------------------------------------------
@cli.command("create-stage")
def create_stage(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Stage name"),
    thumbnail: Optional[Path] = typer.Option(None, help="Thumbnail image", **_EXISTING_FILE),
    static: Optional[List[Path]] = typer.Option(None, help="Static path asset", **_EXISTING_FILE),
    dynamic: Optional[List[Path]] = typer.Option(None, help="Dynamic path asset", **_EXISTING_FILE),
    pivot: Optional[List[Path]] = typer.Option(None, help="Pivot path asset", **_EXISTING_FILE),
    bg: str = typer.Option(DEFAULT_COLOR_CODES.bg, help="Background color"),
    path_color: str = typer.Option(DEFAULT_COLOR_CODES.path, help="Path color"),
    dotted_path: str = typer.Option(DEFAULT_COLOR_CODES.dotted_path, help="Dotted path color"),
) -> None:
    """Upload stage assets and create the stage."""

    context = _authorized_context(ctx)
    mutations = CatalogMutations(context.client)

    def _create() -> None:
        mutations.create_stage(
            name,
            color_codes=ColorCodes(bg=bg, path=path_color, dotted_path=dotted_path),
            thumbnail=UploadFile.from_path(thumbnail) if thumbnail else None,
            static_assets=_load_files(static),
            dynamic_assets=_load_files(dynamic),
            pivot_assets=_load_files(pivot),
        )
        typer.echo(f"Stage '{name}' created.")

    _run_or_exit(_create, "Error creating stage")


@cli.command("create-category")
def create_category(
    ctx: typer.Context,
    stage: str = typer.Option(..., help="Owning stage id"),
    name: str = typer.Option(..., help="Category name"),
) -> None:
    """Create a category inside a stage."""

    context = _authorized_context(ctx)

    def _create() -> None:
        CatalogMutations(context.client).create_category(name, stage)
        typer.echo(f"Category '{name}' created.")

    _run_or_exit(_create, "Error creating category")


@cli.command("upload-resource")
def upload_resource(
    ctx: typer.Context,
    stage: str = typer.Option(..., help="Stage id"),
    category: str = typer.Option(..., help="Category id"),
    name: str = typer.Option(..., help="Resource name"),
    video: Optional[Path] = typer.Option(None, help="Video file", **_EXISTING_FILE),
    thumbnail: Optional[Path] = typer.Option(None, help="Thumbnail image", **_EXISTING_FILE),
    order: Optional[int] = typer.Option(None, help="Display order"),
    resource_type: ResourceType = typer.Option(ResourceType.LEARNING, "--type", help="Resource type"),
) -> None:
    """Upload video and thumbnail, then create the resource record."""

    context = _authorized_context(ctx)
    browser = LearningBrowser(context.api)

    def _upload() -> None:
        browser.load_stages()
        browser.select_stage(stage)
        browser.select_category(category)
        stage_record = browser.selected_stage
        category_record = browser.selected_category

        form = ResourceForm(
            name=name,
            video=UploadFile.from_path(video) if video else None,
            thumbnail=UploadFile.from_path(thumbnail) if thumbnail else None,
            order=order,
            resource_type=resource_type,
        )
        form.open()
        planned = planned_upload_steps(
            has_video=form.video is not None, has_thumbnail=form.thumbnail is not None
        )
        workflow = ResourceUploadWorkflow(
            context.client,
            on_step=lambda step: typer.echo(build_upload_progress_message(step, planned)),
            on_complete=browser.reload_resources,
        )
        workflow.submit(
            form,
            UploadTarget(
                category_id=category,
                category_name=category_record.name if category_record else "",
                stage_name=stage_record.name if stage_record else "",
            ),
        )
        context.console.print(
            build_resource_table(browser.resources.items, show_order=True)
        )

    _run_or_exit(_upload, "Error creating resource")


@cli.command("update-stage")
def update_stage(
    ctx: typer.Context,
    stage_id: str = typer.Argument(..., help="Stage id"),
    name: str = typer.Option(..., help="New stage name"),
    thumbnail: Optional[Path] = typer.Option(None, help="Replacement thumbnail", **_EXISTING_FILE),
) -> None:
    """Rename a stage and optionally replace its thumbnail."""

    context = _authorized_context(ctx)

    def _update() -> None:
        CatalogMutations(context.client).update_stage(
            stage_id, name, thumbnail=UploadFile.from_path(thumbnail) if thumbnail else None
        )
        typer.echo(f"Stage '{stage_id}' updated.")

    _run_or_exit(_update, "Error updating stage")


@cli.command("update-category")
def update_category(
    ctx: typer.Context,
    category_id: str = typer.Argument(..., help="Category id"),
    name: str = typer.Option(..., help="New category name"),
    thumbnail: Optional[Path] = typer.Option(None, help="Replacement thumbnail", **_EXISTING_FILE),
) -> None:
    """Rename a category and optionally replace its thumbnail."""

    context = _authorized_context(ctx)

    def _update() -> None:
        CatalogMutations(context.client).update_category(
            category_id, name, thumbnail=UploadFile.from_path(thumbnail) if thumbnail else None
        )
        typer.echo(f"Category '{category_id}' updated.")

    _run_or_exit(_update, "Error updating category")


@cli.command()
def delete(
    ctx: typer.Context,
    kind: EntityKind = typer.Argument(..., help="Entity type to delete"),
    entity_id: str = typer.Argument(..., help="Entity id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a stage, category or resource."""

    context = _authorized_context(ctx)
    if not yes:
        typer.confirm(f"Delete {kind.value} '{entity_id}'?", abort=True)

    def _delete() -> None:
        CatalogMutations(context.client).delete(kind, entity_id)
        typer.echo(f"Deleted {kind.value} '{entity_id}'.")

    _run_or_exit(_delete, f"Error deleting {kind.value}")


if __name__ == "__main__":
    cli()
