"""CLI interface for jgh."""

from __future__ import annotations

import asyncio
import locale
import logging
from collections.abc import Coroutine
from contextlib import AsyncExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from jgh import __version__
from jgh.commands.create import CreateOptions, create_issue, split_labels
from jgh.commands.listing import list_issues, show_details
from jgh.commands.setup import run_reconfigure, run_setup, show_config
from jgh.commands.timelog import log_time, set_estimate
from jgh.commands.update import update_issue
from jgh.config import CONFIG_ENV_VAR, Config, load_config
from jgh.errors import JghError, ValidationError
from jgh.sync.github_cli import GhCliTracker
from jgh.sync.jira_client import JiraClient
from jgh.sync.tempo_client import TempoClient
from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="jgh",
    help="Create, update, list and time-track issues across Jira and GitHub.",
    no_args_is_help=True,
)
console = Console()


@dataclass
class AppState:
    """Options shared by every command."""

    config_path: Path | None = None
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    """Send jgh log records to stderr through rich."""
    package_logger = logging.getLogger("jgh")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    handler = RichHandler(console=Console(stderr=True), show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)


def configure_collation() -> None:
    """Sort issue keys with the user's locale collation."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.debug(f"Keeping the default collation: {e}")


def build_tracker() -> IssueTracker:
    """GitHub tracker for the repository in the working directory."""
    return GhCliTracker()


def _state(ctx: typer.Context) -> AppState:
    return ctx.obj if isinstance(ctx.obj, AppState) else AppState()


def _jira_client(config: Config) -> JiraClient:
    settings = config.require_jira()
    return JiraClient(settings.url, settings.email, settings.token)


async def _open_clients(stack: AsyncExitStack, config: Config, with_tempo: bool = False) -> tuple[JiraClient, TempoClient | None]:
    jira = await stack.enter_async_context(_jira_client(config))
    tempo = None
    if with_tempo and config.tempo_token:
        tempo = await stack.enter_async_context(TempoClient(config.tempo_token))
    return jira, tempo


def _run(action: str, coro: Coroutine[Any, Any, object]) -> None:
    """Run a command coroutine, turning anticipated errors into exit code 1."""
    try:
        asyncio.run(coro)
    except JghError as e:
        logger.debug(f"{action} failed", exc_info=True)
        console.print(f"[red]❌ Error {action}:[/red] {e}")
        raise typer.Exit(1) from e


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"jgh {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help=f"Config file (default: ${CONFIG_ENV_VAR} or ~/.config/jgh/config.yaml)"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """Linked Jira and GitHub issues from the terminal."""
    configure_logging(verbose)
    configure_collation()
    ctx.obj = AppState(config_path=config_path, verbose=verbose)


@app.command()
def setup(ctx: typer.Context) -> None:
    """Configure Jira credentials, project and Tempo token."""
    try:
        run_setup(_state(ctx).config_path, console)
    except JghError as e:
        console.print(f"[red]❌ Error during setup:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def reconfigure(ctx: typer.Context) -> None:
    """Fill in missing configuration values."""
    try:
        run_reconfigure(_state(ctx).config_path, console)
    except JghError as e:
        console.print(f"[red]❌ Error during reconfiguration:[/red] {e}")
        raise typer.Exit(1) from e


@app.command("config")
def config_command(ctx: typer.Context) -> None:
    """Show the current configuration (token masked)."""
    config_path = _state(ctx).config_path
    try:
        show_config(load_config(config_path), config_path, console)
    except JghError as e:
        console.print(f"[red]❌ Error reading configuration:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def create(
    ctx: typer.Context,
    title: Annotated[str, typer.Argument(help='Issue title, e.g. "Fix login @me +backend (In Progress) !high"')],
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Issue description"),
    ] = None,
    issue_type: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Jira issue type (default from config)"),
    ] = None,
    assign_me: Annotated[
        bool,
        typer.Option("--assign-me", help="Assign both issues to yourself"),
    ] = False,
    labels: Annotated[
        str | None,
        typer.Option("--labels", "-l", help="Comma-separated labels"),
    ] = None,
    status: Annotated[
        str | None,
        typer.Option("--status", "-s", help="Initial Jira status"),
    ] = None,
) -> None:
    """Create a Jira issue and a linked GitHub issue.

    Examples:
        jgh create "Fix login bug @me +backend !high"
        jgh create "Add export" --labels ui,reports --status "In Progress"
    """
    options = CreateOptions(
        description=description,
        issue_type=issue_type,
        assign_me=assign_me,
        labels=split_labels(labels),
        status=status,
    )

    async def _create() -> None:
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, _ = await _open_clients(stack, config)
            await create_issue(config, jira, build_tracker(), title, options, console)

    _run("creating issue", _create())


@app.command()
def update(
    ctx: typer.Context,
    issue_key: Annotated[str, typer.Argument(help="Jira issue key, e.g. PROJ-123")],
    update_string: Annotated[str, typer.Argument(help='Updates, e.g. "(Done) !low +qa -wip @unassign"')],
) -> None:
    """Update a Jira issue and its linked GitHub issue.

    Examples:
        jgh update PROJ-12 "(In Progress) @me"
        jgh update PROJ-12 "+backend -frontend !high"
    """

    async def _update() -> None:
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, _ = await _open_clients(stack, config)
            await update_issue(config, jira, build_tracker(), issue_key, update_string, console)

    _run("updating issue", _update())


@app.command("list")
def list_command(
    ctx: typer.Context,
    scope: Annotated[
        str | None,
        typer.Argument(help='Pass "mine" to show only issues assigned to you'),
    ] = None,
) -> None:
    """Show open issues and whether they are linked."""

    async def _list() -> None:
        if scope is not None and scope.lower() != "mine":
            raise ValidationError(f"Unknown filter '{scope}'. Use 'jgh list' or 'jgh list mine'")
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, tempo = await _open_clients(stack, config, with_tempo=True)
            await list_issues(config, jira, build_tracker(), tempo=tempo, mine=scope is not None, console=console)

    _run("listing issues", _list())


@app.command()
def details(
    ctx: typer.Context,
    issue_key: Annotated[str, typer.Argument(help="Jira issue key, e.g. PROJ-123")],
) -> None:
    """Show an issue, its linked GitHub issue and time tracking."""

    async def _details() -> None:
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, tempo = await _open_clients(stack, config, with_tempo=True)
            await show_details(config, jira, build_tracker(), issue_key, tempo=tempo, console=console)

    _run("fetching issue details", _details())


@app.command()
def time(
    ctx: typer.Context,
    issue_key: Annotated[str, typer.Argument(help="Jira issue key, e.g. PROJ-123")],
    duration: Annotated[str, typer.Argument(help="Time spent, e.g. 30min, 2h, 1.5h, 1h30min")],
    description: Annotated[
        str | None,
        typer.Option("--description", "-d", help="Worklog description"),
    ] = None,
    work_date: Annotated[
        str | None,
        typer.Option("--date", help="Work date YYYY-MM-DD (default: today)"),
    ] = None,
) -> None:
    """Log time on an issue through Tempo."""

    async def _time() -> None:
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, tempo = await _open_clients(stack, config, with_tempo=True)
            await log_time(config, jira, tempo, issue_key, duration, description, work_date, console)

    _run("logging time", _time())


@app.command()
def estimate(
    ctx: typer.Context,
    issue_key: Annotated[str, typer.Argument(help="Jira issue key, e.g. PROJ-123")],
    duration: Annotated[str, typer.Argument(help="Original estimate, e.g. 4h, 1h30min")],
    remaining: Annotated[
        str | None,
        typer.Option("--remaining", "-r", help="Remaining estimate"),
    ] = None,
) -> None:
    """Set the original estimate of an issue."""

    async def _estimate() -> None:
        config = load_config(_state(ctx).config_path)
        async with AsyncExitStack() as stack:
            jira, _ = await _open_clients(stack, config)
            await set_estimate(config, jira, issue_key, duration, remaining, console)

    _run("setting estimate", _estimate())


if __name__ == "__main__":
    app()
