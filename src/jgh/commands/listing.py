"""Command handlers for `jgh list` and `jgh details`."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from jgh.core.models import SyncState, SyncStatus
from jgh.core.reconcile import UserIdentity, is_assigned_to_me, reconcile, summarize
from jgh.core.timesheet import TimeSummary
from jgh.errors import JghError, NotFoundError
from jgh.utils.duration import DurationStyle, format_duration

if TYPE_CHECKING:
    from jgh.config import Config
    from jgh.sync.jira_client import JiraClient
    from jgh.sync.tempo_client import TempoClient
    from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)

TITLE_WIDTH = 50
MAX_WORKLOGS_SHOWN = 5

STATE_STYLES: dict[SyncState, tuple[str, str]] = {
    SyncState.SYNCED: ("🔄", "green"),
    SyncState.GITHUB_ONLY: ("💻", "white"),
    SyncState.JIRA_ONLY: ("🗂️", "bright_yellow"),
}


async def fetch_sync_statuses(jira: JiraClient, tracker: IssueTracker, project: str) -> list[SyncStatus]:
    """Fetch both trackers concurrently and reconcile them.

    Either fetch failing aborts before reconciliation.
    """
    await tracker.ensure_available()
    jira_issues, github_issues = await asyncio.gather(
        jira.search_open_issues(project),
        tracker.list_open_issues(),
    )
    logger.debug(f"Fetched {len(jira_issues)} Jira and {len(github_issues)} GitHub issue(s)")
    return reconcile(jira_issues, github_issues)


async def resolve_identity(config: Config, jira: JiraClient, tracker: IssueTracker) -> UserIdentity:
    """Work out who "me" is. Lookups that fail leave that part unknown."""
    settings = config.require_jira()
    identity = UserIdentity(account_id=settings.account_id, display_name=config.display_name)

    if not identity.account_id:
        try:
            identity.account_id = await jira.find_account_id(settings.email)
        except JghError as e:
            logger.debug(f"Could not resolve Jira account ID: {e}")

    try:
        identity.github_login = await tracker.current_login()
    except JghError as e:
        logger.debug(f"Could not resolve GitHub login: {e}")

    return identity


async def fetch_time_summary(jira: JiraClient, tempo: TempoClient, issue_key: str) -> TimeSummary | None:
    """Fetch estimate and worklogs for an issue; None if either lookup fails."""
    try:
        tracking, worklogs = await asyncio.gather(
            jira.get_time_tracking(issue_key),
            tempo.get_worklogs(issue_key),
        )
    except JghError as e:
        logger.debug(f"Time tracking unavailable for {issue_key}: {e}")
        return None
    return TimeSummary.from_tracking(tracking, worklogs)


def format_time_badge(summary: TimeSummary) -> str:
    """Render the "logged/estimate trend" badge shown in list output."""
    if not summary.has_data:
        return ""

    logged = format_duration(summary.logged_seconds, DurationStyle.COMPACT)
    estimated = format_duration(summary.estimate_seconds, DurationStyle.COMPACT)

    percentage = ""
    deviation = summary.deviation_percent
    if summary.trend == "over" and deviation is not None:
        percentage = f" +{round(deviation)}%"
    elif summary.trend == "under" and deviation is not None:
        percentage = f" {round(deviation)}%"
    elif summary.trend == "on_track":
        percentage = " 0%"

    return f" — [yellow]{logged}/{estimated}[/yellow] {summary.icon}{percentage}"


def _truncate(title: str, width: int = TITLE_WIDTH) -> str:
    return title if len(title) <= width else title[: width - 3] + "..."


def _assignee_badge(status: SyncStatus, mine: bool) -> str:
    if mine:
        return " [cyan]👤@me[/cyan]"
    jira_assignee = status.jira_issue.assignee if status.jira_issue else None
    github_assignee = status.github_issue.assignee if status.github_issue else None
    if jira_assignee:
        return f" [cyan]👤@{escape(jira_assignee.split(' ')[0])}[/cyan]"
    if github_assignee:
        return f" [cyan]👤@{escape(github_assignee)}[/cyan]"
    return ""


def format_status_line(status: SyncStatus, assignee_badge: str, time_badge: str = "") -> str:
    """Render one reconciled issue as a console line."""
    icon, color = STATE_STYLES[status.state]
    labels = f" +{' +'.join(status.labels)}" if status.labels else ""
    return f"[{color}]{icon} {status.jira_key}[/{color}] [grey50]{escape(_truncate(status.title))}[/grey50]{escape(labels)}{assignee_badge}{time_badge}"


async def list_issues(
    config: Config,
    jira: JiraClient,
    tracker: IssueTracker,
    tempo: TempoClient | None = None,
    mine: bool = False,
    console: Console | None = None,
) -> list[SyncStatus]:
    """List reconciled issues.

    Args:
        config: Loaded configuration.
        jira: Open Jira client.
        tracker: GitHub issue tracker.
        tempo: Open Tempo client, or None to skip time badges.
        mine: Only show issues assigned to the current user.
        console: Rich console for output.

    Returns:
        The statuses that were printed.
    """
    if console is None:
        console = Console()

    settings = config.require_jira()
    console.print("[cyan]⌛ Fetching issues from Jira and GitHub...[/cyan]")

    statuses = await fetch_sync_statuses(jira, tracker, settings.project)
    identity = await resolve_identity(config, jira, tracker)

    shown = [s for s in statuses if is_assigned_to_me(s, identity)] if mine else statuses

    if not shown:
        console.print("[yellow]No issues assigned to you found.[/yellow]" if mine else "[yellow]No open issues found.[/yellow]")
        return []

    console.print(f"\n[cyan]{'📋 My Issues:' if mine else '📋 Open Issues Status:'}[/cyan]\n")

    for status in shown:
        time_badge = ""
        if tempo is not None and status.jira_issue is not None:
            summary = await fetch_time_summary(jira, tempo, status.jira_key)
            if summary is not None:
                time_badge = format_time_badge(summary)

        assignee = _assignee_badge(status, mine or is_assigned_to_me(status, identity))
        console.print(format_status_line(status, assignee, time_badge))

    counts = summarize(shown if mine else statuses)
    synced = counts[SyncState.SYNCED]
    jira_only = counts[SyncState.JIRA_ONLY]
    github_only = counts[SyncState.GITHUB_ONLY]

    if mine:
        console.print(f"\n[grey50]📊 My Issues: {len(shown)} total ({synced} synced, {jira_only} Jira-only, {github_only} GitHub-only)[/grey50]")
    else:
        assigned = sum(1 for s in statuses if is_assigned_to_me(s, identity))
        console.print(f"\n[grey50]📊 Summary: {synced} synced, {jira_only} Jira-only, {github_only} GitHub-only, {assigned} assigned to me[/grey50]")

    return shown


async def show_details(
    config: Config,
    jira: JiraClient,
    tracker: IssueTracker,
    issue_key: str,
    tempo: TempoClient | None = None,
    console: Console | None = None,
) -> SyncStatus:
    """Print Jira fields, the linked GitHub issue and time tracking.

    Raises:
        NotFoundError: If the key is not an unresolved issue of the project.
    """
    if console is None:
        console = Console()

    settings = config.require_jira()
    issue_key = issue_key.upper()
    console.print(f"[cyan]⌛ Fetching details for {issue_key}...[/cyan]")

    statuses = await fetch_sync_statuses(jira, tracker, settings.project)
    status = next((s for s in statuses if s.jira_key == issue_key and s.jira_issue is not None), None)
    if status is None or status.jira_issue is None:
        raise NotFoundError(f"Jira issue {issue_key} not found")

    jira_issue = status.jira_issue
    console.print(f"\n[blue]📋 Issue Details: {issue_key}[/blue]\n")
    console.print(f"Title: {escape(jira_issue.summary)}")
    console.print(f"Status: {escape(jira_issue.status)}")
    console.print(f"Assignee: {escape(jira_issue.assignee or 'Unassigned')}")
    if jira_issue.labels:
        console.print(f"Labels: {escape(', '.join(jira_issue.labels))}")
    console.print(f"Jira URL: {jira_issue.url}")

    github_issue = status.github_issue
    if github_issue:
        console.print("\n[green]🔗 Linked GitHub Issue:[/green]")
        console.print(f"  Number: #{github_issue.number}")
        console.print(f"  State: {github_issue.state}")
        console.print(f"  URL: {github_issue.url}")
        if github_issue.labels:
            console.print(f"  GitHub Labels: {escape(', '.join(github_issue.labels))}")
    else:
        console.print("\n[yellow]⚠️  No linked GitHub issue found[/yellow]")

    if tempo is None:
        console.print("\n[grey50]⚠️  Tempo token not configured - time tracking unavailable[/grey50]")
        return status

    await _print_time_tracking(jira, tempo, issue_key, console)
    return status


async def _print_time_tracking(jira: JiraClient, tempo: TempoClient, issue_key: str, console: Console) -> None:
    try:
        tracking, worklogs = await asyncio.gather(
            jira.get_time_tracking(issue_key),
            tempo.get_worklogs(issue_key),
        )
    except JghError as e:
        logger.debug(f"Time tracking unavailable for {issue_key}: {e}")
        console.print("[yellow]⚠️  Could not fetch time tracking data[/yellow]")
        return

    summary = TimeSummary.from_tracking(tracking, worklogs)

    def spaced(seconds: int) -> str:
        return format_duration(seconds, DurationStyle.SPACED)

    console.print("\n[blue]⏱️  Time Tracking:[/blue]")
    if summary.estimate_seconds > 0:
        console.print(f"  Original Estimate: {spaced(summary.estimate_seconds)}")
    else:
        console.print("  [grey50]Original Estimate: Not set[/grey50]")

    if summary.logged_seconds > 0:
        console.print(f"  Time Logged: {spaced(summary.logged_seconds)}")
    else:
        console.print("  [grey50]Time Logged: None[/grey50]")

    deviation = summary.deviation_percent
    if deviation is not None:
        if summary.trend == "over":
            text = f"Over estimate by {round(deviation)}%"
        elif summary.trend == "under":
            text = f"Under estimate by {abs(round(deviation))}%"
        else:
            text = "On track"
        console.print(f"  Status: {summary.icon} {text}")

        remaining = summary.remaining_seconds
        if remaining > 0:
            console.print(f"  Remaining: {spaced(remaining)}")
        else:
            console.print(f"  [red]Over by: {spaced(abs(remaining))}[/red]")

    if worklogs:
        console.print(f"\n[blue]📊 Work Logs ({len(worklogs)} entries):[/blue]")
        for index, worklog in enumerate(worklogs[:MAX_WORKLOGS_SHOWN], start=1):
            when = f" on {worklog.start_date}" if worklog.start_date else ""
            console.print(f"  [grey50]{index}. {spaced(worklog.time_spent_seconds)}{when}[/grey50]")
        if len(worklogs) > MAX_WORKLOGS_SHOWN:
            console.print(f"  [grey50]... and {len(worklogs) - MAX_WORKLOGS_SHOWN} more entries[/grey50]")
