"""Command handler for `jgh update`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from jgh.commands.listing import fetch_sync_statuses
from jgh.core.reconcile import find_synced
from jgh.errors import JghError, ValidationError
from jgh.parsers.command import parse_command
from jgh.sync.label_manager import LabelChangeResult, LabelManager, merge_labels

if TYPE_CHECKING:
    from jgh.config import Config
    from jgh.core.models import ParsedCommand
    from jgh.sync.jira_client import JiraClient
    from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)

NO_UPDATES_MESSAGE = "No updates specified. Use (status), !priority, +label, -label, @me, or @unassign"


@dataclass
class UpdateResult:
    """What an update changed on each side."""

    issue_key: str
    command: ParsedCommand
    jira_labels: list[str] | None = None
    github: LabelChangeResult | None = None
    warnings: list[str] = field(default_factory=list)


async def _update_jira(
    jira: JiraClient,
    issue_key: str,
    command: ParsedCommand,
    account_id: str | None,
    email: str,
    console: Console,
    result: UpdateResult,
) -> None:
    """Apply status, priority, labels and assignee to the Jira issue.

    The status transition is fatal; the other fields degrade to warnings.
    """

    def warn(message: str) -> None:
        result.warnings.append(message)
        console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")

    if command.status:
        console.print(f"[cyan]⌛ Setting status to: {escape(command.status)}...[/cyan]")
        await jira.transition_issue(issue_key, command.status)

    if command.priority:
        try:
            await jira.set_priority(issue_key, command.priority)
        except JghError as e:
            warn(f"Failed to set priority: {e}")

    if command.add_labels or command.remove_labels:
        try:
            current = await jira.get_labels(issue_key)
            merged = merge_labels(current, command.add_labels, command.remove_labels)
            await jira.set_labels(issue_key, merged)
            result.jira_labels = merged
        except JghError as e:
            warn(f"Failed to update labels: {e}")

    if command.unassign:
        try:
            await jira.set_assignee(issue_key, None)
        except JghError as e:
            warn(f"Failed to unassign issue: {e}")
    elif command.assign_me:
        try:
            await jira.set_assignee(issue_key, account_id or await jira.find_account_id(email))
        except JghError as e:
            warn(f"Failed to assign issue: {e}")


async def update_issue(
    config: Config,
    jira: JiraClient,
    tracker: IssueTracker,
    issue_key: str,
    update_string: str,
    console: Console | None = None,
) -> UpdateResult:
    """Apply an update string to a Jira issue and its synced GitHub issue.

    Args:
        config: Loaded configuration.
        jira: Open Jira client.
        tracker: GitHub issue tracker.
        issue_key: Jira key, any case.
        update_string: Tokens such as ``(In Progress) !high +backend @me``.
        console: Rich console for output.

    Returns:
        UpdateResult for both sides.

    Raises:
        ValidationError: If the update string carries no update tokens.
    """
    if console is None:
        console = Console()

    command = parse_command(update_string)
    if not command.has_updates:
        raise ValidationError(NO_UPDATES_MESSAGE)

    settings = config.require_jira()
    issue_key = issue_key.upper()
    result = UpdateResult(issue_key=issue_key, command=command)

    console.print(f"[cyan]⌛ Updating issue {issue_key}...[/cyan]")
    statuses = await fetch_sync_statuses(jira, tracker, settings.project)
    synced = find_synced(statuses, issue_key)

    console.print("[cyan]⌛ Updating Jira issue...[/cyan]")
    await _update_jira(jira, issue_key, command, settings.account_id, settings.email, console, result)
    console.print("[green]✅ Jira issue updated[/green]")

    if synced is not None and synced.github_issue is not None:
        console.print("[cyan]⌛ Updating GitHub issue...[/cyan]")
        result.github = await LabelManager(tracker).apply(synced.github_issue.number, command)
        for warning in result.github.warnings:
            console.print(f"[yellow]⚠️  {escape(warning)}[/yellow]")
        console.print("[green]✅ GitHub issue updated[/green]")
    else:
        console.print(f"[yellow]⚠️  No synced GitHub issue found for {issue_key}[/yellow]")

    console.print(f"\n[green]✅ Issue {issue_key} updated successfully![/green]")
    return result
