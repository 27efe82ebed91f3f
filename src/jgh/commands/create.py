"""Command handler for `jgh create`."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from jgh.core.models import CreatedIssue, Priority
from jgh.errors import JghError
from jgh.parsers.command import parse_title
from jgh.sync.label_manager import LabelManager

if TYPE_CHECKING:
    from jgh.config import Config
    from jgh.sync.jira_client import JiraClient
    from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)


@dataclass
class CreateOptions:
    """Command-line flags for create; set values win over inline tokens."""

    description: str | None = None
    issue_type: str | None = None
    assign_me: bool = False
    labels: list[str] = field(default_factory=list)
    status: str | None = None


@dataclass
class CreateResult:
    """Both sides of a newly created issue pair."""

    jira: CreatedIssue
    github_url: str
    title: str
    labels: list[str] = field(default_factory=list)
    priority: Priority | None = None
    assigned: bool = False


def split_labels(value: str | None) -> list[str]:
    """Split a comma-separated ``--labels`` value."""
    if not value:
        return []
    return [label.strip() for label in value.split(",") if label.strip()]


def build_github_body(
    jira_url: str,
    description: str | None,
    labels: list[str],
    priority: Priority | None,
) -> str:
    """Compose the GitHub issue body linking back to Jira."""
    body = description or f"Linked to Jira issue: {jira_url}"
    if labels:
        body += f"\n\nLabels: +{' +'.join(labels)}"
    if priority:
        body += f"\n\nPriority: {priority.value}"
    return body


async def create_issue(
    config: Config,
    jira: JiraClient,
    tracker: IssueTracker,
    title: str,
    options: CreateOptions | None = None,
    console: Console | None = None,
) -> CreateResult:
    """Create a Jira issue and its linked GitHub issue.

    The GitHub title is the clean title followed by the Jira key, which is
    what links the pair.

    Args:
        config: Loaded configuration.
        jira: Open Jira client.
        tracker: GitHub issue tracker.
        title: Title possibly carrying inline tokens (@me, +label, (status), !priority).
        options: Flags overriding the inline tokens.
        console: Rich console for output.

    Returns:
        CreateResult describing both issues.
    """
    if console is None:
        console = Console()
    options = options or CreateOptions()
    settings = config.require_jira()

    parsed = parse_title(title)
    clean_title = parsed.clean_title
    assign_me = options.assign_me or parsed.assign_me
    labels = options.labels or parsed.add_labels
    status = options.status or parsed.status
    priority = parsed.priority
    issue_type = options.issue_type or settings.issue_type

    await tracker.ensure_available()

    console.print("[cyan]⌛ Creating Jira issue...[/cyan]")
    created = await jira.create_issue(
        project=settings.project,
        summary=clean_title,
        issue_type=issue_type,
        description=options.description or "",
        assignee_id=settings.account_id if assign_me else None,
        priority=priority,
    )
    console.print(f"[green]✅ Jira issue created: {created.key}[/green]")

    if status:
        console.print(f"[cyan]⌛ Setting status to: {escape(status)}...[/cyan]")
        try:
            await jira.transition_issue(created.key, status)
            console.print(f"[green]✅ Status set to: {escape(status)}[/green]")
        except JghError as e:
            console.print(f"[yellow]⚠️  Failed to set status: {e}[/yellow]")

    console.print("[cyan]⌛ Creating GitHub issue...[/cyan]")
    label_manager = LabelManager(tracker)
    github_labels = await label_manager.labels_for_new_issue(labels, priority)
    body = build_github_body(created.url, options.description, labels, priority)
    github_title = f"{clean_title} {created.key}"
    github_url = await tracker.create_issue(github_title, body, assign_me=assign_me, labels=github_labels)
    console.print("[green]✅ GitHub issue created[/green]")

    console.print("\n[blue]📋 Summary:[/blue]")
    console.print(f"Jira: {created.url}")
    console.print(f"GitHub: {github_url}")
    if labels:
        console.print(f"Labels: {escape(', '.join(labels))}")
    if priority:
        console.print(f"Priority: {priority.value}")
    if assign_me:
        console.print("Assigned to you")

    return CreateResult(
        jira=created,
        github_url=github_url,
        title=github_title,
        labels=github_labels,
        priority=priority,
        assigned=assign_me,
    )
