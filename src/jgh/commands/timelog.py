"""Command handlers for `jgh time` and `jgh estimate`."""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from jgh.errors import ConfigurationMissingError, ValidationError
from jgh.utils.duration import DurationStyle, format_duration, parse_duration

if TYPE_CHECKING:
    from jgh.config import Config
    from jgh.sync.jira_client import JiraClient
    from jgh.sync.tempo_client import TempoClient

logger = logging.getLogger(__name__)

TEMPO_MISSING_MESSAGE = 'Tempo token not configured. Run "jgh reconfigure" to add it.'


def validate_work_date(value: str | None) -> str:
    """Return the work date as YYYY-MM-DD, defaulting to today."""
    if not value:
        return date.today().isoformat()
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD") from None


async def log_time(
    config: Config,
    jira: JiraClient,
    tempo: TempoClient | None,
    issue_key: str,
    duration: str,
    description: str | None = None,
    work_date: str | None = None,
    console: Console | None = None,
) -> int:
    """Log work on an issue through Tempo.

    Args:
        config: Loaded configuration.
        jira: Open Jira client (resolves the numeric issue id).
        tempo: Open Tempo client; None when no token is configured.
        issue_key: Jira key, any case.
        duration: Human duration such as ``1h30min``.
        description: Worklog text, defaults to "Work on KEY".
        work_date: YYYY-MM-DD, defaults to today.
        console: Rich console for output.

    Returns:
        The Tempo worklog ID.

    Raises:
        ConfigurationMissingError: If no Tempo token is configured.
        InvalidDurationError: If the duration cannot be parsed.
    """
    if console is None:
        console = Console()

    settings = config.require_jira()
    if tempo is None:
        raise ConfigurationMissingError(TEMPO_MISSING_MESSAGE)

    issue_key = issue_key.upper()
    seconds = parse_duration(duration)
    start_date = validate_work_date(work_date)

    console.print(f"[cyan]⌛ Logging {format_duration(seconds, DurationStyle.SPACED)} on {issue_key}...[/cyan]")

    account_id = settings.account_id or await jira.find_account_id(settings.email)
    issue_id = await jira.get_issue_id(issue_key)
    worklog_id = await tempo.log_work(
        author_account_id=account_id,
        issue_id=issue_id,
        seconds=seconds,
        start_date=start_date,
        description=description or f"Work on {issue_key}",
    )

    console.print(f"[green]✅ Time logged successfully! Worklog ID: {worklog_id}[/green]")
    return worklog_id


async def set_estimate(
    config: Config,
    jira: JiraClient,
    issue_key: str,
    duration: str,
    remaining: str | None = None,
    console: Console | None = None,
) -> str:
    """Set the original (and optionally remaining) estimate of an issue.

    Returns:
        The estimate as sent to Jira, e.g. "2h 30m".
    """
    if console is None:
        console = Console()

    config.require_jira()
    issue_key = issue_key.upper()
    estimate = format_duration(parse_duration(duration), DurationStyle.JIRA)
    remaining_estimate = format_duration(parse_duration(remaining), DurationStyle.JIRA) if remaining else None

    console.print(f"[cyan]⌛ Setting estimate for {issue_key}...[/cyan]")
    await jira.set_time_tracking(issue_key, original_estimate=estimate, remaining_estimate=remaining_estimate)

    console.print(f"[green]✅ Estimate set to {escape(estimate)} for {issue_key}[/green]")
    if remaining_estimate:
        console.print(f"[green]✅ Remaining estimate set to {escape(remaining_estimate)}[/green]")
    return estimate
