"""Command handlers for `jgh setup`, `jgh reconfigure` and `jgh config`.

Setup asks every question; reconfigure only asks about values that are
missing or no longer valid, so a partially written file can be repaired
without retyping the API token.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console

from jgh.config import ISSUE_TYPES, Config, JiraSettings, default_config_path, mask_secret
from jgh.errors import JghError
from jgh.sync.jira_client import JiraClient

logger = logging.getLogger(__name__)

Validator = Callable[[str], str | None]


def validate_url(value: str) -> str | None:
    if "atlassian.net" not in value:
        return "Please enter a valid Atlassian URL"
    return None


def validate_email(value: str) -> str | None:
    if "@" not in value:
        return "Please enter a valid email"
    return None


def validate_required(value: str) -> str | None:
    if not value.strip():
        return "This value is required"
    return None


def validate_issue_type(value: str) -> str | None:
    if value not in ISSUE_TYPES:
        return f"Choose one of: {', '.join(ISSUE_TYPES)}"
    return None


def prompt_value(
    label: str,
    validator: Validator = validate_required,
    default: str | None = None,
    hide_input: bool = False,
    console: Console | None = None,
) -> str:
    """Prompt until the answer passes validation."""
    while True:
        value = typer.prompt(label, default=default, hide_input=hide_input, show_default=not hide_input).strip()
        error = validator(value)
        if error is None:
            return value
        if console is not None:
            console.print(f"[red]{error}[/red]")


def prompt_optional_secret(label: str) -> str | None:
    """Prompt for a secret that may be skipped with an empty answer."""
    value = typer.prompt(label, default="", hide_input=True, show_default=False).strip()
    return value or None


async def lookup_account_id(settings: JiraSettings) -> str:
    """Resolve the Atlassian account ID of the configured user."""
    async with JiraClient(settings.url, settings.email, settings.token) as jira:
        return await jira.find_account_id(settings.email)


def resolve_account_id(settings: JiraSettings, console: Console) -> str | None:
    """Best-effort account ID lookup; None (with a warning) on failure."""
    console.print("[cyan]⌛ Looking up your Jira account ID...[/cyan]")
    try:
        account_id = asyncio.run(lookup_account_id(settings))
    except JghError as e:
        logger.debug(f"Account ID lookup failed: {e}")
        console.print(f"[yellow]⚠️  Could not resolve your Jira account ID: {e}[/yellow]")
        console.print("[yellow]Saving without it; assignment will look it up when needed.[/yellow]")
        return None
    console.print("[green]✅ Account ID resolved[/green]")
    return account_id


def run_setup(config_path: Path | None = None, console: Console | None = None) -> Config:
    """Interactively create the configuration file."""
    if console is None:
        console = Console()

    console.print("[blue]🔧 Setting up jgh...[/blue]\n")

    settings = JiraSettings(
        url=prompt_value("Jira URL (e.g. https://company.atlassian.net)", validate_url, console=console).rstrip("/"),
        email=prompt_value("Jira email", validate_email, console=console),
        token=prompt_value("Jira API token", hide_input=True, console=console),
        project=prompt_value("Jira project key", console=console).upper(),
        issue_type=prompt_value(
            f"Default issue type ({'/'.join(ISSUE_TYPES)})",
            validate_issue_type,
            default=ISSUE_TYPES[0],
            console=console,
        ),
    )
    display_name = prompt_value("Your Jira display name", console=console)
    tempo_token = prompt_optional_secret("Tempo API token (optional, press Enter to skip)")

    settings.account_id = resolve_account_id(settings, console)

    config = Config(jira=settings, display_name=display_name, tempo_token=tempo_token)
    saved_to = config.save(config_path)
    logger.debug(f"Configuration written to {saved_to}")
    console.print(f"\n[green]✅ Configuration saved to {saved_to}[/green]")
    return config


def run_reconfigure(config_path: Path | None = None, console: Console | None = None) -> list[str]:
    """Fill in missing or invalid configuration values.

    Returns:
        Names of the fields that changed.
    """
    if console is None:
        console = Console()

    config = Config.load(config_path)
    before = config.model_dump()
    settings = config.jira.model_copy() if config.jira else JiraSettings()

    console.print("[blue]🔧 Reconfiguring jgh (only missing or invalid values are asked)...[/blue]\n")

    checks: list[tuple[str, str, Validator, bool]] = [
        ("url", "Jira URL (e.g. https://company.atlassian.net)", validate_url, False),
        ("email", "Jira email", validate_email, False),
        ("token", "Jira API token", validate_required, True),
        ("project", "Jira project key", validate_required, False),
        ("issue_type", f"Default issue type ({'/'.join(ISSUE_TYPES)})", validate_issue_type, False),
    ]
    for name, label, validator, secret in checks:
        current = getattr(settings, name) or ""
        if validator(current) is None:
            continue
        setattr(settings, name, prompt_value(label, validator, hide_input=secret, console=console))
    settings.url = settings.url.rstrip("/")
    settings.project = settings.project.upper()

    if not config.display_name:
        config.display_name = prompt_value("Your Jira display name", console=console)
    if not config.tempo_token:
        config.tempo_token = prompt_optional_secret("Tempo API token (optional, press Enter to skip)")

    credentials_changed = any(getattr(settings, f) != (before["jira"] or {}).get(f) for f in ("url", "email", "token"))
    refresh = not settings.account_id or credentials_changed or typer.confirm("Refresh your Jira account ID?", default=False)
    if refresh:
        settings.account_id = resolve_account_id(settings, console) or settings.account_id

    config.jira = settings
    after = config.model_dump()
    changed = [f"jira.{k}" for k, v in after["jira"].items() if v != (before["jira"] or {}).get(k)]
    changed += [k for k in ("display_name", "tempo_token") if after[k] != before[k]]

    if not changed:
        console.print("[green]✅ Nothing to change[/green]")
        return []

    saved_to = config.save(config_path)
    console.print(f"\n[green]✅ Configuration updated in {saved_to}[/green]")
    for name in changed:
        console.print(f"  • {name}")
    return changed


def show_config(config: Config, config_path: Path | None = None, console: Console | None = None) -> None:
    """Print the configuration with secrets masked."""
    if console is None:
        console = Console()

    settings = config.require_jira()
    console.print(f"[blue]📋 Current configuration ({config_path or default_config_path()}):[/blue]\n")
    console.print(f"Jira URL: {settings.url}")
    console.print(f"Jira Email: {settings.email}")
    console.print(f"Jira Token: {mask_secret(settings.token)}")
    console.print(f"Jira Project: {settings.project}")
    console.print(f"Issue Type: {settings.issue_type}")
    console.print(f"Account ID: {settings.account_id or 'Not set'}")
    console.print(f"Display Name: {config.display_name or 'Not set'}")
    console.print(f"Tempo Token: {mask_secret(config.tempo_token)}")
