"""Core data models for jgh."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Priority(str, Enum):
    """Jira priority names reachable from the ``!priority`` token."""

    EXPRESS = "Express"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class SyncState(str, Enum):
    """Where a logical issue exists."""

    SYNCED = "synced"
    JIRA_ONLY = "jira-only"
    GITHUB_ONLY = "github-only"


# =============================================================================
# Parser Models
# =============================================================================


@dataclass
class ParsedCommand:
    """Structured intent extracted from a title or update string."""

    clean_title: str
    assign_me: bool = False
    unassign: bool = False
    add_labels: list[str] = field(default_factory=list)
    remove_labels: list[str] = field(default_factory=list)
    status: str | None = None
    priority: Priority | None = None

    @property
    def has_updates(self) -> bool:
        """Check whether anything besides the title was requested."""
        return bool(
            self.status
            or self.priority
            or self.add_labels
            or self.remove_labels
            or self.assign_me
            or self.unassign
        )


# =============================================================================
# Tracker Models
# =============================================================================


@dataclass
class JiraIssue:
    """An unresolved Jira issue as returned by search."""

    key: str  # e.g., "PROJ-123"
    summary: str
    status: str
    assignee: str | None = None  # Display name
    assignee_account_id: str | None = None
    labels: list[str] = field(default_factory=list)
    url: str = ""


@dataclass
class GitHubIssue:
    """A GitHub issue as returned by ``gh issue list --json``."""

    number: int
    title: str
    state: str = "OPEN"
    assignee: str | None = None  # First assignee login
    labels: list[str] = field(default_factory=list)
    url: str = ""
    jira_key: str | None = None  # Extracted from the title at fetch time

    @property
    def is_open(self) -> bool:
        """Check if the issue is open."""
        return self.state.upper() == "OPEN"


@dataclass
class SyncStatus:
    """Reconciled view of one Jira key across both trackers."""

    jira_key: str
    title: str
    labels: list[str]
    state: SyncState
    jira_issue: JiraIssue | None = None
    github_issue: GitHubIssue | None = None


@dataclass
class CreatedIssue:
    """Identifiers of a freshly created Jira issue."""

    key: str
    id: str
    url: str


@dataclass
class JiraTransition:
    """Represents an available Jira workflow transition."""

    id: str  # Transition ID (used for API calls)
    name: str  # Transition name (user-facing)
    to_status: str  # Target status name after transition


# =============================================================================
# Time Tracking Models
# =============================================================================


@dataclass
class TimeTracking:
    """Jira time-tracking fields in Jira's compact duration text."""

    original_estimate: str | None = None
    remaining_estimate: str | None = None
    time_spent: str | None = None


@dataclass
class Worklog:
    """A Tempo worklog entry."""

    time_spent_seconds: int
    start_date: str | None = None
    start_time: str | None = None
    description: str = ""
