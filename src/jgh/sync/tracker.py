"""GitHub-side issue tracker interface.

Command handlers talk to GitHub only through ``IssueTracker`` so they can run
against the ``gh`` CLI in production and an in-memory fake in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from jgh.core.models import GitHubIssue


class IssueTracker(ABC):
    """Abstract base class for the GitHub issue tracker."""

    @abstractmethod
    async def ensure_available(self) -> None:
        """Fail early if the tracker cannot be reached.

        Raises:
            ExternalToolUnavailableError: If the backing tool is missing.
        """

    @abstractmethod
    async def create_issue(
        self,
        title: str,
        body: str,
        assign_me: bool = False,
        labels: list[str] | None = None,
    ) -> str:
        """Create an issue and return its URL."""

    @abstractmethod
    async def list_open_issues(self) -> list[GitHubIssue]:
        """List open issues, with ``jira_key`` extracted from each title."""

    @abstractmethod
    async def add_label(self, issue_number: int, label: str) -> None:
        """Add a label to an issue."""

    @abstractmethod
    async def remove_label(self, issue_number: int, label: str) -> None:
        """Remove a label from an issue."""

    @abstractmethod
    async def assign_self(self, issue_number: int) -> None:
        """Assign an issue to the authenticated user."""

    @abstractmethod
    async def unassign_self(self, issue_number: int) -> None:
        """Remove the authenticated user from an issue's assignees."""

    @abstractmethod
    async def close_issue(self, issue_number: int) -> None:
        """Close an issue."""

    @abstractmethod
    async def ensure_label(self, name: str, color: str, description: str = "") -> bool:
        """Create a repository label unless it exists.

        Returns:
            True if the label exists afterwards.
        """

    @abstractmethod
    async def current_login(self) -> str | None:
        """Login of the authenticated user, or None if unknown."""
