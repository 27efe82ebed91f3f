"""Label lifecycle management for linked issues.

This module computes Jira label updates and applies label, priority and
assignee changes to the linked GitHub issue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jgh.core.models import Priority
from jgh.errors import JghError

if TYPE_CHECKING:
    from jgh.core.models import ParsedCommand
    from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)

DEFAULT_LABEL_COLOR = "d73a4a"


@dataclass(frozen=True)
class PriorityLabel:
    """GitHub label standing in for a Jira priority."""

    name: str
    color: str
    description: str


HIGH_PRIORITY = PriorityLabel("high-priority", "d73a4a", "High priority issue")
MEDIUM_PRIORITY = PriorityLabel("medium-priority", "fbca04", "Medium priority issue")
LOW_PRIORITY = PriorityLabel("low-priority", "0e8a16", "Low priority issue")

PRIORITY_LABELS: dict[Priority, PriorityLabel] = {
    Priority.EXPRESS: HIGH_PRIORITY,
    Priority.HIGH: HIGH_PRIORITY,
    Priority.MEDIUM: MEDIUM_PRIORITY,
    Priority.LOW: LOW_PRIORITY,
}

# Jira statuses that mean the GitHub side should be closed
CLOSING_STATUSES = frozenset({"closed", "rejected", "done", "completed", "resolved", "finished"})


def merge_labels(current: list[str], add: list[str], remove: list[str]) -> list[str]:
    """Apply label additions and removals, keeping order.

    Adding a label that is already present is a no-op, so repeated
    ``+label`` tokens are harmless.
    """
    merged = list(current)
    for label in add:
        if label not in merged:
            merged.append(label)
    return [label for label in merged if label not in remove]


def is_closing_status(status: str | None) -> bool:
    """Check whether a Jira status should close the GitHub issue."""
    return bool(status) and status.lower() in CLOSING_STATUSES


@dataclass
class LabelChangeResult:
    """Outcome of mirroring an update onto a GitHub issue."""

    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    assigned: bool = False
    unassigned: bool = False
    closed: bool = False
    warnings: list[str] = field(default_factory=list)


class LabelManager:
    """Manages labels, priority and assignment on GitHub issues.

    Handles:
    - Label creation if missing
    - Priority label swaps (remove all priority labels, add the new one)
    - Closing the issue when the Jira status is terminal
    """

    def __init__(self, tracker: IssueTracker, create_if_missing: bool = True) -> None:
        """Initialize the label manager.

        Args:
            tracker: IssueTracker for the GitHub side.
            create_if_missing: Whether to create labels if they don't exist.
        """
        self.tracker = tracker
        self.create_if_missing = create_if_missing
        self._ensured: set[str] = set()

    async def ensure_label(self, name: str, color: str = DEFAULT_LABEL_COLOR, description: str = "Auto-created label") -> None:
        """Ensure a label exists, once per manager."""
        if not self.create_if_missing or name in self._ensured:
            return
        try:
            if await self.tracker.ensure_label(name, color, description):
                self._ensured.add(name)
                logger.debug(f"Ensured label exists: {name}")
        except JghError as e:
            logger.warning(f"Failed to ensure label '{name}': {e}")

    async def ensure_priority_label(self, priority: Priority) -> str:
        """Ensure the GitHub label for a priority exists and return its name."""
        label = PRIORITY_LABELS[priority]
        await self.ensure_label(label.name, label.color, label.description)
        return label.name

    async def clear_priority_labels(self, issue_number: int) -> None:
        """Remove every priority label from an issue (errors ignored)."""
        for name in sorted({label.name for label in PRIORITY_LABELS.values()}):
            try:
                await self.tracker.remove_label(issue_number, name)
            except JghError as e:
                logger.debug(f"Ignoring failure removing '{name}' from #{issue_number}: {e}")

    async def labels_for_new_issue(self, labels: list[str], priority: Priority | None) -> list[str]:
        """Ensure labels for a new issue exist; append the priority label."""
        result = list(dict.fromkeys(labels))
        for name in result:
            await self.ensure_label(name)
        if priority:
            priority_label = await self.ensure_priority_label(priority)
            if priority_label not in result:
                result.append(priority_label)
        return result

    async def apply(self, issue_number: int, command: ParsedCommand) -> LabelChangeResult:
        """Mirror a parsed update onto a GitHub issue.

        Each step is independent: a failure is recorded as a warning and the
        remaining steps still run.

        Args:
            issue_number: The GitHub issue number.
            command: Parsed update intents.

        Returns:
            LabelChangeResult describing what changed.
        """
        result = LabelChangeResult()
        to_add = list(dict.fromkeys(command.add_labels))

        if command.priority:
            await self.clear_priority_labels(issue_number)
            to_add.append(await self.ensure_priority_label(command.priority))

        for label in command.add_labels:
            await self.ensure_label(label)

        for label in to_add:
            try:
                await self.tracker.add_label(issue_number, label)
                result.added.append(label)
            except JghError as e:
                result.warnings.append(f'Warning adding label "{label}": {e}')

        for label in command.remove_labels:
            try:
                await self.tracker.remove_label(issue_number, label)
                result.removed.append(label)
            except JghError as e:
                result.warnings.append(f'Warning removing label "{label}": {e}')

        if command.assign_me:
            try:
                await self.tracker.assign_self(issue_number)
                result.assigned = True
            except JghError as e:
                result.warnings.append(f"Warning assigning issue: {e}")

        if command.unassign:
            try:
                await self.tracker.unassign_self(issue_number)
                result.unassigned = True
            except JghError as e:
                result.warnings.append(f"Warning unassigning issue: {e}")

        if is_closing_status(command.status):
            try:
                await self.tracker.close_issue(issue_number)
                result.closed = True
            except JghError as e:
                result.warnings.append(f"Warning closing issue: {e}")

        for warning in result.warnings:
            logger.info(warning)

        return result
