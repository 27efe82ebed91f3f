"""Core data model and reconciliation logic."""

from jgh.core.models import GitHubIssue, JiraIssue, ParsedCommand, Priority, SyncState, SyncStatus
from jgh.core.reconcile import extract_jira_key, find_synced, reconcile

__all__ = [
    "GitHubIssue",
    "JiraIssue",
    "ParsedCommand",
    "Priority",
    "SyncState",
    "SyncStatus",
    "extract_jira_key",
    "find_synced",
    "reconcile",
]
