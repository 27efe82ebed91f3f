"""Reconciliation of Jira and GitHub issue lists.

Issues are linked only through the Jira key embedded in the GitHub title,
so no mapping table is ever stored.
"""

from __future__ import annotations

import locale
import re
from collections import Counter
from dataclasses import dataclass

from jgh.core.models import GitHubIssue, JiraIssue, SyncState, SyncStatus

# Jira key embedded in a GitHub title (PROJECT-NUMBER format)
JIRA_KEY_PATTERN = re.compile(r"([A-Z]+-\d+)")


def extract_jira_key(title: str) -> str | None:
    """Return the first Jira-key-shaped substring of a title, if any."""
    match = JIRA_KEY_PATTERN.search(title)
    return match.group(1) if match else None


def reconcile(jira_issues: list[JiraIssue], github_issues: list[GitHubIssue]) -> list[SyncStatus]:
    """Merge both issue lists into one status per Jira key.

    GitHub issues must already carry ``jira_key``; those without one are
    not represented in the result.

    Args:
        jira_issues: Unresolved Jira issues.
        github_issues: Open GitHub issues.

    Returns:
        SyncStatus list sorted by Jira key.
    """
    statuses: dict[str, SyncStatus] = {}

    for jira_issue in jira_issues:
        statuses[jira_issue.key] = SyncStatus(
            jira_key=jira_issue.key,
            title=jira_issue.summary,
            labels=list(jira_issue.labels),
            state=SyncState.JIRA_ONLY,
            jira_issue=jira_issue,
        )

    for github_issue in github_issues:
        if not github_issue.jira_key:
            continue
        existing = statuses.get(github_issue.jira_key)
        if existing:
            existing.state = SyncState.SYNCED
            existing.github_issue = github_issue
        else:
            statuses[github_issue.jira_key] = SyncStatus(
                jira_key=github_issue.jira_key,
                title=github_issue.title,
                labels=list(github_issue.labels),
                state=SyncState.GITHUB_ONLY,
                github_issue=github_issue,
            )

    return sorted(statuses.values(), key=lambda s: locale.strxfrm(s.jira_key))


def find_synced(statuses: list[SyncStatus], jira_key: str) -> SyncStatus | None:
    """Find the synced status for a Jira key (case-insensitive)."""
    wanted = jira_key.upper()
    for status in statuses:
        if status.jira_key == wanted and status.state == SyncState.SYNCED:
            return status
    return None


# =============================================================================
# "Assigned to me" filtering
# =============================================================================


@dataclass
class UserIdentity:
    """Everything known about the current user on both trackers.

    Any part may be unknown; unknown parts never match.
    """

    account_id: str | None = None
    display_name: str | None = None
    github_login: str | None = None


def is_assigned_to_me(status: SyncStatus, identity: UserIdentity) -> bool:
    """Check whether either side of a status is assigned to the current user."""
    jira_issue = status.jira_issue
    if jira_issue is not None:
        if identity.account_id and jira_issue.assignee_account_id == identity.account_id:
            return True
        if identity.display_name and jira_issue.assignee and identity.display_name.lower() in jira_issue.assignee.lower():
            return True

    github_issue = status.github_issue
    return bool(github_issue is not None and identity.github_login and github_issue.assignee == identity.github_login)


def summarize(statuses: list[SyncStatus]) -> Counter[SyncState]:
    """Count statuses per sync state (missing states count as zero)."""
    return Counter(status.state for status in statuses)
