"""In-process IssueTracker used by the command tests."""

from __future__ import annotations

from dataclasses import dataclass, field

from jgh.core.models import GitHubIssue
from jgh.core.reconcile import extract_jira_key
from jgh.errors import NotFoundError
from jgh.sync.tracker import IssueTracker


@dataclass
class RepoLabel:
    """A label defined in the fake repository."""

    name: str
    color: str
    description: str = ""


class InMemoryTracker(IssueTracker):
    """IssueTracker keeping issues and labels in memory.

    Mirrors gh semantics closely enough for command tests: new issues are
    open, labels must exist before they are attached, and ``@me`` is the
    configured login.
    """

    def __init__(self, login: str | None = "octocat", repo_url: str = "https://github.com/acme/app") -> None:
        self.login = login
        self.repo_url = repo_url
        self.issues: dict[int, GitHubIssue] = {}
        self.labels: dict[str, RepoLabel] = {}
        self.calls: list[tuple[str, ...]] = []
        self._next_number = 1

    def add_issue(
        self,
        title: str,
        labels: list[str] | None = None,
        assignee: str | None = None,
        state: str = "OPEN",
    ) -> GitHubIssue:
        """Seed an existing issue (labels are registered on the fly)."""
        for name in labels or []:
            self.labels.setdefault(name, RepoLabel(name=name, color="ededed"))
        number = self._next_number
        self._next_number += 1
        issue = GitHubIssue(
            number=number,
            title=title,
            state=state,
            assignee=assignee,
            labels=list(labels or []),
            url=f"{self.repo_url}/issues/{number}",
            jira_key=extract_jira_key(title),
        )
        self.issues[number] = issue
        return issue

    def _get(self, issue_number: int) -> GitHubIssue:
        try:
            return self.issues[issue_number]
        except KeyError:
            raise NotFoundError(f"GitHub issue #{issue_number} not found") from None

    async def ensure_available(self) -> None:
        self.calls.append(("ensure_available",))

    async def create_issue(
        self,
        title: str,
        body: str,
        assign_me: bool = False,
        labels: list[str] | None = None,
    ) -> str:
        self.calls.append(("create_issue", title))
        missing = [name for name in labels or [] if name not in self.labels]
        if missing:
            raise NotFoundError(f"could not add label: '{missing[0]}' not found")
        issue = self.add_issue(title, labels=labels, assignee=self.login if assign_me else None)
        return issue.url

    async def list_open_issues(self) -> list[GitHubIssue]:
        self.calls.append(("list_open_issues",))
        return [issue for issue in self.issues.values() if issue.is_open]

    async def add_label(self, issue_number: int, label: str) -> None:
        self.calls.append(("add_label", str(issue_number), label))
        issue = self._get(issue_number)
        if label not in self.labels:
            raise NotFoundError(f"'{label}' not found")
        if label not in issue.labels:
            issue.labels.append(label)

    async def remove_label(self, issue_number: int, label: str) -> None:
        self.calls.append(("remove_label", str(issue_number), label))
        issue = self._get(issue_number)
        if label in issue.labels:
            issue.labels.remove(label)

    async def assign_self(self, issue_number: int) -> None:
        self.calls.append(("assign_self", str(issue_number)))
        self._get(issue_number).assignee = self.login

    async def unassign_self(self, issue_number: int) -> None:
        self.calls.append(("unassign_self", str(issue_number)))
        issue = self._get(issue_number)
        if issue.assignee == self.login:
            issue.assignee = None

    async def close_issue(self, issue_number: int) -> None:
        self.calls.append(("close_issue", str(issue_number)))
        self._get(issue_number).state = "CLOSED"

    async def ensure_label(self, name: str, color: str, description: str = "") -> bool:
        self.calls.append(("ensure_label", name))
        self.labels.setdefault(name, RepoLabel(name=name, color=color, description=description))
        return True

    async def current_login(self) -> str | None:
        return self.login
