"""GitHub issue tracker backed by the gh CLI.

This module runs `gh` asynchronously (argument vectors, never a shell) to
create, list, edit and close issues in the repository of the current
working directory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from dataclasses import dataclass

from jgh.core.models import GitHubIssue
from jgh.core.reconcile import extract_jira_key
from jgh.errors import ExternalToolUnavailableError, RemoteRequestFailedError
from jgh.sync.tracker import IssueTracker

logger = logging.getLogger(__name__)

GH_INSTALL_HINT = "GitHub CLI (gh) is not installed. Please install it from https://cli.github.com/"

# Fields to request from gh CLI
GH_ISSUE_FIELDS = "number,title,state,assignees,labels,url"
GH_LIST_LIMIT = 1000


class GHError(RemoteRequestFailedError):
    """Base exception for gh CLI errors."""


class GHNotFoundError(ExternalToolUnavailableError):
    """The gh CLI tool is not installed or not found."""


class GHAuthError(GHError):
    """Authentication with GitHub failed."""


class GHRateLimitError(GHError):
    """GitHub API rate limit exceeded."""


@dataclass
class GHResult:
    """Result of a gh CLI command execution."""

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0


def check_gh_available() -> bool:
    """Check if the gh CLI is installed and available."""
    return shutil.which("gh") is not None


async def _run_gh_command(args: list[str]) -> GHResult:
    """Run a gh CLI command asynchronously.

    Args:
        args: Arguments to pass to gh CLI (excluding 'gh' itself).

    Returns:
        GHResult with stdout, stderr, and return code.

    Raises:
        GHNotFoundError: If gh CLI is not installed.
        GHAuthError: If authentication fails.
        GHRateLimitError: If rate limit is exceeded.
    """
    if not check_gh_available():
        raise GHNotFoundError(GH_INSTALL_HINT)

    cmd = ["gh", *args]
    logger.debug(f"Running gh command: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise GHNotFoundError(GH_INSTALL_HINT) from e

    stdout_bytes, stderr_bytes = await process.communicate()
    stdout = stdout_bytes.decode("utf-8", errors="replace")
    stderr = stderr_bytes.decode("utf-8", errors="replace")
    returncode = process.returncode or 0

    result = GHResult(stdout=stdout, stderr=stderr, returncode=returncode)

    if not result.success:
        lowered = stderr.lower()
        if "authentication" in lowered or "not logged in" in lowered:
            raise GHAuthError(f"GitHub authentication failed: {stderr.strip()}")
        if "rate limit" in lowered:
            raise GHRateLimitError(f"GitHub rate limit exceeded: {stderr.strip()}")

    return result


async def _run_gh_checked(args: list[str], action: str) -> str:
    """Run a gh command and return stdout, raising GHError on failure."""
    result = await _run_gh_command(args)
    if not result.success:
        raise GHError(f"Failed to {action}: {result.stderr.strip() or f'gh exited with {result.returncode}'}")
    return result.stdout


def parse_issue_list(json_str: str) -> list[GitHubIssue]:
    """Parse `gh issue list --json` output.

    Args:
        json_str: JSON array from gh CLI output.

    Returns:
        GitHubIssue list with Jira keys extracted from titles.

    Raises:
        GHError: If the output is not valid JSON.
    """
    if not json_str.strip():
        return []

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise GHError(f"Failed to parse gh JSON output: {e}") from e

    issues: list[GitHubIssue] = []
    for item in data:
        title = item.get("title", "")
        assignees = [a.get("login", "") for a in item.get("assignees") or []]
        issues.append(
            GitHubIssue(
                number=item.get("number", 0),
                title=title,
                state=item.get("state", "OPEN"),
                assignee=assignees[0] if assignees else None,
                labels=[label.get("name", "") for label in item.get("labels") or []],
                url=item.get("url", ""),
                jira_key=extract_jira_key(title),
            )
        )

    return issues


class GhCliTracker(IssueTracker):
    """IssueTracker that shells out to the gh CLI."""

    def __init__(self, repo: str | None = None) -> None:
        """Initialize the tracker.

        Args:
            repo: Repository in 'owner/repo' format. None uses the repository
                of the current working directory.
        """
        self.repo = repo
        self._resolved_repo: str | None = repo

    def _repo_args(self) -> list[str]:
        return ["--repo", self.repo] if self.repo else []

    async def ensure_available(self) -> None:
        """Run `gh --version` as a preflight check."""
        result = await _run_gh_command(["--version"])
        if not result.success:
            raise GHNotFoundError(GH_INSTALL_HINT)
        logger.debug(f"gh available: {result.stdout.splitlines()[0] if result.stdout else '?'}")

    async def create_issue(
        self,
        title: str,
        body: str,
        assign_me: bool = False,
        labels: list[str] | None = None,
    ) -> str:
        """Create an issue and return its URL."""
        args = ["issue", "create", *self._repo_args(), "--title", title, "--body", body]
        if assign_me:
            args.extend(["--assignee", "@me"])
        if labels:
            args.extend(["--label", ",".join(labels)])

        stdout = await _run_gh_checked(args, "create GitHub issue")
        return stdout.strip()

    async def list_open_issues(self) -> list[GitHubIssue]:
        """List open issues in the repository."""
        args = [
            "issue",
            "list",
            *self._repo_args(),
            "--state",
            "open",
            "--json",
            GH_ISSUE_FIELDS,
            "--limit",
            str(GH_LIST_LIMIT),
        ]
        stdout = await _run_gh_checked(args, "fetch GitHub issues")
        return parse_issue_list(stdout)

    async def _edit(self, issue_number: int, flag: str, value: str, action: str) -> None:
        args = ["issue", "edit", str(issue_number), *self._repo_args(), flag, value]
        await _run_gh_checked(args, action)

    async def add_label(self, issue_number: int, label: str) -> None:
        """Add a label to an issue."""
        await self._edit(issue_number, "--add-label", label, f'add label "{label}"')

    async def remove_label(self, issue_number: int, label: str) -> None:
        """Remove a label from an issue."""
        await self._edit(issue_number, "--remove-label", label, f'remove label "{label}"')

    async def assign_self(self, issue_number: int) -> None:
        """Assign an issue to the authenticated user."""
        await self._edit(issue_number, "--add-assignee", "@me", "assign issue")

    async def unassign_self(self, issue_number: int) -> None:
        """Unassign the authenticated user."""
        await self._edit(issue_number, "--remove-assignee", "@me", "unassign issue")

    async def close_issue(self, issue_number: int) -> None:
        """Close an issue."""
        await _run_gh_checked(["issue", "close", str(issue_number), *self._repo_args()], "close issue")

    async def resolve_repo(self) -> str | None:
        """Resolve 'owner/name' via `gh repo view`, or None if unavailable."""
        if self._resolved_repo:
            return self._resolved_repo

        result = await _run_gh_command(["repo", "view", "--json", "owner,name"])
        if not result.success:
            logger.warning(f"Could not resolve repository: {result.stderr.strip()}")
            return None

        try:
            data = json.loads(result.stdout)
            self._resolved_repo = f"{data['owner']['login']}/{data['name']}"
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Unexpected gh repo view output: {e}")
            return None

        return self._resolved_repo

    async def ensure_label(self, name: str, color: str, description: str = "") -> bool:
        """Create a label, treating "already exists" as success."""
        repo = await self.resolve_repo()
        if repo is None:
            return False

        result = await _run_gh_command(
            [
                "api",
                f"repos/{repo}/labels",
                "-f",
                f"name={name}",
                "-f",
                f"color={color}",
                "-f",
                f"description={description}",
            ]
        )
        if result.success:
            logger.debug(f"Created label: {name}")
            return True
        if "already_exists" in result.stderr or "already_exists" in result.stdout:
            return True

        logger.warning(f"Failed to create label '{name}': {result.stderr.strip()}")
        return False

    async def current_login(self) -> str | None:
        """Login of the authenticated gh user."""
        result = await _run_gh_command(["api", "user", "--jq", ".login"])
        if not result.success:
            return None
        return result.stdout.strip() or None
