"""Tests for the command handlers, run against an in-memory GitHub tracker.

Tests cover:
- create: token parsing, flag overrides, status transition warnings
- update: Jira field updates, GitHub mirroring, failure policy
- list / details: reconciliation output, "mine" filter, time badges
- time / estimate: Tempo worklogs and Jira estimates
"""

from __future__ import annotations

import io
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from jgh.commands.create import CreateOptions, build_github_body, create_issue, split_labels
from jgh.commands.listing import format_status_line, format_time_badge, list_issues, show_details
from jgh.commands.timelog import log_time, set_estimate, validate_work_date
from jgh.commands.update import update_issue
from jgh.config import Config, JiraSettings
from jgh.core.models import CreatedIssue, JiraIssue, Priority, SyncState, SyncStatus, TimeTracking, Worklog
from jgh.core.timesheet import TimeSummary
from jgh.errors import ConfigurationMissingError, NotFoundError, ValidationError
from jgh.sync.jira_client import JiraClientError, JiraTransitionError
from jgh.sync.memory_tracker import InMemoryTracker
from jgh.sync.tempo_client import TempoClientError
from jgh.utils.duration import InvalidDurationError

JIRA_URL = "https://acme.atlassian.net"

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def console() -> Console:
    """Console writing plain text into a buffer."""
    return Console(file=io.StringIO(), force_terminal=False, width=200)


def output_of(console: Console) -> str:
    return console.file.getvalue()  # type: ignore[attr-defined]


@pytest.fixture
def config() -> Config:
    """Configuration as written by setup."""
    return Config(
        jira=JiraSettings(
            url=JIRA_URL,
            email="ada@acme.io",
            token="secret",
            project="PROJ",
            issue_type="Task",
            account_id="acc-me",
        ),
        display_name="Ada Lovelace",
    )


@pytest.fixture
def jira() -> MagicMock:
    """Jira client double with every used operation stubbed."""
    jira = MagicMock()
    jira.create_issue = AsyncMock(return_value=CreatedIssue(key="PROJ-5", id="10005", url=f"{JIRA_URL}/browse/PROJ-5"))
    jira.transition_issue = AsyncMock()
    jira.search_open_issues = AsyncMock(return_value=[])
    jira.find_account_id = AsyncMock(return_value="acc-me")
    jira.set_priority = AsyncMock()
    jira.get_labels = AsyncMock(return_value=[])
    jira.set_labels = AsyncMock()
    jira.set_assignee = AsyncMock()
    jira.get_time_tracking = AsyncMock(return_value=TimeTracking())
    jira.get_issue_id = AsyncMock(return_value=10005)
    jira.set_time_tracking = AsyncMock()
    return jira


@pytest.fixture
def tempo() -> MagicMock:
    """Tempo client double."""
    tempo = MagicMock()
    tempo.get_worklogs = AsyncMock(return_value=[])
    tempo.log_work = AsyncMock(return_value=77)
    return tempo


@pytest.fixture
def tracker() -> InMemoryTracker:
    """Empty GitHub tracker."""
    return InMemoryTracker(login="octocat")


def jira_issue(key: str, summary: str = "Jira title", **kwargs: object) -> JiraIssue:
    return JiraIssue(key=key, summary=summary, status="To Do", url=f"{JIRA_URL}/browse/{key}", **kwargs)  # type: ignore[arg-type]


# =============================================================================
# Create
# =============================================================================


class TestCreateHelpers:
    """Tests for create helpers."""

    def test_split_labels(self) -> None:
        """Test comma-separated label flags."""
        assert split_labels("ui, api,,docs ") == ["ui", "api", "docs"]
        assert split_labels(None) == []

    def test_body_links_back_to_jira(self) -> None:
        """Test the default body with labels and priority."""
        body = build_github_body(f"{JIRA_URL}/browse/PROJ-5", None, ["ui", "api"], Priority.HIGH)

        assert body == f"Linked to Jira issue: {JIRA_URL}/browse/PROJ-5\n\nLabels: +ui +api\n\nPriority: High"

    def test_body_uses_description(self) -> None:
        """Test an explicit description replaces the link text."""
        assert build_github_body("url", "Details here", [], None) == "Details here"


class TestCreateIssue:
    """Tests for create_issue."""

    @pytest.mark.asyncio
    async def test_create_with_inline_tokens(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test tokens drive both Jira and GitHub creation."""
        result = await create_issue(config, jira, tracker, "Fix login @me +backend (In Progress) !high", console=console)

        jira.create_issue.assert_awaited_once_with(
            project="PROJ",
            summary="Fix login",
            issue_type="Task",
            description="",
            assignee_id="acc-me",
            priority=Priority.HIGH,
        )
        jira.transition_issue.assert_awaited_once_with("PROJ-5", "In Progress")

        issue = tracker.issues[1]
        assert issue.title == "Fix login PROJ-5"
        assert issue.jira_key == "PROJ-5"
        assert issue.labels == ["backend", "high-priority"]
        assert issue.assignee == "octocat"

        assert result.github_url == issue.url
        assert result.assigned is True
        output = output_of(console)
        assert "Jira issue created: PROJ-5" in output
        assert "Assigned to you" in output

    @pytest.mark.asyncio
    async def test_flags_override_tokens(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test command-line flags win over inline tokens."""
        options = CreateOptions(description="Long text", issue_type="Bug", labels=["x"], status="Done")

        result = await create_issue(config, jira, tracker, "Title +y (Todo)", options, console)

        assert jira.create_issue.call_args.kwargs["issue_type"] == "Bug"
        assert jira.create_issue.call_args.kwargs["description"] == "Long text"
        assert jira.create_issue.call_args.kwargs["assignee_id"] is None
        jira.transition_issue.assert_awaited_once_with("PROJ-5", "Done")
        assert result.labels == ["x"]
        assert tracker.issues[1].assignee is None

    @pytest.mark.asyncio
    async def test_status_failure_is_a_warning(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test a failed transition does not stop GitHub creation."""
        jira.transition_issue.side_effect = JiraTransitionError('Transition "Nope" not found. Available transitions: Done')

        await create_issue(config, jira, tracker, "Title (Nope)", console=console)

        assert len(tracker.issues) == 1
        assert "Failed to set status" in output_of(console)

    @pytest.mark.asyncio
    async def test_jira_failure_aborts(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test no GitHub issue is created when Jira creation fails."""
        jira.create_issue.side_effect = JiraClientError("summary: required")

        with pytest.raises(JiraClientError):
            await create_issue(config, jira, tracker, "Title", console=console)

        assert tracker.issues == {}

    @pytest.mark.asyncio
    async def test_requires_configuration(self, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test create refuses to run before setup."""
        with pytest.raises(ConfigurationMissingError):
            await create_issue(Config(), jira, tracker, "Title", console=console)

        jira.create_issue.assert_not_called()


# =============================================================================
# Update
# =============================================================================


@pytest.fixture
def linked(jira: MagicMock, tracker: InMemoryTracker) -> InMemoryTracker:
    """PROJ-1 open on both sides, PROJ-2 only in Jira."""
    jira.search_open_issues.return_value = [
        jira_issue("PROJ-1", "Fix login", labels=["bug"]),
        jira_issue("PROJ-2", "Jira only"),
    ]
    jira.get_labels.return_value = ["bug"]
    tracker.add_issue("Fix login PROJ-1", labels=["bug", "medium-priority"])
    return tracker


class TestUpdateIssue:
    """Tests for update_issue."""

    @pytest.mark.asyncio
    async def test_full_update(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test every intent is applied to both sides."""
        result = await update_issue(config, jira, linked, "proj-1", "(Done) +qa -bug !low @me", console)

        jira.transition_issue.assert_awaited_once_with("PROJ-1", "Done")
        jira.set_priority.assert_awaited_once_with("PROJ-1", Priority.LOW)
        jira.set_labels.assert_awaited_once_with("PROJ-1", ["qa"])
        jira.set_assignee.assert_awaited_once_with("PROJ-1", "acc-me")

        issue = linked.issues[1]
        assert issue.labels == ["qa", "low-priority"]
        assert issue.assignee == "octocat"
        assert issue.state == "CLOSED"

        assert result.issue_key == "PROJ-1"
        assert result.jira_labels == ["qa"]
        assert result.warnings == []
        assert "Issue PROJ-1 updated successfully!" in output_of(console)

    @pytest.mark.asyncio
    async def test_no_updates_rejected(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test an update string without tokens is rejected before any call."""
        with pytest.raises(ValidationError, match="No updates specified"):
            await update_issue(config, jira, linked, "PROJ-1", "just words", console)

        jira.search_open_issues.assert_not_called()

    @pytest.mark.asyncio
    async def test_transition_failure_is_fatal(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test a missing transition aborts before GitHub is touched."""
        jira.transition_issue.side_effect = JiraTransitionError('Transition "Shipped" not found. Available transitions: Done')

        with pytest.raises(NotFoundError, match="Shipped"):
            await update_issue(config, jira, linked, "PROJ-1", "(Shipped) +qa", console)

        assert linked.issues[1].labels == ["bug", "medium-priority"]
        jira.set_labels.assert_not_called()

    @pytest.mark.asyncio
    async def test_field_failures_are_warnings(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test priority and label failures degrade to warnings."""
        jira.set_priority.side_effect = JiraClientError("priority: not on screen")
        jira.set_labels.side_effect = JiraClientError("labels: invalid")

        result = await update_issue(config, jira, linked, "PROJ-1", "!high +qa", console)

        assert len(result.warnings) == 2
        assert "Failed to set priority" in result.warnings[0]
        assert "high-priority" in linked.issues[1].labels
        assert "qa" in linked.issues[1].labels

    @pytest.mark.asyncio
    async def test_unassign_wins_on_jira(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test @unassign takes precedence over @me for Jira."""
        await update_issue(config, jira, linked, "PROJ-1", "@me @unassign", console)

        jira.set_assignee.assert_awaited_once_with("PROJ-1", None)

    @pytest.mark.asyncio
    async def test_assign_resolves_missing_account_id(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test the account ID is looked up when setup could not store it."""
        assert config.jira is not None
        config.jira.account_id = None
        jira.find_account_id.return_value = "acc-looked-up"

        await update_issue(config, jira, linked, "PROJ-1", "@me", console)

        jira.find_account_id.assert_awaited_once_with("ada@acme.io")
        jira.set_assignee.assert_awaited_once_with("PROJ-1", "acc-looked-up")

    @pytest.mark.asyncio
    async def test_jira_only_issue_warns(self, config: Config, jira: MagicMock, linked: InMemoryTracker, console: Console) -> None:
        """Test an unlinked issue is updated on Jira only."""
        result = await update_issue(config, jira, linked, "PROJ-2", "+qa", console)

        assert result.github is None
        jira.set_labels.assert_awaited_once()
        assert "No synced GitHub issue found for PROJ-2" in output_of(console)


# =============================================================================
# List / Details
# =============================================================================


@pytest.fixture
def board(jira: MagicMock, tracker: InMemoryTracker) -> InMemoryTracker:
    """One synced, one Jira-only and one GitHub-only issue."""
    jira.search_open_issues.return_value = [
        jira_issue("PROJ-1", "Fix login", assignee="Ada Lovelace", assignee_account_id="acc-me", labels=["bug"]),
        jira_issue("PROJ-2", "Write docs", assignee="Grace Hopper", assignee_account_id="acc-grace"),
    ]
    tracker.add_issue("Fix login PROJ-1", labels=["bug"])
    tracker.add_issue("Orphan PROJ-3", assignee="octocat")
    tracker.add_issue("Not linked at all")
    return tracker


class TestListIssues:
    """Tests for list_issues."""

    @pytest.mark.asyncio
    async def test_list_all(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test the reconciled view and its summary counts."""
        statuses = await list_issues(config, jira, board, console=console)

        assert [(s.jira_key, s.state) for s in statuses] == [
            ("PROJ-1", SyncState.SYNCED),
            ("PROJ-2", SyncState.JIRA_ONLY),
            ("PROJ-3", SyncState.GITHUB_ONLY),
        ]
        output = output_of(console)
        assert "📊 Summary: 1 synced, 1 Jira-only, 1 GitHub-only, 2 assigned to me" in output
        assert "👤@Grace" in output
        assert "Not linked at all" not in output

    @pytest.mark.asyncio
    async def test_list_mine(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test the mine filter matches account ID and GitHub login."""
        statuses = await list_issues(config, jira, board, mine=True, console=console)

        assert [s.jira_key for s in statuses] == ["PROJ-1", "PROJ-3"]
        assert "📊 My Issues: 2 total (1 synced, 0 Jira-only, 1 GitHub-only)" in output_of(console)

    @pytest.mark.asyncio
    async def test_list_empty(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test the empty message."""
        assert await list_issues(config, jira, tracker, console=console) == []
        assert "No open issues found." in output_of(console)

    @pytest.mark.asyncio
    async def test_list_mine_empty(self, config: Config, jira: MagicMock, tracker: InMemoryTracker, console: Console) -> None:
        """Test the empty message for the mine filter."""
        await list_issues(config, jira, tracker, mine=True, console=console)
        assert "No issues assigned to you found." in output_of(console)

    @pytest.mark.asyncio
    async def test_identity_lookup_is_best_effort(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test a failing account lookup still lists issues."""
        assert config.jira is not None
        config.jira.account_id = None
        config.display_name = None
        jira.find_account_id.side_effect = JiraClientError("boom")

        statuses = await list_issues(config, jira, board, mine=True, console=console)

        assert [s.jira_key for s in statuses] == ["PROJ-3"]

    @pytest.mark.asyncio
    async def test_time_badge(self, config: Config, jira: MagicMock, tempo: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test the logged/estimate badge for Jira issues."""
        jira.get_time_tracking.return_value = TimeTracking(original_estimate="1h")
        tempo.get_worklogs.return_value = [Worklog(time_spent_seconds=5400)]

        await list_issues(config, jira, board, tempo=tempo, console=console)

        assert "1h30min/1h 📈 +50%" in output_of(console)
        # GitHub-only issues have no Jira time tracking
        assert tempo.get_worklogs.await_count == 2

    @pytest.mark.asyncio
    async def test_time_badge_failure_is_ignored(self, config: Config, jira: MagicMock, tempo: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test Tempo failures leave the list intact."""
        tempo.get_worklogs.side_effect = TempoClientError("unauthorized")

        statuses = await list_issues(config, jira, board, tempo=tempo, console=console)

        assert len(statuses) == 3
        assert "📈" not in output_of(console)


class TestListFormatting:
    """Tests for list line formatting."""

    def test_long_title_truncated(self) -> None:
        """Test titles over 50 characters are cut to 47 plus an ellipsis."""
        status = SyncStatus(jira_key="PROJ-1", title="x" * 60, labels=["a", "b"], state=SyncState.SYNCED)

        line = format_status_line(status, "")

        assert "x" * 47 + "..." in line
        assert "x" * 48 not in line
        assert " +a +b" in line

    @pytest.mark.parametrize(
        ("estimate", "logged", "expected"),
        [
            (3600, 5400, "1h30min/1h[/yellow] 📈 +50%"),
            (7200, 3600, "1h/2h[/yellow] 📉 -50%"),
            (3600, 3600, "1h/1h[/yellow] 🆗 0%"),
            (3600, 0, "0min/1h[/yellow] ⏱️"),
        ],
    )
    def test_time_badge(self, estimate: int, logged: int, expected: str) -> None:
        """Test badge text per trend."""
        assert format_time_badge(TimeSummary(estimate, logged)).endswith(expected)

    def test_no_badge_without_data(self) -> None:
        """Test nothing is shown without estimate or logged time."""
        assert format_time_badge(TimeSummary()) == ""


class TestShowDetails:
    """Tests for show_details."""

    @pytest.mark.asyncio
    async def test_details_with_link(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test Jira fields and the linked GitHub issue."""
        status = await show_details(config, jira, board, "proj-1", console=console)

        assert status.state == SyncState.SYNCED
        output = output_of(console)
        assert "Title: Fix login" in output
        assert "Assignee: Ada Lovelace" in output
        assert "Number: #1" in output
        assert "Tempo token not configured - time tracking unavailable" in output

    @pytest.mark.asyncio
    async def test_details_without_link(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test the warning for an unlinked Jira issue."""
        await show_details(config, jira, board, "PROJ-2", console=console)

        assert "No linked GitHub issue found" in output_of(console)

    @pytest.mark.asyncio
    async def test_details_unknown_issue(self, config: Config, jira: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test unknown and GitHub-only keys are not found."""
        with pytest.raises(NotFoundError, match="PROJ-99"):
            await show_details(config, jira, board, "PROJ-99", console=console)
        with pytest.raises(NotFoundError):
            await show_details(config, jira, board, "PROJ-3", console=console)

    @pytest.mark.asyncio
    async def test_details_time_tracking(self, config: Config, jira: MagicMock, tempo: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test estimate comparison and the worklog list."""
        jira.get_time_tracking.return_value = TimeTracking(original_estimate="2h")
        tempo.get_worklogs.return_value = [Worklog(time_spent_seconds=1800, start_date=f"2024-03-0{i}") for i in range(1, 8)]

        await show_details(config, jira, board, "PROJ-1", tempo=tempo, console=console)

        output = output_of(console)
        assert "Original Estimate: 2h" in output
        assert "Time Logged: 3h 30min" in output
        assert "Over estimate by 75%" in output
        assert "Over by: 1h 30min" in output
        assert "1. 30min on 2024-03-01" in output
        assert "... and 2 more entries" in output

    @pytest.mark.asyncio
    async def test_details_time_tracking_failure(self, config: Config, jira: MagicMock, tempo: MagicMock, board: InMemoryTracker, console: Console) -> None:
        """Test time tracking errors degrade to a warning."""
        jira.get_time_tracking.side_effect = JiraClientError("forbidden")

        await show_details(config, jira, board, "PROJ-1", tempo=tempo, console=console)

        assert "Could not fetch time tracking data" in output_of(console)


# =============================================================================
# Time / Estimate
# =============================================================================


class TestLogTime:
    """Tests for log_time."""

    @pytest.mark.asyncio
    async def test_log_time(self, config: Config, jira: MagicMock, tempo: MagicMock, console: Console) -> None:
        """Test a worklog is created with defaults filled in."""
        worklog_id = await log_time(config, jira, tempo, "proj-5", "1h30min", work_date="2024-03-01", console=console)

        assert worklog_id == 77
        jira.get_issue_id.assert_awaited_once_with("PROJ-5")
        tempo.log_work.assert_awaited_once_with(
            author_account_id="acc-me",
            issue_id=10005,
            seconds=5400,
            start_date="2024-03-01",
            description="Work on PROJ-5",
        )
        assert "Time logged successfully! Worklog ID: 77" in output_of(console)

    @pytest.mark.asyncio
    async def test_requires_tempo(self, config: Config, jira: MagicMock, console: Console) -> None:
        """Test a missing Tempo token is reported."""
        with pytest.raises(ConfigurationMissingError, match="Tempo token"):
            await log_time(config, jira, None, "PROJ-5", "1h", console=console)

    @pytest.mark.asyncio
    async def test_invalid_duration(self, config: Config, jira: MagicMock, tempo: MagicMock, console: Console) -> None:
        """Test bad durations fail before any remote call."""
        with pytest.raises(InvalidDurationError):
            await log_time(config, jira, tempo, "PROJ-5", "soon", console=console)

        tempo.log_work.assert_not_called()

    def test_work_date_defaults_to_today(self) -> None:
        """Test the date default and validation."""
        assert validate_work_date(None) == date.today().isoformat()
        assert validate_work_date("2024-02-29") == "2024-02-29"
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            validate_work_date("29/02/2024")


class TestSetEstimate:
    """Tests for set_estimate."""

    @pytest.mark.asyncio
    async def test_set_estimate(self, config: Config, jira: MagicMock, console: Console) -> None:
        """Test the estimate is sent in Jira's duration format."""
        estimate = await set_estimate(config, jira, "proj-5", "1h30min", console=console)

        assert estimate == "1h 30m"
        jira.set_time_tracking.assert_awaited_once_with("PROJ-5", original_estimate="1h 30m", remaining_estimate=None)

    @pytest.mark.asyncio
    async def test_set_estimate_with_remaining(self, config: Config, jira: MagicMock, console: Console) -> None:
        """Test the optional remaining estimate."""
        await set_estimate(config, jira, "PROJ-5", "4h", remaining="45min", console=console)

        jira.set_time_tracking.assert_awaited_once_with("PROJ-5", original_estimate="4h", remaining_estimate="45m")
