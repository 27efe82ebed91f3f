"""Jira REST API v3 client.

This module provides an async HTTP client for the Jira operations jgh needs:
user lookup, issue creation, search, workflow transitions, field updates
and time tracking. Credentials come from the saved configuration.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from jgh.core.models import CreatedIssue, JiraIssue, JiraTransition, Priority, TimeTracking
from jgh.errors import NotFoundError, RemoteRequestFailedError

logger = logging.getLogger(__name__)

# Jira API constants
DEFAULT_TIMEOUT = 30.0
SEARCH_PAGE_SIZE = 100
SEARCH_LIMIT = 1000
SEARCH_FIELDS = "summary,status,assignee,labels"


class JiraClientError(RemoteRequestFailedError):
    """Base exception for Jira client errors."""


class JiraAuthError(JiraClientError):
    """Authentication with Jira failed."""


class JiraRateLimitError(JiraClientError):
    """Jira API rate limit exceeded."""


class JiraNotFoundError(JiraClientError, NotFoundError):
    """Requested resource not found."""


class JiraTransitionError(JiraClientError, NotFoundError):
    """Transition failed or is not available."""


@dataclass
class TransitionCache:
    """Cache for available transitions per issue."""

    transitions: dict[str, list[JiraTransition]] = field(default_factory=dict)

    def get(self, issue_key: str) -> list[JiraTransition] | None:
        """Get cached transitions for an issue."""
        return self.transitions.get(issue_key)

    def set(self, issue_key: str, transitions: list[JiraTransition]) -> None:
        """Cache transitions for an issue."""
        self.transitions[issue_key] = transitions

    def invalidate(self, issue_key: str) -> None:
        """Forget transitions for an issue whose status changed."""
        self.transitions.pop(issue_key, None)


def remote_error_message(response: httpx.Response) -> str:
    """Pull the most useful error text out of a Jira error response.

    Jira reports failures as ``{"errorMessages": [...], "errors": {...}}``;
    fall back to the raw body when that shape is missing.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        messages = data.get("errorMessages") or []
        if messages:
            return str(messages[0])
        errors = data.get("errors") or {}
        if errors:
            return "; ".join(f"{name}: {message}" for name, message in errors.items())

    return f"HTTP {response.status_code}: {response.text[:200]}"


def _adf_paragraph(text: str) -> dict[str, Any]:
    """Wrap plain text as an Atlassian Document Format document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


def _label_names(raw_labels: list[Any] | None) -> list[str]:
    """Normalize Jira labels (plain strings, or objects with a name)."""
    names: list[str] = []
    for label in raw_labels or []:
        if isinstance(label, dict):
            label = label.get("name")
        if label:
            names.append(str(label))
    return names


class JiraClient:
    """Async Jira REST API v3 client.

    Failed requests are not retried; every error surfaces as a
    ``JiraClientError`` subclass carrying Jira's own message when present.
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        token: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the Jira client.

        Args:
            base_url: Jira instance URL (e.g., https://company.atlassian.net).
            email: User email for authentication.
            token: API token.
            timeout: Request timeout in seconds.

        Raises:
            JiraAuthError: If the token or email is empty.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self._email = email
        self._token = token

        if not self._token:
            raise JiraAuthError("No Jira API token provided. Run 'jgh setup' first.")
        if not self._email:
            raise JiraAuthError("No Jira email provided. Run 'jgh setup' first.")

        # Basic Auth header (email:token base64 encoded) - never log!
        credentials = f"{self._email}:{self._token}"
        encoded = base64.b64encode(credentials.encode()).decode()
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {encoded}",
        }

        self._client: httpx.AsyncClient | None = None
        self._transition_cache = TransitionCache()

    async def __aenter__(self) -> JiraClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized."""
        if self._client is None:
            raise RuntimeError("JiraClient must be used as async context manager")
        return self._client

    def browse_url(self, issue_key: str) -> str:
        """Build the browser URL for an issue."""
        return f"{self.base_url}/browse/{issue_key}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make an HTTP request and map failures onto the error hierarchy.

        Args:
            method: HTTP method (GET, POST, PUT).
            endpoint: API endpoint (e.g., "/rest/api/3/issue/PROJ-123").
            **kwargs: Additional arguments passed to httpx request.

        Returns:
            httpx.Response object.

        Raises:
            JiraAuthError: If authentication fails.
            JiraRateLimitError: If rate limit is exceeded.
            JiraNotFoundError: If resource is not found.
            JiraClientError: For other API or transport errors.
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise JiraClientError(f"Request to Jira timed out: {endpoint}") from e
        except httpx.HTTPError as e:
            raise JiraClientError(f"HTTP error talking to Jira: {e}") from e

        if response.status_code < 400:
            return response

        message = remote_error_message(response)
        logger.debug(f"Jira API error {response.status_code} on {method} {endpoint}: {message}")

        if response.status_code == 429:
            # Retry-After may also be an HTTP date
            retry_after = response.headers.get("Retry-After", "").strip()
            hint = f" Retry after {retry_after}s." if retry_after.isdigit() else ""
            raise JiraRateLimitError(f"Jira API rate limit exceeded.{hint} {message}")

        if response.status_code == 401:
            raise JiraAuthError(f"Jira authentication failed ({message}). Check your email and API token.")
        if response.status_code == 403:
            raise JiraAuthError(f"Jira access forbidden ({message}). Check token permissions.")

        if response.status_code == 404:
            raise JiraNotFoundError(message)

        raise JiraClientError(message)

    # =========================================================================
    # User Operations
    # =========================================================================

    async def find_account_id(self, email: str | None = None) -> str:
        """Look up the Atlassian account ID for an email address.

        Args:
            email: Email to search for. Defaults to the authenticated email.

        Returns:
            The first matching account ID.

        Raises:
            JiraNotFoundError: If no user matches.
        """
        query = email or self._email
        response = await self._request("GET", "/rest/api/3/user/search", params={"query": query})
        users = response.json()

        if not users:
            raise JiraNotFoundError(f"User not found: {query}")

        return users[0]["accountId"]

    # =========================================================================
    # Issue Operations
    # =========================================================================

    async def create_issue(
        self,
        project: str,
        summary: str,
        issue_type: str,
        description: str = "",
        assignee_id: str | None = None,
        priority: Priority | None = None,
    ) -> CreatedIssue:
        """Create an issue.

        Args:
            project: Project key.
            summary: Issue summary (title).
            issue_type: Issue type name (Task, Bug, ...).
            description: Plain-text description; the summary is used when empty.
            assignee_id: Account ID to assign, if any.
            priority: Priority to set, if any.

        Returns:
            CreatedIssue with key, id and browse URL.
        """
        fields: dict[str, Any] = {
            "project": {"key": project},
            "summary": summary,
            "description": _adf_paragraph(description or summary),
            "issuetype": {"name": issue_type},
        }
        if assignee_id:
            fields["assignee"] = {"accountId": assignee_id}
        if priority:
            fields["priority"] = {"name": priority.value}

        response = await self._request("POST", "/rest/api/3/issue", json={"fields": fields})
        data = response.json()

        logger.info(f"Created Jira issue {data['key']}")
        return CreatedIssue(key=data["key"], id=str(data["id"]), url=self.browse_url(data["key"]))

    async def search_open_issues(self, project: str, limit: int = SEARCH_LIMIT) -> list[JiraIssue]:
        """List unresolved issues in a project.

        Follows ``nextPageToken`` until the result set or ``limit`` is exhausted.

        Args:
            project: Project key.
            limit: Maximum number of issues to return.

        Returns:
            List of JiraIssue objects.
        """
        issues: list[JiraIssue] = []
        params: dict[str, Any] = {
            "jql": f"project={project} AND resolution=Unresolved",
            "fields": SEARCH_FIELDS,
            "maxResults": SEARCH_PAGE_SIZE,
        }

        while len(issues) < limit:
            response = await self._request("GET", "/rest/api/3/search/jql", params=params)
            data = response.json()

            for item in data.get("issues", []):
                fields = item.get("fields", {})
                assignee = fields.get("assignee") or {}
                issues.append(
                    JiraIssue(
                        key=item["key"],
                        summary=fields.get("summary", ""),
                        status=(fields.get("status") or {}).get("name", ""),
                        assignee=assignee.get("displayName"),
                        assignee_account_id=assignee.get("accountId"),
                        labels=_label_names(fields.get("labels")),
                        url=self.browse_url(item["key"]),
                    )
                )

            next_token = data.get("nextPageToken")
            if not next_token or data.get("isLast", False):
                break
            params["nextPageToken"] = next_token

        logger.debug(f"Fetched {len(issues)} unresolved Jira issue(s) from {project}")
        return issues[:limit]

    async def get_issue_id(self, issue_key: str) -> int:
        """Resolve an issue key to its numeric ID."""
        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}", params={"fields": "id"})
        return int(response.json()["id"])

    async def get_labels(self, issue_key: str) -> list[str]:
        """Get the current labels of an issue."""
        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}", params={"fields": "labels"})
        return _label_names(response.json().get("fields", {}).get("labels"))

    async def update_fields(self, issue_key: str, fields: dict[str, Any]) -> None:
        """PUT a partial field update onto an issue.

        Args:
            issue_key: The issue key (e.g., "PROJ-123").
            fields: Jira ``fields`` payload.
        """
        await self._request("PUT", f"/rest/api/3/issue/{issue_key}", json={"fields": fields})

    async def set_labels(self, issue_key: str, labels: list[str]) -> None:
        """Replace the labels of an issue."""
        await self.update_fields(issue_key, {"labels": labels})

    async def set_priority(self, issue_key: str, priority: Priority) -> None:
        """Set the priority of an issue."""
        await self.update_fields(issue_key, {"priority": {"name": priority.value}})

    async def set_assignee(self, issue_key: str, account_id: str | None) -> None:
        """Assign an issue, or unassign it when ``account_id`` is None."""
        assignee = {"accountId": account_id} if account_id else None
        await self.update_fields(issue_key, {"assignee": assignee})

    # =========================================================================
    # Transition Operations
    # =========================================================================

    async def get_transitions(self, issue_key: str, use_cache: bool = True) -> list[JiraTransition]:
        """Get available transitions for an issue.

        Args:
            issue_key: The issue key (e.g., "PROJ-123").
            use_cache: Whether to use cached transitions if available.

        Returns:
            List of available JiraTransition objects.
        """
        if use_cache:
            cached = self._transition_cache.get(issue_key)
            if cached is not None:
                return cached

        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}/transitions")
        data = response.json()

        transitions = [
            JiraTransition(
                id=t["id"],
                name=t["name"],
                to_status=(t.get("to") or {}).get("name", ""),
            )
            for t in data.get("transitions", [])
        ]

        self._transition_cache.set(issue_key, transitions)
        return transitions

    async def find_transition_by_name(self, issue_key: str, transition_name: str) -> JiraTransition | None:
        """Find a transition by name for an issue (case-insensitive)."""
        transitions = await self.get_transitions(issue_key)
        wanted = transition_name.lower()

        for t in transitions:
            if t.name.lower() == wanted:
                return t

        return None

    async def transition_issue(self, issue_key: str, transition_name: str) -> JiraTransition:
        """Move an issue through a named workflow transition.

        Args:
            issue_key: The issue key (e.g., "PROJ-123").
            transition_name: The transition name to perform.

        Returns:
            The transition that was performed.

        Raises:
            JiraTransitionError: If the transition is not available.
        """
        transition = await self.find_transition_by_name(issue_key, transition_name)
        if transition is None:
            available = await self.get_transitions(issue_key)
            available_names = ", ".join(t.name for t in available)
            raise JiraTransitionError(f'Transition "{transition_name}" not found. Available transitions: {available_names}')

        await self._request(
            "POST",
            f"/rest/api/3/issue/{issue_key}/transitions",
            json={"transition": {"id": transition.id}},
        )

        self._transition_cache.invalidate(issue_key)

        logger.info(f"Transitioned {issue_key} via '{transition.name}' -> {transition.to_status}")
        return transition

    # =========================================================================
    # Time Tracking
    # =========================================================================

    async def get_time_tracking(self, issue_key: str) -> TimeTracking:
        """Get estimate and time-spent fields of an issue."""
        response = await self._request("GET", f"/rest/api/3/issue/{issue_key}", params={"fields": "timetracking"})
        tracking = response.json().get("fields", {}).get("timetracking") or {}

        return TimeTracking(
            original_estimate=tracking.get("originalEstimate"),
            remaining_estimate=tracking.get("remainingEstimate"),
            time_spent=tracking.get("timeSpent"),
        )

    async def set_time_tracking(
        self,
        issue_key: str,
        original_estimate: str | None = None,
        remaining_estimate: str | None = None,
    ) -> None:
        """Set estimate fields (Jira duration text such as "2h 30m")."""
        tracking: dict[str, str] = {}
        if original_estimate is not None:
            tracking["originalEstimate"] = original_estimate
        if remaining_estimate is not None:
            tracking["remainingEstimate"] = remaining_estimate

        if not tracking:
            return

        await self.update_fields(issue_key, {"timetracking": tracking})
