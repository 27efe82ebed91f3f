"""Tempo REST API v4 client for worklogs."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from jgh.core.models import Worklog
from jgh.errors import RemoteRequestFailedError

logger = logging.getLogger(__name__)

TEMPO_API_BASE = "https://api.tempo.io/4"
DEFAULT_TIMEOUT = 30.0


class TempoClientError(RemoteRequestFailedError):
    """Base exception for Tempo client errors."""


class TempoAuthError(TempoClientError):
    """Authentication with Tempo failed."""


def _tempo_error_message(response: httpx.Response) -> str:
    """Extract Tempo's error text (``{"errors": [{"message": ...}]}``)."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            return str(first.get("message", first)) if isinstance(first, dict) else str(first)
        if isinstance(errors, dict) and errors.get("message"):
            return str(errors["message"])
        if data.get("message"):
            return str(data["message"])

    return f"HTTP {response.status_code}: {response.text[:200]}"


class TempoClient:
    """Async Tempo client (Bearer token auth)."""

    def __init__(self, token: str, base_url: str = TEMPO_API_BASE, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not token:
            raise TempoAuthError("No Tempo token configured. Run 'jgh reconfigure' to add one.")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # never log!
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> TempoClient:
        """Enter async context manager."""
        self._client = httpx.AsyncClient(base_url=self.base_url, headers=self._headers, timeout=self.timeout)
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
            raise RuntimeError("TempoClient must be used as async context manager")
        return self._client

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        """Make an HTTP request, raising TempoClientError on failure."""
        try:
            response = await self.client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise TempoClientError(f"HTTP error talking to Tempo: {e}") from e

        if response.status_code < 400:
            return response

        message = _tempo_error_message(response)
        logger.debug(f"Tempo API error {response.status_code} on {method} {endpoint}: {message}")

        if response.status_code == 401:
            raise TempoAuthError(f"Tempo authentication failed ({message}). Check your Tempo token.")

        raise TempoClientError(message)

    async def log_work(
        self,
        author_account_id: str,
        issue_id: int,
        seconds: int,
        start_date: str,
        description: str,
    ) -> int:
        """Create a worklog.

        Args:
            author_account_id: Atlassian account ID of the author.
            issue_id: Numeric Jira issue ID.
            seconds: Time spent.
            start_date: Work date (YYYY-MM-DD).
            description: Worklog description.

        Returns:
            The Tempo worklog ID.
        """
        response = await self._request(
            "POST",
            "/worklogs",
            json={
                "authorAccountId": author_account_id,
                "issueId": issue_id,
                "timeSpentSeconds": seconds,
                "startDate": start_date,
                "description": description,
            },
        )
        worklog_id = response.json()["tempoWorklogId"]
        logger.info(f"Logged {seconds}s on issue {issue_id} (worklog {worklog_id})")
        return worklog_id

    async def get_worklogs(self, issue_key: str) -> list[Worklog]:
        """List worklogs recorded against an issue."""
        response = await self._request("GET", f"/worklogs/issue/{issue_key}")
        return [
            Worklog(
                time_spent_seconds=int(item.get("timeSpentSeconds", 0)),
                start_date=item.get("startDate"),
                start_time=item.get("startTime"),
                description=item.get("description") or "",
            )
            for item in response.json().get("results", [])
        ]
