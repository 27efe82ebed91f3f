"""Comparison of estimated and logged time for an issue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from jgh.core.models import TimeTracking, Worklog
from jgh.utils.duration import parse_jira_duration

# Deviation (in percent) tolerated before an issue counts as over/under
TREND_TOLERANCE = 5.0

Trend = Literal["not_started", "on_track", "over", "under", "unknown"]

TREND_ICONS: dict[str, str] = {
    "not_started": "⏱️",
    "on_track": "🆗",
    "over": "📈",
    "under": "📉",
    "unknown": "🆗",
}


@dataclass
class TimeSummary:
    """Estimate vs logged seconds for one issue."""

    estimate_seconds: int = 0
    logged_seconds: int = 0

    @classmethod
    def from_tracking(cls, tracking: TimeTracking, worklogs: list[Worklog]) -> TimeSummary:
        """Build a summary from Jira time tracking and Tempo worklogs."""
        return cls(
            estimate_seconds=parse_jira_duration(tracking.original_estimate),
            logged_seconds=sum(w.time_spent_seconds for w in worklogs),
        )

    @property
    def has_data(self) -> bool:
        """Check if there is anything worth showing."""
        return self.estimate_seconds > 0 or self.logged_seconds > 0

    @property
    def deviation_percent(self) -> float | None:
        """Logged time relative to the estimate, in percent."""
        if self.estimate_seconds <= 0 or self.logged_seconds <= 0:
            return None
        return (self.logged_seconds - self.estimate_seconds) / self.estimate_seconds * 100

    @property
    def remaining_seconds(self) -> int:
        """Estimate minus logged time (negative when over)."""
        return self.estimate_seconds - self.logged_seconds

    @property
    def trend(self) -> Trend:
        """Classify progress against the estimate."""
        if self.logged_seconds == 0 and self.estimate_seconds > 0:
            return "not_started"
        deviation = self.deviation_percent
        if deviation is None:
            return "unknown"
        if deviation > TREND_TOLERANCE:
            return "over"
        if deviation < -TREND_TOLERANCE:
            return "under"
        return "on_track"

    @property
    def icon(self) -> str:
        """Emoji for the current trend."""
        return TREND_ICONS[self.trend]
