"""Duration parsing and formatting.

All arithmetic goes through whole seconds. Three text conventions exist:
Jira's own ("1h 30m"), the list badge ("1h30min") and the details view
("1h 30min").
"""

from __future__ import annotations

import re
from enum import Enum

from jgh.errors import ValidationError

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
# Jira defaults: 8h working day, 5d working week
SECONDS_PER_DAY = 8 * SECONDS_PER_HOUR
SECONDS_PER_WEEK = 5 * SECONDS_PER_DAY

_HOURS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)h")
_MINUTES_PATTERN = re.compile(r"(\d+)m(?:in)?")

_JIRA_UNITS = {
    "w": SECONDS_PER_WEEK,
    "d": SECONDS_PER_DAY,
    "h": SECONDS_PER_HOUR,
    "m": SECONDS_PER_MINUTE,
}
_JIRA_PART_PATTERN = re.compile(r"(\d+(?:\.\d+)?)([wdhm])")


class InvalidDurationError(ValidationError):
    """Duration text contained no hour or minute component."""


class DurationStyle(str, Enum):
    """Text convention used when formatting a duration."""

    JIRA = "jira"  # 1h 30m
    COMPACT = "compact"  # 1h30min
    SPACED = "spaced"  # 1h 30min


def parse_duration(text: str) -> int:
    """Parse user-entered duration text into seconds.

    Accepts an optional hour part (``2h``, ``1.5h``) and an optional minute
    part (``30min``, ``30m``); present parts are summed.

    Raises:
        InvalidDurationError: If the total is zero.
    """
    total = 0.0

    hour_match = _HOURS_PATTERN.search(text)
    if hour_match:
        total += float(hour_match.group(1)) * SECONDS_PER_HOUR

    minute_match = _MINUTES_PATTERN.search(text)
    if minute_match:
        total += int(minute_match.group(1)) * SECONDS_PER_MINUTE

    if total == 0:
        raise InvalidDurationError("Invalid duration format. Use formats like: 30min, 2h, 1.5h")

    return int(round(total))


def parse_jira_duration(text: str | None) -> int:
    """Read Jira time-tracking text (e.g. "1w 2d 3h 30m") into seconds.

    Lenient: empty or unrecognized text is zero.
    """
    if not text:
        return 0
    return int(sum(float(amount) * _JIRA_UNITS[unit] for amount, unit in _JIRA_PART_PATTERN.findall(text)))


def split_seconds(seconds: int) -> tuple[int, int]:
    """Split seconds into whole hours and leftover whole minutes."""
    seconds = max(int(seconds), 0)
    return seconds // SECONDS_PER_HOUR, (seconds % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE


def format_duration(seconds: int, style: DurationStyle = DurationStyle.JIRA) -> str:
    """Format seconds as hours and/or minutes, omitting zero components."""
    hours, minutes = split_seconds(seconds)
    minute_unit = "m" if style == DurationStyle.JIRA else "min"
    separator = "" if style == DurationStyle.COMPACT else " "

    if hours > 0 and minutes > 0:
        return f"{hours}h{separator}{minutes}{minute_unit}"
    if hours > 0:
        return f"{hours}h"
    return f"{minutes}{minute_unit}"
