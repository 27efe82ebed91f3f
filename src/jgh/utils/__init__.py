"""Utility modules for jgh."""

from jgh.utils.duration import DurationStyle, InvalidDurationError, format_duration, parse_duration

__all__ = [
    "DurationStyle",
    "InvalidDurationError",
    "format_duration",
    "parse_duration",
]
