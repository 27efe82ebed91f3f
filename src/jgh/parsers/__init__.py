"""Command-string parsers."""

from jgh.parsers.command import parse_command, parse_title

__all__ = ["parse_command", "parse_title"]
