"""Exception hierarchy shared by the jgh command handlers.

Client modules subclass these so the CLI boundary can report any anticipated
failure with a single ``except JghError`` clause.
"""

from __future__ import annotations


class JghError(Exception):
    """Base exception for all anticipated jgh failures."""


class ConfigurationMissingError(JghError):
    """No configuration has been saved yet (``jgh setup`` never ran)."""


class RemoteRequestFailedError(JghError):
    """A call to Jira, Tempo or GitHub failed."""


class ExternalToolUnavailableError(JghError):
    """A required external binary is not installed."""


class ValidationError(JghError):
    """User input could not be validated."""


class NotFoundError(JghError):
    """A requested issue, user or transition does not exist."""
