"""Keep Jira issues and their GitHub counterparts in step from the terminal."""

__version__ = "0.3.0"
