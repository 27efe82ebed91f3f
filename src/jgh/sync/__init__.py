"""Jira, Tempo and GitHub issue tracker clients."""

from jgh.sync.github_cli import GhCliTracker, GHError, GHNotFoundError
from jgh.sync.jira_client import JiraClient, JiraClientError, JiraTransitionError
from jgh.sync.label_manager import LabelManager
from jgh.sync.memory_tracker import InMemoryTracker
from jgh.sync.tempo_client import TempoClient, TempoClientError
from jgh.sync.tracker import IssueTracker

__all__ = [
    "GHError",
    "GHNotFoundError",
    "GhCliTracker",
    "InMemoryTracker",
    "IssueTracker",
    "JiraClient",
    "JiraClientError",
    "JiraTransitionError",
    "LabelManager",
    "TempoClient",
    "TempoClientError",
]
