"""
Signal Sources

Per-tool extraction of weak clustering signals (collaborators, container).

Available Sources:
- GitHubSignalSource: branches, repositories, reviewers
- JiraSignalSource: epics, assignees, watchers
- SlackSignalSource: threads, authors, mentions
- ConfluenceSignalSource: spaces, editors
- FigmaSignalSource: files, commenters
"""

from .base import SignalSource, NullSignalSource, is_excluded_branch
from .github import GitHubSignalSource
from .jira import JiraSignalSource
from .slack import SlackSignalSource
from .confluence import ConfluenceSignalSource
from .figma import FigmaSignalSource
from .extractor import SignalExtractor, default_sources

__all__ = [
    "SignalSource",
    "NullSignalSource",
    "is_excluded_branch",
    "GitHubSignalSource",
    "JiraSignalSource",
    "SlackSignalSource",
    "ConfluenceSignalSource",
    "FigmaSignalSource",
    "SignalExtractor",
    "default_sources",
]
