"""
Signal Extractor

Dispatches raw payloads to the SignalSource registered for their tool.
Unknown tools and missing payloads yield empty signals, never errors.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ...common.schemas import ExtractedSignals
from .base import NullSignalSource, SignalSource
from .confluence import ConfluenceSignalSource
from .figma import FigmaSignalSource
from .github import GitHubSignalSource
from .jira import JiraSignalSource
from .slack import SlackSignalSource

logger = logging.getLogger("storyweave.clustering.signals")


def default_sources() -> List[SignalSource]:
    """Fresh instances of every built-in signal source"""
    return [
        GitHubSignalSource(),
        JiraSignalSource(),
        SlackSignalSource(),
        ConfluenceSignalSource(),
        FigmaSignalSource(),
    ]


class SignalExtractor:
    """
    Extracts collaborators and container from an activity's raw payload.

    Adding a tool means registering another SignalSource; dispatch itself
    never changes.
    """

    def __init__(
        self,
        sources: Optional[Iterable[SignalSource]] = None,
        fallback: Optional[SignalSource] = None,
    ):
        self._sources: Dict[str, SignalSource] = {}
        self._fallback = fallback or NullSignalSource()
        for source in (default_sources() if sources is None else sources):
            self.register(source)

    def register(self, source: SignalSource) -> None:
        """Register (or replace) the signal source for ``source.source_name``"""
        if not source.source_name:
            raise ValueError(f"{type(source).__name__} has no source_name")
        self._sources[source.source_name] = source

    @property
    def supported_sources(self) -> List[str]:
        return sorted(self._sources)

    def source_for(self, source: str) -> SignalSource:
        return self._sources.get(source, self._fallback)

    def extract(
        self,
        source: str,
        raw_payload: Optional[Dict[str, Any]],
        self_identifiers: Iterable[str] = (),
    ) -> ExtractedSignals:
        """
        Extract signals for one activity.

        Args:
            source: Tool type of the activity (github, jira, ...)
            raw_payload: Raw record from the tool (may be None)
            self_identifiers: The user's own identifiers, excluded case-insensitively

        Returns:
            ExtractedSignals (empty when nothing applies)
        """
        if not isinstance(raw_payload, dict) or not raw_payload:
            return ExtractedSignals()

        handler = self.source_for(source)
        try:
            return handler.extract(raw_payload, self_identifiers)
        except Exception as e:
            logger.warning("Signal extraction failed for source %s: %s", source, e)
            return ExtractedSignals()
