"""
Base Signal Source

Abstract base class for tool-specific signal extraction.
Each tool knows which raw payload fields name people and which field best
identifies the unit of work (branch, thread, epic, space, file).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ...common.schemas import ExtractedSignals


EXCLUDED_BRANCHES = frozenset({"main", "master", "develop"})
EXCLUDED_BRANCH_PREFIXES = ("release/", "hotfix/")


def is_excluded_branch(branch: str) -> bool:
    """Trunk, release and hotfix branches group work by cadence, not by feature"""
    return branch in EXCLUDED_BRANCHES or branch.startswith(EXCLUDED_BRANCH_PREFIXES)


class SignalSource(ABC):
    """
    Abstract base class for per-tool signal extraction.

    Subclasses implement:
    - collect_people: candidate people identifiers, in field order
    - derive_container: the single most specific grouping hint, or None
    """

    source_name: str = ""

    @abstractmethod
    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        """
        Collect raw people identifiers from the payload.

        Args:
            raw_payload: Tool-specific raw record

        Returns:
            People identifiers (not yet normalized or filtered)
        """
        pass

    @abstractmethod
    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        """
        Derive one container value using a most-specific-first chain.

        Args:
            raw_payload: Tool-specific raw record

        Returns:
            Container string or None
        """
        pass

    def extract(self, raw_payload: Dict[str, Any], self_identifiers: Iterable[str]) -> ExtractedSignals:
        """Normalize people, drop self, and attach the container"""
        self_set = {s.lower() for s in self_identifiers if isinstance(s, str)}
        return ExtractedSignals(
            collaborators=filter_self_and_dedupe(self.collect_people(raw_payload), self_set),
            container=self.derive_container(raw_payload),
        )


class NullSignalSource(SignalSource):
    """Fallback for tools without signal support: never yields signals"""

    source_name = "unknown"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return []

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        return None


# ============================================================================
# Payload helpers
# ============================================================================

def string_field(raw_payload: Dict[str, Any], key: str) -> Optional[str]:
    """Return the field if it is a string, else None"""
    value = raw_payload.get(key)
    return value if isinstance(value, str) else None


def string_fields(raw_payload: Dict[str, Any], *keys: str) -> List[str]:
    """Collect scalar string fields, skipping missing or non-string values"""
    return [v for v in (string_field(raw_payload, k) for k in keys) if v is not None]


def string_list(raw_payload: Dict[str, Any], key: str) -> List[str]:
    """Collect the string items of a list field"""
    value = raw_payload.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def filter_self_and_dedupe(people: Iterable[str], self_set: set) -> List[str]:
    """Lower-case, deduplicate (keeping first occurrence) and drop self"""
    seen = set()
    result = []
    for person in people:
        normalized = person.lower()
        if not normalized or normalized in self_set or normalized in seen:
            continue
        seen.add(normalized)
        result.append(normalized)
    return result
