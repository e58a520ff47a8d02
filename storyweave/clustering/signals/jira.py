"""
Jira Signal Source
"""

from typing import Any, Dict, List, Optional

from .base import SignalSource, string_fields, string_list


class JiraSignalSource(SignalSource):
    """
    Signals for Jira issues.

    Collaborators: assignee, reporter, watchers, mentions.
    Container: key of the linked Epic, if any.
    """

    source_name = "jira"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return (
            string_fields(raw_payload, "assignee", "reporter")
            + string_list(raw_payload, "watchers")
            + string_list(raw_payload, "mentions")
        )

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        linked = raw_payload.get("linkedIssues")
        if not isinstance(linked, list):
            return None

        for issue in linked:
            if isinstance(issue, dict) and issue.get("type") == "Epic":
                key = issue.get("key")
                return key if isinstance(key, str) else None
        return None
