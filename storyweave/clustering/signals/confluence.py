"""
Confluence Signal Source
"""

from typing import Any, Dict, List, Optional

from .base import SignalSource, string_field, string_fields, string_list


class ConfluenceSignalSource(SignalSource):
    """
    Signals for Confluence pages.

    Collaborators: creator, lastModifiedBy, watchers, mentions.
    Container: space key.
    """

    source_name = "confluence"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return (
            string_fields(raw_payload, "creator", "lastModifiedBy")
            + string_list(raw_payload, "watchers")
            + string_list(raw_payload, "mentions")
        )

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        return string_field(raw_payload, "spaceKey")
