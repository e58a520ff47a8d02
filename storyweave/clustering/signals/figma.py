"""
Figma Signal Source
"""

from typing import Any, Dict, List, Optional

from .base import SignalSource, string_field, string_fields, string_list


class FigmaSignalSource(SignalSource):
    """
    Signals for Figma files.

    Collaborators: owner, creator, commenters, editors.
    Container: file key.
    """

    source_name = "figma"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return (
            string_fields(raw_payload, "owner", "creator")
            + string_list(raw_payload, "commenters")
            + string_list(raw_payload, "editors")
        )

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        return string_field(raw_payload, "fileKey")
