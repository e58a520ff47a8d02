"""
Slack Signal Source
"""

from typing import Any, Dict, List, Optional

from .base import SignalSource, string_fields, string_list


class SlackSignalSource(SignalSource):
    """
    Signals for Slack messages.

    Collaborators: author, userId, parentAuthor, replyAuthor, mentions.
    Container: thread timestamp. The channel is never a container;
    one channel carries many unrelated conversations.
    """

    source_name = "slack"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return (
            string_fields(raw_payload, "author", "userId", "parentAuthor", "replyAuthor")
            + string_list(raw_payload, "mentions")
        )

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        # Slack API returns thread_ts; normalized payloads use threadTs
        thread_ts = raw_payload.get("threadTs")
        if thread_ts is None:
            thread_ts = raw_payload.get("thread_ts")
        return thread_ts if isinstance(thread_ts, str) else None
