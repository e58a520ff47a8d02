"""
GitHub Signal Source

Pull requests, commits, workflow runs, deployments and releases.
"""

from typing import Any, Dict, List, Optional

from .base import SignalSource, is_excluded_branch, string_field, string_fields, string_list


class GitHubSignalSource(SignalSource):
    """
    Signals for GitHub activity.

    Collaborators: author, reviewers, requested reviewers, mentions.

    Container chain:
    1. headRef (PR feature branch) unless excluded
    2. branch (workflow runs) unless excluded
    3. "repo:<repository>" so commits and releases still group by repository
    """

    source_name = "github"

    def collect_people(self, raw_payload: Dict[str, Any]) -> List[str]:
        return (
            string_fields(raw_payload, "author")
            + string_list(raw_payload, "reviewers")
            + string_list(raw_payload, "requestedReviewers")
            + string_list(raw_payload, "mentions")
        )

    def derive_container(self, raw_payload: Dict[str, Any]) -> Optional[str]:
        head_ref = string_field(raw_payload, "headRef")
        if head_ref and not is_excluded_branch(head_ref):
            return head_ref

        branch = string_field(raw_payload, "branch")
        if branch and not is_excluded_branch(branch):
            return branch

        # Prefixed so a repository named like a branch cannot collide with it
        repository = string_field(raw_payload, "repository")
        if repository:
            return f"repo:{repository}"

        return None
