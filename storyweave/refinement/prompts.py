"""
Layer 2 Prompts

Prompt templates for LLM cluster assignment, plus helpers projecting
Layer 1 clusters and leftover activities into the compact forms the
prompt shows.

Token budget: ~40 candidates + cluster summaries per call.
"""

from typing import List, Mapping, Optional, Sequence

from ..common.schemas import (
    CandidateActivity,
    Cluster,
    ClusterableActivity,
    ClusterSummary,
)
from ..common.schemas.activity import short_date

ASSIGNMENT_POLICY = """You organize a professional's work activities (pull requests, tickets, chat threads, documents, design files, meetings) into stories: groups of activities that describe the same piece of work.

Some activities are already grouped into existing clusters. The remaining candidate activities had no shared reference, container or collaborators with any cluster, so you decide where each one belongs.

For EVERY candidate choose exactly one action:
- MOVE:<cluster_id>  the candidate clearly belongs to that existing cluster (same feature, project or incident)
- NEW:<short name>   the candidate starts a new story; give candidates that belong together the same name
- KEEP:<cluster_id>  only for a candidate whose current cluster is already correct

Rules:
- Use only cluster ids listed under EXISTING CLUSTERS
- Do not force a candidate into a cluster on a vague topical overlap; prefer NEW
- New names are 2-6 words and describe the work, not the tool ("Checkout latency fix", not "Jira tickets")
- Include every candidate id exactly once and no other keys

Respond with JSON only: {"<candidate_id>": "MOVE:<cluster_id>" | "NEW:<name>" | "KEEP:<cluster_id>", ...}"""


MAX_DESCRIPTION_CHARS = 160
TOP_ACTIVITY_COUNT = 3


def summary_id(index: int) -> str:
    """Stable id of the Layer 1 cluster at ``index``"""
    return f"layer1_{index}"


def summarize_clusters(
    clusters: Sequence[Cluster],
    activities_by_id: Mapping[str, ClusterableActivity],
) -> List[ClusterSummary]:
    """Project clusters into prompt summaries, addressed by position"""
    summaries = []
    for index, cluster in enumerate(clusters):
        titles = [
            activities_by_id[i].title
            for i in cluster.activity_ids
            if i in activities_by_id
        ]
        summaries.append(ClusterSummary(
            id=summary_id(index),
            name=cluster.name or f"Cluster {index + 1}",
            activity_count=cluster.size,
            date_range=cluster.date_range.format() if cluster.date_range else "",
            tool_summary=", ".join(cluster.tool_types),
            top_activities=", ".join(titles[:TOP_ACTIVITY_COUNT]),
        ))
    return summaries


def to_candidates(
    activities: Sequence[ClusterableActivity],
    current_cluster_ids: Optional[Mapping[str, str]] = None,
) -> List[CandidateActivity]:
    """Project activities into Layer 2 candidates (unclustered unless mapped)"""
    current_cluster_ids = current_cluster_ids or {}
    return [
        CandidateActivity(
            id=a.id,
            source=a.source,
            title=a.title,
            date=short_date(a.timestamp),
            current_cluster_id=current_cluster_ids.get(a.id),
            description=a.description,
        )
        for a in activities
    ]


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def _format_cluster(summary: ClusterSummary) -> str:
    line = (
        f"- {summary.id}: \"{summary.name}\" "
        f"({summary.activity_count} activities, {summary.date_range}; {summary.tool_summary})"
    )
    if summary.top_activities:
        line += f"\n  e.g. {summary.top_activities}"
    return line


def _format_candidate(candidate: CandidateActivity) -> str:
    line = f"- {candidate.id} [{candidate.source}, {candidate.date}] {candidate.title}"
    if candidate.current_cluster_id:
        line += f" (currently in {candidate.current_cluster_id})"
    if candidate.description:
        line += f"\n  {_truncate(candidate.description, MAX_DESCRIPTION_CHARS)}"
    return line


def build_assignment_prompt(
    existing_clusters: Sequence[ClusterSummary],
    candidates: Sequence[CandidateActivity],
    validation_errors: Optional[Sequence[str]] = None,
) -> str:
    """
    Build the user prompt for one assignment call.

    Args:
        existing_clusters: Cluster summaries the model may MOVE into
        candidates: Activities that need an action
        validation_errors: Problems with the previous answer (retry only)

    Returns:
        Prompt text; cluster and candidate sections are identical on retry
    """
    if existing_clusters:
        cluster_block = "\n".join(_format_cluster(s) for s in existing_clusters)
    else:
        cluster_block = "(none)"

    parts = [
        "EXISTING CLUSTERS:",
        cluster_block,
        "",
        f"CANDIDATES ({len(candidates)}):",
        "\n".join(_format_candidate(c) for c in candidates),
    ]

    if validation_errors:
        parts += [
            "",
            "Your previous answer was rejected:",
            "\n".join(f"- {e}" for e in validation_errors),
            "Answer again with a corrected JSON object covering every candidate.",
        ]

    return "\n".join(parts)
