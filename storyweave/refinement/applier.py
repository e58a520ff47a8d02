"""
Apply a Layer 2 assignment delta to Layer 1 clusters.

MOVE targets are resolved against the summary positions first; NEW groups
are appended afterwards, so appending never shifts a MOVE target.
"""

import logging
from typing import Dict, List, Mapping, Sequence

from ..clustering.service import build_cluster
from ..common.schemas import (
    Assignment,
    AssignmentAction,
    Cluster,
    ClusterableActivity,
    ClusterSummary,
)

logger = logging.getLogger("storyweave.refinement.applier")


def apply_assignments(
    clusters: Sequence[Cluster],
    summaries: Sequence[ClusterSummary],
    assignments: Mapping[str, Assignment],
    activities_by_id: Mapping[str, ClusterableActivity],
) -> List[Cluster]:
    """
    Return a new cluster list with the assignments applied.

    Args:
        clusters: Clusters the summaries were built from (same order)
        summaries: Summaries sent to the model; their ids address ``clusters``
        assignments: Candidate id -> Assignment
        activities_by_id: Lookup for every activity that may be placed

    Returns:
        Updated clusters followed by one new cluster per distinct NEW name
    """
    position = {summary.id: index for index, summary in enumerate(summaries)}
    moved: Dict[int, List[str]] = {}
    new_groups: Dict[str, List[str]] = {}

    for activity_id, assignment in assignments.items():
        if activity_id not in activities_by_id:
            logger.debug("Ignoring assignment for unknown activity %s", activity_id)
            continue

        if assignment.action == AssignmentAction.MOVE:
            index = position.get(assignment.target)
            if index is None or index >= len(clusters):
                logger.debug("Ignoring MOVE of %s to unknown cluster %s", activity_id, assignment.target)
                continue
            moved.setdefault(index, []).append(activity_id)
        elif assignment.action == AssignmentAction.NEW:
            new_groups.setdefault(assignment.target, []).append(activity_id)

    result = []
    for index, cluster in enumerate(clusters):
        added = moved.get(index)
        result.append(_extend(cluster, added, activities_by_id) if added else _copy(cluster))

    for name, activity_ids in new_groups.items():
        members = _ordered([activities_by_id[i] for i in activity_ids])
        result.append(build_cluster(members, name=name))

    if moved or new_groups:
        logger.debug(
            "Applied %d MOVE and %d NEW groups",
            sum(len(ids) for ids in moved.values()), len(new_groups),
        )
    return result


def _extend(
    cluster: Cluster,
    added: Sequence[str],
    activities_by_id: Mapping[str, ClusterableActivity],
) -> Cluster:
    activity_ids = list(dict.fromkeys(list(cluster.activity_ids) + list(added)))
    if not all(i in activities_by_id for i in activity_ids):
        cluster = _copy(cluster)
        cluster.activity_ids = activity_ids
        return cluster

    members = _ordered([activities_by_id[i] for i in activity_ids])
    return build_cluster(members, name=cluster.name)


def _copy(cluster: Cluster) -> Cluster:
    return Cluster(
        activity_ids=list(cluster.activity_ids),
        name=cluster.name,
        date_range=cluster.date_range,
        tool_types=list(cluster.tool_types),
        dominant_container=cluster.dominant_container,
        shared_refs=list(cluster.shared_refs),
    )


def _ordered(members: Sequence[ClusterableActivity]) -> List[ClusterableActivity]:
    return sorted(members, key=lambda a: (a.timestamp, a.id))
