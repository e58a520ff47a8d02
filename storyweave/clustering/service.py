"""
Clustering Service

Groups activities into story clusters (Layer 1).

Algorithm:
1. Build the multi-signal graph (references, containers, collaborators)
2. Find connected components
3. Drop components below the minimum size
4. Split components at large time gaps, then drop undersized pieces
5. Name each cluster after its most shared reference
"""

import logging
from collections import Counter
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from ..common.config import ClusteringConfig
from ..common.schemas import Cluster, ClusterableActivity, DateRange
from .graph import (
    DEFAULT_COLLABORATOR_THRESHOLD,
    DEFAULT_COLLABORATOR_WINDOW_DAYS,
    DEFAULT_MAX_GAP_DAYS,
    GraphBuilder,
    find_components,
    split_by_temporal_gap,
)

logger = logging.getLogger("storyweave.clustering.service")


@dataclass
class ClusteringOptions:
    """Tunables for Layer 1 clustering"""
    min_cluster_size: int = 2
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS
    collaborator_threshold: int = DEFAULT_COLLABORATOR_THRESHOLD
    collaborator_window_days: int = DEFAULT_COLLABORATOR_WINDOW_DAYS

    def __post_init__(self):
        if self.min_cluster_size < 1:
            raise ValueError("min_cluster_size must be at least 1")
        if self.max_gap_days < 0:
            raise ValueError("max_gap_days must not be negative")

    @classmethod
    def from_config(cls, config: ClusteringConfig) -> "ClusteringOptions":
        return cls(
            min_cluster_size=config.min_cluster_size,
            max_gap_days=config.max_gap_days,
            collaborator_threshold=config.collaborator_threshold,
            collaborator_window_days=config.collaborator_window_days,
        )


class ClusteringService:
    """
    Layer 1 clustering over an in-memory batch of activities.

    Stateless apart from its default options; safe to share across
    independent batches.
    """

    def __init__(self, options: Optional[ClusteringOptions] = None):
        self._options = options or ClusteringOptions()

    @property
    def options(self) -> ClusteringOptions:
        return self._options

    def cluster_activities_in_memory(
        self,
        activities: Sequence[ClusterableActivity],
        options: Optional[ClusteringOptions] = None,
    ) -> List[Cluster]:
        """
        Cluster activities by shared references, containers and collaborators.

        Args:
            activities: Activities with cached refs/collaborators/container
            options: Overrides the service defaults for this call

        Returns:
            Clusters ordered by earliest activity; every cluster has at least
            ``min_cluster_size`` members and no activity is in two clusters
        """
        opts = options or self._options
        by_id: Dict[str, ClusterableActivity] = {}
        for activity in activities:
            by_id.setdefault(activity.id, activity)
        unique = list(by_id.values())

        if not unique:
            return []

        builder = GraphBuilder(
            collaborator_threshold=opts.collaborator_threshold,
            collaborator_window_days=opts.collaborator_window_days,
        )
        graph = builder.build_graph(unique)
        components = find_components(unique, graph)
        sized = [c for c in components if len(c) >= opts.min_cluster_size]

        timestamps = {a.id: a.timestamp for a in unique}
        groups = split_by_temporal_gap(sized, timestamps, opts.max_gap_days)
        groups = [g for g in groups if len(g) >= opts.min_cluster_size]

        logger.debug(
            "Clustered %d activities: %d components, %d kept, %d after temporal split",
            len(unique), len(components), len(sized), len(groups),
        )

        clusters = [build_cluster([by_id[i] for i in group]) for group in groups]
        clusters.sort(key=lambda c: (c.date_range.start, c.activity_ids[0]))
        return clusters


# ============================================================================
# Cluster construction
# ============================================================================

def build_cluster(members: Sequence[ClusterableActivity], name: Optional[str] = None) -> Cluster:
    """Build a Cluster with derived metrics; name defaults to the best common label"""
    shared_refs = compute_shared_refs(members)
    dominant_container = compute_dominant_container(members)
    if name is None:
        name = shared_refs[0] if shared_refs else dominant_container

    return Cluster(
        activity_ids=[m.id for m in members],
        name=name,
        date_range=DateRange.from_timestamps([m.timestamp for m in members]),
        tool_types=extract_tool_types(members),
        dominant_container=dominant_container,
        shared_refs=shared_refs,
    )


def compute_shared_refs(members: Sequence[ClusterableActivity]) -> List[str]:
    """References carried by more than one member, most shared first"""
    counts = Counter()
    for member in members:
        counts.update(set(member.refs or []))
    shared = [(ref, n) for ref, n in counts.items() if n > 1 and ref]
    shared.sort(key=lambda item: (-item[1], item[0]))
    return [ref for ref, _ in shared]


def compute_dominant_container(members: Sequence[ClusterableActivity]) -> Optional[str]:
    """Most common container among members (ties broken alphabetically)"""
    counts = Counter(m.container for m in members if m.container)
    if not counts:
        return None
    return min(counts.items(), key=lambda item: (-item[1], item[0]))[0]


def extract_tool_types(members: Sequence[ClusterableActivity]) -> List[str]:
    """Distinct tool types in first-seen order"""
    return list(dict.fromkeys(m.source for m in members if m.source))


# ============================================================================
# Container dedup
# ============================================================================

def dedup_clusters_by_container(
    clusters: Sequence[Cluster],
    max_merge_size: int = 15,
) -> List[Cluster]:
    """
    Merge clusters that share a dominant container (same branch, epic, repo).

    Merging happens only when at least one of the pair is smaller than
    ``max_merge_size``; two large clusters with the same container are the
    product of a temporal split and stay separate. The longer name wins.

    Returns new Cluster objects; the inputs are not modified.
    """
    by_container: Dict[str, int] = {}
    result: List[Cluster] = []

    for cluster in clusters:
        container = cluster.dominant_container
        if not container or container not in by_container:
            if container:
                by_container[container] = len(result)
            result.append(replace(cluster, activity_ids=list(cluster.activity_ids)))
            continue

        index = by_container[container]
        existing = result[index]
        either_small = existing.size < max_merge_size or cluster.size < max_merge_size
        if not either_small:
            result.append(replace(cluster, activity_ids=list(cluster.activity_ids)))
            continue

        name = existing.name
        if cluster.name and (not name or len(cluster.name) > len(name)):
            name = cluster.name
        result[index] = merge_clusters(existing, cluster, name)
        logger.debug("Merged cluster %r into %r (container %s)", cluster.name, existing.name, container)

    return result


def merge_clusters(first: Cluster, second: Cluster, name: Optional[str]) -> Cluster:
    """Combine two clusters' members and metrics"""
    activity_ids = list(dict.fromkeys(first.activity_ids + second.activity_ids))
    ranges = [r for r in (first.date_range, second.date_range) if r]
    date_range = None
    if ranges:
        date_range = DateRange(start=min(r.start for r in ranges), end=max(r.end for r in ranges))

    return Cluster(
        activity_ids=activity_ids,
        name=name,
        date_range=date_range,
        tool_types=list(dict.fromkeys(first.tool_types + second.tool_types)),
        dominant_container=first.dominant_container or second.dominant_container,
        shared_refs=list(dict.fromkeys(first.shared_refs + second.shared_refs)),
    )
