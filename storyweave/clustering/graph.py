"""
Activity Graph

Layer 1 clustering primitives:
- GraphBuilder: union of reference, container and collaborator edges
- find_components: connected components of the activity graph
- split_by_temporal_gap: break components at large time gaps

Graphs are plain ``networkx.Graph`` objects, one node per activity id.
Each call builds its own graph; nothing is shared between calls.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

import networkx as nx

from ..common.schemas import ClusterableActivity

logger = logging.getLogger("storyweave.clustering.graph")

DEFAULT_COLLABORATOR_THRESHOLD = 2
DEFAULT_COLLABORATOR_WINDOW_DAYS = 30
DEFAULT_MAX_GAP_DAYS = 14


@dataclass
class GraphStats:
    """Edges added per signal; an edge already present is not counted again"""
    nodes: int = 0
    reference_edges: int = 0
    container_edges: int = 0
    collaborator_edges: int = 0
    total_edges: int = 0


class GraphBuilder:
    """
    Builds an undirected activity graph.

    Edge sources:
    1. Reference: activities sharing a reference (k sharers form a k-clique)
    2. Container: activities sharing a non-null container
    3. Collaborator: both within ``collaborator_window_days`` of each other and
       sharing at least ``collaborator_threshold`` collaborators

    Edges carry no attributes; the union graph does not remember which signal
    created an edge.
    """

    def __init__(
        self,
        collaborator_threshold: int = DEFAULT_COLLABORATOR_THRESHOLD,
        collaborator_window_days: int = DEFAULT_COLLABORATOR_WINDOW_DAYS,
    ):
        if collaborator_threshold < 1:
            raise ValueError("collaborator_threshold must be at least 1")
        self._collaborator_threshold = collaborator_threshold
        self._collaborator_window = timedelta(days=collaborator_window_days)

    def build_graph(self, activities: Sequence[ClusterableActivity]) -> nx.Graph:
        """Build the union graph (one node per activity)"""
        graph, _ = self.build(activities)
        return graph

    def build(self, activities: Sequence[ClusterableActivity]) -> Tuple[nx.Graph, GraphStats]:
        """Build the union graph and per-signal edge counts"""
        graph = nx.Graph()
        graph.add_nodes_from(a.id for a in activities)
        stats = GraphStats(nodes=graph.number_of_nodes())

        stats.reference_edges = self._add_group_edges(
            graph, _group_by(activities, lambda a: a.refs or [])
        )
        stats.container_edges = self._add_group_edges(
            graph, _group_by(activities, lambda a: [a.container] if a.container else [])
        )
        stats.collaborator_edges = self._add_collaborator_edges(graph, activities)
        stats.total_edges = graph.number_of_edges()

        logger.debug(
            "Built graph: %d nodes, %d edges (ref=%d, container=%d, collaborator=%d)",
            stats.nodes, stats.total_edges, stats.reference_edges,
            stats.container_edges, stats.collaborator_edges,
        )
        return graph, stats

    @staticmethod
    def _add_group_edges(graph: nx.Graph, groups: Mapping[str, List[str]]) -> int:
        added = 0
        for ids in groups.values():
            for i in range(len(ids)):
                for j in range(i + 1, len(ids)):
                    added += _connect(graph, ids[i], ids[j])
        return added

    def _add_collaborator_edges(
        self, graph: nx.Graph, activities: Sequence[ClusterableActivity]
    ) -> int:
        with_people = sorted(
            (a for a in activities if a.collaborators),
            key=lambda a: (a.timestamp, a.id),
        )
        people = {a.id: set(a.collaborators) for a in with_people}

        added = 0
        for i, first in enumerate(with_people):
            for second in with_people[i + 1:]:
                # Sorted by time: everything further along is outside the window too
                if second.timestamp - first.timestamp > self._collaborator_window:
                    break
                shared = people[first.id] & people[second.id]
                if len(shared) >= self._collaborator_threshold:
                    added += _connect(graph, first.id, second.id)
        return added


def _group_by(activities: Iterable[ClusterableActivity], keys_of) -> Dict[str, List[str]]:
    groups: Dict[str, List[str]] = defaultdict(list)
    for activity in activities:
        for key in dict.fromkeys(keys_of(activity)):
            groups[key].append(activity.id)
    return groups


def _connect(graph: nx.Graph, a: str, b: str) -> int:
    if a == b or graph.has_edge(a, b):
        return 0
    graph.add_edge(a, b)
    return 1


def find_components(
    activities: Sequence[ClusterableActivity], graph: nx.Graph
) -> List[List[str]]:
    """
    Connected components of ``graph`` via ``nx.connected_components``.

    Every activity appears in exactly one component; isolated activities
    come back as singletons. Members are ordered by (timestamp, id) and
    components by their first member, so the result does not depend on
    input order.
    """
    timestamps = {a.id: a.timestamp for a in activities}
    graph = graph.copy()
    graph.add_nodes_from(timestamps)

    def order(activity_id):
        return (timestamps[activity_id], activity_id)

    components = [
        sorted((n for n in component if n in timestamps), key=order)
        for component in nx.connected_components(graph)
    ]
    components = [c for c in components if c]
    components.sort(key=lambda c: order(c[0]))
    return components


def split_by_temporal_gap(
    components: Iterable[Sequence[str]],
    timestamps: Mapping[str, datetime],
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS,
) -> List[List[str]]:
    """
    Split each component wherever consecutive activities are too far apart.

    Members are ordered by (timestamp, id); a new group starts whenever the
    gap to the previous member is strictly greater than ``max_gap_days``.
    Size filtering is left to the caller.
    """
    max_gap = timedelta(days=max_gap_days)
    groups: List[List[str]] = []

    for component in components:
        ordered = sorted(component, key=lambda activity_id: (timestamps[activity_id], activity_id))
        if not ordered:
            continue

        current = [ordered[0]]
        for previous_id, activity_id in zip(ordered, ordered[1:]):
            if timestamps[activity_id] - timestamps[previous_id] > max_gap:
                groups.append(current)
                current = []
            current.append(activity_id)
        groups.append(current)

    return groups
