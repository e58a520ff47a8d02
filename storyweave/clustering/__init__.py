"""
Clustering - Layer 1

Deterministic grouping of work activities.

Key Components:
- RefExtractor: Cross-tool references (tickets, PRs, wiki pages, design files)
- SignalExtractor: Collaborators and container per tool
- GraphBuilder / find_components / split_by_temporal_gap: Graph primitives
- ClusteringService: Orchestrates Layer 1 over an in-memory batch

Signal strength, strongest first:
1. Shared reference (explicit link between tools)
2. Shared container (same branch, thread, epic, space, file)
3. Two or more shared collaborators within 30 days
"""

from .ref_extractor import (
    RefExtractor,
    RefPattern,
    RefMatch,
    PatternRegistry,
    PatternValidationError,
    DEFAULT_PATTERNS,
)
from .signals import SignalExtractor, SignalSource, NullSignalSource
from .graph import GraphBuilder, GraphStats, find_components, split_by_temporal_gap
from .service import (
    ClusteringService,
    ClusteringOptions,
    build_cluster,
    dedup_clusters_by_container,
)

__all__ = [
    "RefExtractor",
    "RefPattern",
    "RefMatch",
    "PatternRegistry",
    "PatternValidationError",
    "DEFAULT_PATTERNS",
    "SignalExtractor",
    "SignalSource",
    "NullSignalSource",
    "GraphBuilder",
    "GraphStats",
    "find_components",
    "split_by_temporal_gap",
    "ClusteringService",
    "ClusteringOptions",
    "build_cluster",
    "dedup_clusters_by_container",
]
