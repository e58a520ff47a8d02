"""
Storyweave Schemas

Activity input records, extraction results, clusters, and Layer 2 types.
"""

from .activity import (
    Activity,
    ExtractedSignals,
    ClusterableActivity,
    DateRange,
    Cluster,
)
from .assignment import (
    AssignmentAction,
    Assignment,
    CandidateActivity,
    ClusterSummary,
    AssignResult,
    ValidationResult,
)

__all__ = [
    "Activity",
    "ExtractedSignals",
    "ClusterableActivity",
    "DateRange",
    "Cluster",
    "AssignmentAction",
    "Assignment",
    "CandidateActivity",
    "ClusterSummary",
    "AssignResult",
    "ValidationResult",
]
