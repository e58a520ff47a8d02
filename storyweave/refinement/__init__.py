"""
Refinement - Layer 2

LLM-assisted placement of activities Layer 1 left unclustered.

Key Components:
- ClusterAssigner: call, validate, retry once, fall back
- validate_assignments: strict one-to-one response validation
- apply_assignments: pure application of the resulting delta
"""

from .assigner import ClusterAssigner
from .validator import validate_assignments
from .applier import apply_assignments
from .prompts import (
    ASSIGNMENT_POLICY,
    build_assignment_prompt,
    summarize_clusters,
    to_candidates,
)

__all__ = [
    "ClusterAssigner",
    "validate_assignments",
    "apply_assignments",
    "ASSIGNMENT_POLICY",
    "build_assignment_prompt",
    "summarize_clusters",
    "to_candidates",
]
