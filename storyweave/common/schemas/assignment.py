"""
Layer 2 Assignment Schemas

Types exchanged with the LLM cluster-assignment pass. Layer 2 returns a
delta (one Assignment per candidate); it never touches Layer 1 clusters.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class AssignmentAction(str, Enum):
    """What to do with one candidate activity"""
    KEEP = "KEEP"
    MOVE = "MOVE"
    NEW = "NEW"


@dataclass(frozen=True)
class Assignment:
    """A single validated action: target is a cluster id (KEEP/MOVE) or a new cluster name (NEW)"""
    action: AssignmentAction
    target: str


@dataclass
class CandidateActivity:
    """An activity Layer 1 left unclustered, projected for the prompt"""
    id: str
    source: str
    title: str
    date: str
    current_cluster_id: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ClusterSummary:
    """Compact textual summary of an existing cluster"""
    id: str
    name: str
    activity_count: int
    date_range: str
    tool_summary: str
    top_activities: str


@dataclass
class AssignResult:
    """Outcome of one assign() call; fallback=True means Layer 1 stands unchanged"""
    assignments: Dict[str, Assignment] = field(default_factory=dict)
    fallback: bool = False
    model: Optional[str] = None
    processing_time_ms: Optional[float] = None


@dataclass
class ValidationResult:
    """Result of strict response validation, with every violation listed"""
    valid: bool
    errors: List[str] = field(default_factory=list)
    assignments: Dict[str, Assignment] = field(default_factory=dict)
