"""
Activity and Cluster Schemas

Activities arrive as plain structured records from the ingestion layer.
The core never mutates them; extraction results are cached next to them in
a ClusterableActivity so clustering runs do not re-scan raw payloads.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Input record
# ============================================================================

class Activity(BaseModel):
    """A single work activity pulled from an external tool"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    source: str = Field(..., description="Tool type: github, jira, slack, confluence, figma, ...")
    title: str = ""
    description: Optional[str] = None
    timestamp: datetime
    raw_payload: Optional[Dict[str, Any]] = Field(default=None, alias="rawPayload")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    source_id: Optional[str] = Field(default=None, alias="sourceId")

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive and aware datetimes cannot be compared; treat naive as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


# ============================================================================
# Extraction results
# ============================================================================

@dataclass
class ExtractedSignals:
    """Weak clustering signals derived from one activity's raw payload"""
    collaborators: List[str] = field(default_factory=list)
    container: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.collaborators and self.container is None


@dataclass
class ClusterableActivity:
    """Activity projected to what Layer 1 clustering needs"""
    id: str
    source: str
    timestamp: datetime
    title: str = ""
    description: Optional[str] = None
    refs: List[str] = field(default_factory=list)
    collaborators: List[str] = field(default_factory=list)
    container: Optional[str] = None


# ============================================================================
# Clusters
# ============================================================================

@dataclass
class DateRange:
    """Earliest and latest activity timestamps of a cluster"""
    start: datetime
    end: datetime

    @classmethod
    def from_timestamps(cls, timestamps: List[datetime]) -> Optional["DateRange"]:
        if not timestamps:
            return None
        return cls(start=min(timestamps), end=max(timestamps))

    def format(self) -> str:
        """Short human form, e.g. 'Mar 3 - Mar 17'"""
        return f"{short_date(self.start)} - {short_date(self.end)}"


def short_date(value: datetime) -> str:
    return f"{value:%b} {value.day}"


@dataclass
class Cluster:
    """A group of activities judged to describe the same piece of work"""
    activity_ids: List[str]
    name: Optional[str] = None
    date_range: Optional[DateRange] = None
    tool_types: List[str] = field(default_factory=list)
    dominant_container: Optional[str] = None
    shared_refs: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.activity_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activityIds": list(self.activity_ids),
            "name": self.name,
            "dateRange": {
                "start": self.date_range.start.isoformat(),
                "end": self.date_range.end.isoformat(),
            } if self.date_range else None,
            "toolTypes": list(self.tool_types),
            "dominantContainer": self.dominant_container,
            "sharedRefs": list(self.shared_refs),
        }
