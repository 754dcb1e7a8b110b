"""Research job schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """The only job states the tracker recognizes."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_backend(cls, value) -> "JobStatus":
        """Map a backend status string, degrading unknown values to in_progress."""
        try:
            return cls(value)
        except ValueError:
            return cls.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.IN_PROGRESS


class ResearchSource(BaseModel):
    """A source consulted by the research job."""

    url: str = ""
    title: str = ""
    snippet: str = ""


class ResearchResults(BaseModel):
    """Output of a completed job."""

    report: str = ""
    sources: List[ResearchSource] = Field(default_factory=list)


class ResearchJobError(BaseModel):
    """Error reported for a failed job."""

    message: str = "Research job failed"
    type: str = "unknown"


class ResearchJob(BaseModel):
    """Normalized view of one research job."""

    id: str
    status: JobStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    results: Optional[ResearchResults] = None
    error: Optional[ResearchJobError] = None
