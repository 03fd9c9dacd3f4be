"""Job record and state-machine event models."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class PerformanceLevel(str, Enum):
    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"


class LogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    message: str


class JobRecord(BaseModel):
    """Tracks the lifecycle of one transcoding submission.

    Records are replaced, never edited in place: the registry swaps in the
    record returned by a transition, so any reference a reader holds stays a
    consistent snapshot.
    """
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    video_key: str = Field(min_length=1)
    performance_level: PerformanceLevel = PerformanceLevel.STANDARD
    status: JobStatus = JobStatus.PENDING
    start_time: datetime = Field(default_factory=utcnow)
    execution_handle: Optional[str] = None
    cluster: Optional[str] = None
    logs: List[LogEntry] = Field(default_factory=list)
    running_notified: bool = False
    last_phase: Optional[str] = None


# ---------------------------------------------------------------------------
# Events fed to app.jobs.transitions.apply_event
# ---------------------------------------------------------------------------

class SubUnit(BaseModel):
    """One container of a backend execution."""
    name: Optional[str] = None
    exit_code: Optional[int] = None
    reason: Optional[str] = None


class ExecutionDescriptor(BaseModel):
    """Backend snapshot of an execution (ECS: a described task)."""
    phase: str
    stop_code: Optional[str] = None
    stop_reason: Optional[str] = None
    sub_units: List[SubUnit] = Field(default_factory=list)


class DispatchStarted(BaseModel):
    pass


class DispatchSucceeded(BaseModel):
    handle: str
    cluster: str


class DispatchFailed(BaseModel):
    detail: str


class PollObserved(BaseModel):
    descriptor: ExecutionDescriptor
    primary_unit: Optional[str] = None


class PollNotFound(BaseModel):
    pass


class PollTransportError(BaseModel):
    detail: str


# ---------------------------------------------------------------------------
# Read projections
# ---------------------------------------------------------------------------

class JobView(BaseModel):
    job_id: str
    status: JobStatus
    start_time: datetime
    video_key: str
    logs: List[LogEntry]


class JobSummary(BaseModel):
    job_id: str
    status: JobStatus
    start_time: datetime
    video_key: str
