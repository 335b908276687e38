from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Any

from specflow.domain.states import JobKind, JobStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    id: str
    kind: JobKind
    status: JobStatus = JobStatus.PENDING

    output: str = ""
    error: Optional[str] = None
    meta: dict[str, Any] = field(default_factory=dict)

    created_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.created_at).total_seconds()


@dataclass
class ProcessResult:
    succeeded: bool
    output: str = ""
    returncode: Optional[int] = None
    error: Optional[str] = None
    timed_out: bool = False
    duration: float = 0.0
