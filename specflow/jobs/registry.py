import logging
import threading
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from specflow.api.v1.metrics import JOBS_COMPLETED, JOBS_CREATED, JOBS_PENDING, JOB_DURATION
from specflow.domain.models import Job, utcnow
from specflow.domain.states import JobKind, JobStatus

logger = logging.getLogger(__name__)


class JobRegistry:
    """
    In-process store of job records, the single source of truth for job state.

    All mutations happen under one lock so create/complete stay atomic even
    when called from a worker thread.
    """

    def __init__(self):
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def _new_id(self) -> str:
        # Caller holds the lock.
        while True:
            job_id = uuid4().hex
            if job_id not in self._jobs:
                return job_id

    def create(self, kind: JobKind, meta: Optional[dict[str, Any]] = None) -> str:
        with self._lock:
            job_id = self._new_id()
            self._jobs[job_id] = Job(id=job_id, kind=JobKind(kind), meta=dict(meta or {}))

        JOBS_CREATED.labels(kind=kind).inc()
        JOBS_PENDING.inc()
        logger.debug("Created %s job %s", kind, job_id)
        return job_id

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            return self._jobs.get(job_id)

    def complete(
        self,
        job_id: str,
        status: JobStatus,
        output: str = "",
        error: Optional[str] = None,
    ) -> bool:
        """
        Moves a PENDING job to SUCCEEDED or FAILED.

        Returns False without touching anything when the job is unknown,
        already terminal, or the target status is not terminal. Never raises,
        so duplicate completion callbacks are harmless.
        """
        try:
            status = JobStatus(status)
        except ValueError:
            logger.warning("Ignoring completion of job %s with unknown status %r", job_id, status)
            return False

        if not status.is_terminal:
            logger.warning("Ignoring completion of job %s with non-terminal status %s", job_id, status)
            return False

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.debug("Ignoring completion of unknown job %s", job_id)
                return False
            if job.is_terminal:
                logger.debug("Ignoring duplicate completion of job %s (already %s)", job_id, job.status)
                return False

            job.status = status
            job.output = output or ""
            job.error = error if status == JobStatus.FAILED else None
            job.completed_at = utcnow()

        JOBS_PENDING.dec()
        JOBS_COMPLETED.labels(kind=job.kind, status=status).inc()
        if job.duration is not None:
            JOB_DURATION.labels(kind=job.kind).observe(job.duration)
        return True

    def evict_terminal(self, older_than: datetime) -> int:
        """Removes terminal jobs completed before `older_than`. PENDING jobs are kept."""
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.is_terminal and job.completed_at is not None and job.completed_at < older_than
            ]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)

    def pending_count(self) -> int:
        with self._lock:
            return sum(1 for job in self._jobs.values() if not job.is_terminal)

    def clear(self) -> None:
        with self._lock:
            pending = sum(1 for job in self._jobs.values() if not job.is_terminal)
            self._jobs.clear()
        JOBS_PENDING.dec(pending)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs
