"""In-memory priority queue tracking extraction jobs.

Items move ``pending -> processing -> completed | failed``. A pending job
may also be completed or failed directly. Terminal states have no exits.
All access goes through one lock, so the queue can be shared between
request handlers and worker threads.
"""

import secrets
import threading
import time
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field

from docstruct.utils.logger import get_logger

logger = get_logger(__name__)


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Priority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 1, Priority.NORMAL: 2, Priority.HIGH: 3}

TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset(
        {JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED}
    ),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class JobNotFoundError(KeyError):
    """Raised when a job id is not in the queue."""


class JobStateError(ValueError):
    """Raised on a transition the job's current status does not allow."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProcessingQueueItem(BaseModel):
    """One tracked extraction job."""

    id: str
    user_id: str
    filename: str
    status: JobStatus = JobStatus.PENDING
    priority: Priority = Priority.NORMAL
    created_at: datetime = Field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: float | None = None
    error_message: str | None = None
    retry_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def new_job_id() -> str:
    """Return an id of the form ``job_<epoch ms>_<9 hex chars>``."""
    return f"job_{int(time.time() * 1000)}_{secrets.token_hex(5)[:9]}"


class PriorityJobQueue:
    """Tracks jobs ordered by priority, highest first.

    Equal priorities keep their insertion order. Items are never evicted
    automatically; call ``purge`` to drop old finished jobs.
    """

    def __init__(self) -> None:
        self._items: list[ProcessingQueueItem] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def enqueue(
        self, user_id: str, filename: str, priority: Priority | str = Priority.NORMAL
    ) -> str:
        """Add a pending job and return its id."""
        item = ProcessingQueueItem(
            id=new_job_id(),
            user_id=user_id,
            filename=filename,
            priority=Priority(priority),
        )
        with self._lock:
            self._items.append(item)
            # list.sort is stable, so ties keep insertion order
            self._items.sort(key=lambda i: i.priority.rank, reverse=True)
        logger.info("Enqueued %s (%s) for %s", item.id, item.priority, user_id)
        return item.id

    def get_status(self, job_id: str) -> ProcessingQueueItem | None:
        """Return a snapshot of the job, or ``None`` if unknown."""
        with self._lock:
            item = self._find(job_id)
            return item.model_copy() if item else None

    def list_jobs(self) -> list[ProcessingQueueItem]:
        """Snapshot of all jobs in priority order."""
        with self._lock:
            return [item.model_copy() for item in self._items]

    def update_progress(self, job_id: str, progress: float) -> None:
        """Set progress on a non-terminal job.

        Values are not bounds-checked; callers supply 0-100.

        Raises:
            JobNotFoundError: Unknown job id.
            JobStateError: The job already finished.
        """
        with self._lock:
            item = self._require(job_id)
            if item.is_terminal:
                raise JobStateError(
                    f"Cannot update progress of {item.status} job {job_id}"
                )
            item.progress = progress

    def mark_processing(self, job_id: str) -> None:
        with self._lock:
            item = self._transition(job_id, JobStatus.PROCESSING)
            item.started_at = _utcnow()

    def mark_completed(self, job_id: str) -> None:
        with self._lock:
            item = self._transition(job_id, JobStatus.COMPLETED)
            item.completed_at = _utcnow()
        logger.info("Job %s completed", job_id)

    def mark_failed(self, job_id: str, error_message: str) -> None:
        with self._lock:
            item = self._transition(job_id, JobStatus.FAILED)
            item.error_message = error_message
            item.completed_at = _utcnow()
        logger.warning("Job %s failed: %s", job_id, error_message)

    def record_retry(self, job_id: str) -> int:
        """Increment and return the job's retry count."""
        with self._lock:
            item = self._require(job_id)
            item.retry_count += 1
            return item.retry_count

    def purge(self, before: datetime) -> int:
        """Remove finished jobs completed before ``before``.

        Returns:
            Number of jobs removed.
        """
        with self._lock:
            kept = [
                item
                for item in self._items
                if not (
                    item.is_terminal
                    and item.completed_at is not None
                    and item.completed_at < before
                )
            ]
            removed = len(self._items) - len(kept)
            self._items = kept
        if removed:
            logger.info("Purged %d finished jobs", removed)
        return removed

    def _find(self, job_id: str) -> ProcessingQueueItem | None:
        return next((item for item in self._items if item.id == job_id), None)

    def _require(self, job_id: str) -> ProcessingQueueItem:
        item = self._find(job_id)
        if item is None:
            raise JobNotFoundError(job_id)
        return item

    def _transition(self, job_id: str, target: JobStatus) -> ProcessingQueueItem:
        item = self._require(job_id)
        if target not in TRANSITIONS[item.status]:
            raise JobStateError(f"Job {job_id} cannot go from {item.status} to {target}")
        item.status = target
        return item
