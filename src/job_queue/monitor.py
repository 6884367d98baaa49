"""Operator views over the stage queues."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from common.serialization import serialize_dataclass
from job_queue.models import STAGE_QUEUES, JobRecord, JobState, QueueCounts
from job_queue.queue import JobQueue

RECENT_JOBS_LIMIT = 5
FAILED_JOBS_LIMIT = 20


@dataclass
class QueueStatus:
    """Counts plus the most recent waiting and active jobs of one queue."""
    counts: QueueCounts
    waiting: list[JobRecord] = field(default_factory=list)
    active: list[JobRecord] = field(default_factory=list)


def job_summary(job: JobRecord) -> dict[str, Any]:
    """Compact view of a job for listings."""
    return {
        "id": job.id,
        "name": job.name,
        "state": job.state,
        "attempts_made": job.attempts_made,
        "max_attempts": job.max_attempts,
        "created_at": job.created_at.isoformat() if job.created_at else None,
        "failed_reason": job.failed_reason,
    }


class QueueMonitor:
    """Read-mostly introspection of the fetch, process and publish queues."""

    def __init__(self, queue: JobQueue, queue_names: tuple[str, ...] = STAGE_QUEUES):
        self.queue = queue
        self.queue_names = queue_names

    def _check(self, queue_name: str) -> None:
        if queue_name not in self.queue_names:
            raise ValueError(f"Unknown queue: {queue_name}")

    def status(self, queue_name: str) -> QueueStatus:
        self._check(queue_name)
        return QueueStatus(
            counts=self.queue.counts(queue_name),
            waiting=self.queue.list_jobs(
                queue_name, [JobState.WAITING, JobState.DELAYED], limit=RECENT_JOBS_LIMIT
            ),
            active=self.queue.list_jobs(queue_name, [JobState.ACTIVE], limit=RECENT_JOBS_LIMIT),
        )

    def status_all(self) -> dict[str, QueueStatus]:
        return {name: self.status(name) for name in self.queue_names}

    def failed(self, queue_name: str, limit: int = FAILED_JOBS_LIMIT) -> list[JobRecord]:
        self._check(queue_name)
        return self.queue.list_jobs(queue_name, [JobState.FAILED], limit=limit)

    def job(self, queue_name: str, job_id: str) -> JobRecord | None:
        self._check(queue_name)
        job = self.queue.get(job_id)
        if job is None or job.queue != queue_name:
            return None
        return job

    def retry(self, queue_name: str, job_id: str) -> bool:
        return self.job(queue_name, job_id) is not None and self.queue.retry(job_id)

    def clean(
        self,
        queue_name: str,
        grace_ms: int = 3_600_000,
        state: JobState = JobState.COMPLETED,
        limit: int = 100,
    ) -> list[str]:
        self._check(queue_name)
        return self.queue.clean(queue_name, grace_ms=grace_ms, state=state, limit=limit)

    def pause(self, queue_name: str) -> None:
        self._check(queue_name)
        self.queue.pause(queue_name)

    def resume(self, queue_name: str) -> None:
        self._check(queue_name)
        self.queue.resume(queue_name)


def status_to_dict(status: QueueStatus) -> dict[str, Any]:
    return {
        "counts": serialize_dataclass(status.counts),
        "waiting": [job_summary(job) for job in status.waiting],
        "active": [job_summary(job) for job in status.active],
    }
