"""Durable job queue stored in the jobs table.

Jobs move waiting -> active -> completed, or active -> failed. A failed
attempt with attempts remaining goes back to waiting (or delayed, when a
backoff applies) instead. Workers claim jobs with SELECT ... FOR UPDATE
SKIP LOCKED so that concurrent workers never receive the same job. Each
claim stamps a fresh lock token; completing or failing a job requires the
token of the current claim, so a worker whose job was failed as stalled
and claimed again cannot overwrite the newer attempt.
"""

from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, sessionmaker

from common.datetime import ensure_utc, utcnow
from job_queue.models import JobOptions, JobRecord, JobState, QueueCounts
from news_db.connection import session_scope
from news_db.models import Job, QueuePause

logger = logging.getLogger(__name__)

MAX_STACKTRACES = 10
CLEANABLE_STATES = {
    JobState.COMPLETED.value,
    JobState.FAILED.value,
    JobState.WAITING.value,
    JobState.DELAYED.value,
}


def compute_backoff_ms(backoff_type: str | None, delay_ms: int, attempts_made: int) -> int:
    """Delay before the next attempt, given how many attempts have failed."""
    if not backoff_type or delay_ms <= 0 or attempts_made <= 0:
        return 0
    if backoff_type == "exponential":
        return delay_ms * 2 ** (attempts_made - 1)
    if backoff_type == "fixed":
        return delay_ms
    raise ValueError(f"Unknown backoff type: {backoff_type}")


def _to_record(row: Job) -> JobRecord:
    return JobRecord(
        id=row.id,
        queue=row.queue,
        name=row.name,
        payload=dict(row.payload or {}),
        state=row.state,
        attempts_made=row.attempts_made,
        max_attempts=row.max_attempts,
        created_at=ensure_utc(row.created_at),
        available_at=ensure_utc(row.available_at),
        started_at=ensure_utc(row.started_at),
        finished_at=ensure_utc(row.finished_at),
        failed_reason=row.failed_reason,
        stacktrace=list(row.stacktrace or []),
        return_value=row.return_value,
        lock_token=row.lock_token,
    )


class JobQueue:
    """Named queues sharing one jobs table."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        options: dict[str, JobOptions] | None = None,
    ):
        self._session_factory = session_factory
        self._options = options or {}

    def options_for(self, queue: str) -> JobOptions:
        return self._options.get(queue, JobOptions())

    def add(
        self,
        queue: str,
        name: str,
        payload: dict[str, Any],
        options: JobOptions | None = None,
        delay_ms: int = 0,
    ) -> str:
        """Add a job and return its id."""
        options = options or self.options_for(queue)
        now = utcnow()
        row = Job(
            queue=queue,
            name=name,
            payload=payload,
            state=JobState.DELAYED.value if delay_ms > 0 else JobState.WAITING.value,
            attempts_made=0,
            max_attempts=max(1, options.attempts),
            backoff_type=options.backoff_type,
            backoff_delay_ms=options.backoff_delay_ms,
            available_at=now + timedelta(milliseconds=delay_ms),
            created_at=now,
            stacktrace=[],
        )
        with session_scope(self._session_factory) as session:
            session.add(row)
            session.flush()
            job_id = row.id
        logger.info("Added job %s to %s (%s)", job_id, queue, name)
        return job_id

    def claim(self, queue: str) -> JobRecord | None:
        """Move the next ready job to active and return it, or None."""
        now = utcnow()
        with session_scope(self._session_factory) as session:
            if session.get(QueuePause, queue) is not None:
                return None

            row = session.execute(
                select(Job)
                .where(
                    Job.queue == queue,
                    Job.state.in_([JobState.WAITING.value, JobState.DELAYED.value]),
                    Job.available_at <= now,
                )
                .order_by(Job.available_at, Job.created_at)
                .limit(1)
                .with_for_update(skip_locked=True)
            ).scalar_one_or_none()
            if row is None:
                return None

            row.state = JobState.ACTIVE.value
            row.started_at = now
            row.lock_token = str(uuid.uuid4())
            return _to_record(row)

    def _locked_active(self, session: Session, job_id: str, lock_token: str | None) -> Job | None:
        """The job row, locked, if it is active under `lock_token`; else None."""
        row = session.execute(
            select(Job).where(Job.id == job_id).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            logger.warning("Job %s no longer exists", job_id)
            return None
        if row.state != JobState.ACTIVE.value or (
            lock_token is not None and row.lock_token != lock_token
        ):
            logger.warning(
                "Dropping stale outcome for job %s (state %s)", job_id, row.state,
            )
            return None
        return row

    def complete(
        self,
        job_id: str,
        return_value: dict[str, Any] | None = None,
        lock_token: str | None = None,
    ) -> bool:
        """Mark an active job completed. Returns False if the claim is stale."""
        now = utcnow()
        with session_scope(self._session_factory) as session:
            row = self._locked_active(session, job_id, lock_token)
            if row is None:
                return False
            row.state = JobState.COMPLETED.value
            row.finished_at = now
            row.return_value = return_value
            row.lock_token = None
            queue = row.queue
        self._trim(queue, JobState.COMPLETED, self.options_for(queue).remove_on_complete)
        return True

    def fail(
        self,
        job_id: str,
        reason: str,
        stacktrace: str | None = None,
        retry: bool = True,
        lock_token: str | None = None,
    ) -> JobRecord | None:
        """Record a failed attempt; requeue with backoff if attempts remain.

        Returns None, changing nothing, if the job is not active under
        `lock_token`.
        """
        now = utcnow()
        with session_scope(self._session_factory) as session:
            row = self._locked_active(session, job_id, lock_token)
            if row is None:
                return None

            row.lock_token = None
            row.attempts_made += 1
            row.failed_reason = reason
            if stacktrace:
                row.stacktrace = (list(row.stacktrace or []) + [stacktrace])[-MAX_STACKTRACES:]

            if retry and row.attempts_made < row.max_attempts:
                delay_ms = compute_backoff_ms(row.backoff_type, row.backoff_delay_ms, row.attempts_made)
                row.state = JobState.DELAYED.value if delay_ms > 0 else JobState.WAITING.value
                row.available_at = now + timedelta(milliseconds=delay_ms)
                row.started_at = None
                logger.warning(
                    "Job %s failed (attempt %d/%d), retrying in %d ms: %s",
                    job_id, row.attempts_made, row.max_attempts, delay_ms, reason,
                )
            else:
                row.state = JobState.FAILED.value
                row.finished_at = now
                logger.error(
                    "Job %s failed permanently after %d attempt(s): %s",
                    job_id, row.attempts_made, reason,
                )
            record = _to_record(row)

        if record.state == JobState.FAILED.value:
            self._trim(record.queue, JobState.FAILED, self.options_for(record.queue).remove_on_fail)
        return record

    def fail_stalled(self, queue: str, stall_timeout_seconds: int) -> int:
        """Fail active jobs that have run longer than the stall timeout."""
        cutoff = utcnow() - timedelta(seconds=stall_timeout_seconds)
        with session_scope(self._session_factory) as session:
            stalled = session.execute(
                select(Job.id, Job.lock_token).where(
                    Job.queue == queue,
                    Job.state == JobState.ACTIVE.value,
                    Job.started_at < cutoff,
                )
            ).all()
        failed = 0
        for job_id, lock_token in stalled:
            if self.fail(job_id, "job stalled more than allowable limit", lock_token=lock_token):
                failed += 1
        return failed

    def get(self, job_id: str) -> JobRecord | None:
        with session_scope(self._session_factory) as session:
            row = session.get(Job, job_id)
            return _to_record(row) if row is not None else None

    def counts(self, queue: str) -> QueueCounts:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(Job.state, func.count(Job.id))
                .where(Job.queue == queue)
                .group_by(Job.state)
            ).all()
            paused = session.get(QueuePause, queue) is not None
        counts = QueueCounts(queue=queue, paused=paused)
        for state, count in rows:
            setattr(counts, state, count)
        return counts

    def list_jobs(
        self,
        queue: str,
        states: list[JobState],
        limit: int = 5,
        offset: int = 0,
    ) -> list[JobRecord]:
        """Jobs in the given states, newest first."""
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(Job)
                .where(Job.queue == queue, Job.state.in_([s.value for s in states]))
                .order_by(Job.created_at.desc())
                .offset(offset)
                .limit(limit)
            ).scalars().all()
            return [_to_record(row) for row in rows]

    def retry(self, job_id: str) -> bool:
        """Move a failed job back to waiting with a fresh attempt budget."""
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(Job)
                .where(Job.id == job_id, Job.state == JobState.FAILED.value)
                .values(
                    state=JobState.WAITING.value,
                    attempts_made=0,
                    available_at=utcnow(),
                    started_at=None,
                    finished_at=None,
                    failed_reason=None,
                    lock_token=None,
                )
            )
            retried = result.rowcount > 0
        if retried:
            logger.info("Retrying job %s", job_id)
        return retried

    def clean(
        self,
        queue: str,
        grace_ms: int = 3_600_000,
        state: JobState = JobState.COMPLETED,
        limit: int = 100,
    ) -> list[str]:
        """Delete up to `limit` jobs in `state` older than the grace period."""
        if state.value not in CLEANABLE_STATES:
            raise ValueError(f"Cannot clean jobs in state {state.value}")

        cutoff = utcnow() - timedelta(milliseconds=grace_ms)
        timestamp = Job.finished_at if state in (JobState.COMPLETED, JobState.FAILED) else Job.created_at
        with session_scope(self._session_factory) as session:
            job_ids = session.execute(
                select(Job.id)
                .where(Job.queue == queue, Job.state == state.value, timestamp < cutoff)
                .order_by(timestamp)
                .limit(limit)
            ).scalars().all()
            if job_ids:
                session.execute(delete(Job).where(Job.id.in_(job_ids)))
        logger.info("Cleaned %d %s jobs from %s", len(job_ids), state.value, queue)
        return list(job_ids)

    def pause(self, queue: str) -> None:
        with session_scope(self._session_factory) as session:
            if session.get(QueuePause, queue) is None:
                session.add(QueuePause(queue=queue, paused_at=utcnow()))
        logger.info("Paused queue %s", queue)

    def resume(self, queue: str) -> None:
        with session_scope(self._session_factory) as session:
            session.execute(delete(QueuePause).where(QueuePause.queue == queue))
        logger.info("Resumed queue %s", queue)

    def is_paused(self, queue: str) -> bool:
        with session_scope(self._session_factory) as session:
            return session.get(QueuePause, queue) is not None

    def _trim(self, queue: str, state: JobState, keep: int) -> None:
        """Keep only the newest `keep` finished jobs in `state`."""
        if keep < 0:
            return
        with session_scope(self._session_factory) as session:
            stale_ids = session.execute(
                select(Job.id)
                .where(Job.queue == queue, Job.state == state.value)
                .order_by(Job.finished_at.desc())
                .offset(keep)
            ).scalars().all()
            if stale_ids:
                session.execute(delete(Job).where(Job.id.in_(stale_ids)))
