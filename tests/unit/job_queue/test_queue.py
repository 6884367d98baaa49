"""Tests for job_queue.queue module."""

from datetime import timedelta

import pytest

from common.datetime import utcnow
from job_queue.models import FETCH_QUEUE, PROCESS_QUEUE, JobOptions, JobState
from job_queue.queue import JobQueue, compute_backoff_ms
from news_db.connection import session_scope
from news_db.models import Job

RETRYING = JobOptions(attempts=3, backoff_type="exponential", backoff_delay_ms=5000)


def backdate(session_factory, job_id: str, **fields) -> None:
    with session_scope(session_factory) as session:
        row = session.get(Job, job_id)
        for name, value in fields.items():
            setattr(row, name, value)


class TestComputeBackoff:
    def test_exponential(self) -> None:
        assert [compute_backoff_ms("exponential", 5000, n) for n in (1, 2, 3)] == [5000, 10000, 20000]

    def test_fixed(self) -> None:
        assert compute_backoff_ms("fixed", 5000, 3) == 5000

    def test_no_backoff(self) -> None:
        assert compute_backoff_ms(None, 5000, 1) == 0
        assert compute_backoff_ms("exponential", 0, 1) == 0

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            compute_backoff_ms("linear", 1000, 1)


class TestJobLifecycle:
    def test_add_claim_complete(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {"source_id": "s1"})

        job = queue.claim(FETCH_QUEUE)
        assert job.id == job_id
        assert job.state == JobState.ACTIVE.value
        assert job.payload == {"source_id": "s1"}
        assert queue.claim(FETCH_QUEUE) is None

        queue.complete(job_id, {"queued": 1})
        stored = queue.get(job_id)
        assert stored.state == JobState.COMPLETED.value
        assert stored.return_value == {"queued": 1}
        assert stored.finished_at is not None

    def test_queues_are_independent(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        queue.add(FETCH_QUEUE, "fetch-source", {})
        assert queue.claim(PROCESS_QUEUE) is None

    def test_delayed_job_is_not_claimable_yet(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {}, delay_ms=60_000)
        assert queue.get(job_id).state == JobState.DELAYED.value
        assert queue.claim(FETCH_QUEUE) is None

    def test_failure_with_attempts_left_is_retried_with_backoff(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: RETRYING})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        queue.claim(FETCH_QUEUE)

        record = queue.fail(job_id, "timeout", "Traceback ...")
        assert record.state == JobState.DELAYED.value
        assert record.attempts_made == 1
        assert record.stacktrace == ["Traceback ..."]
        assert record.available_at - utcnow() > timedelta(seconds=3)
        assert queue.claim(FETCH_QUEUE) is None

    def test_failure_without_attempts_left_is_final(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: JobOptions(attempts=2)})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})

        queue.claim(FETCH_QUEUE)
        assert queue.fail(job_id, "first").state == JobState.WAITING.value
        queue.claim(FETCH_QUEUE)
        record = queue.fail(job_id, "second")
        assert record.state == JobState.FAILED.value
        assert record.attempts_made == 2
        assert record.failed_reason == "second"

    def test_unrecoverable_failure_skips_retries(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: RETRYING})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        queue.claim(FETCH_QUEUE)
        assert queue.fail(job_id, "gone", retry=False).state == JobState.FAILED.value

    def test_manual_retry(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        queue.claim(FETCH_QUEUE)
        queue.fail(job_id, "boom")

        assert queue.retry(job_id) is True
        job = queue.get(job_id)
        assert job.state == JobState.WAITING.value
        assert job.attempts_made == 0
        assert queue.claim(FETCH_QUEUE).id == job_id
        assert queue.retry(job_id) is False

    def test_stalled_jobs_are_failed(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: JobOptions(attempts=1)})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        queue.claim(FETCH_QUEUE)
        backdate(session_factory, job_id, started_at=utcnow() - timedelta(hours=1))

        assert queue.fail_stalled(FETCH_QUEUE, stall_timeout_seconds=600) == 1
        assert queue.get(job_id).state == JobState.FAILED.value

    def test_stale_worker_cannot_settle_reclaimed_job(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: JobOptions(attempts=3)})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        first = queue.claim(FETCH_QUEUE)
        backdate(session_factory, job_id, started_at=utcnow() - timedelta(hours=1))
        assert queue.fail_stalled(FETCH_QUEUE, stall_timeout_seconds=600) == 1

        second = queue.claim(FETCH_QUEUE)
        assert second.id == job_id
        assert second.lock_token != first.lock_token

        assert queue.complete(job_id, {"queued": 9}, lock_token=first.lock_token) is False
        assert queue.fail(job_id, "late", lock_token=first.lock_token) is None
        job = queue.get(job_id)
        assert job.state == JobState.ACTIVE.value
        assert job.attempts_made == 1
        assert job.return_value is None

        assert queue.complete(job_id, {"queued": 1}, lock_token=second.lock_token) is True
        assert queue.get(job_id).return_value == {"queued": 1}

    def test_finished_job_ignores_late_outcome(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: RETRYING})
        job_id = queue.add(FETCH_QUEUE, "fetch-source", {})
        job = queue.claim(FETCH_QUEUE)
        assert queue.complete(job_id, lock_token=job.lock_token) is True

        assert queue.fail(job_id, "late", lock_token=job.lock_token) is None
        assert queue.complete(job_id) is False
        stored = queue.get(job_id)
        assert stored.state == JobState.COMPLETED.value
        assert stored.attempts_made == 0


class TestIntrospection:
    def test_counts(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        queue.add(FETCH_QUEUE, "a", {})
        queue.add(FETCH_QUEUE, "b", {})
        queue.add(FETCH_QUEUE, "c", {}, delay_ms=60_000)
        queue.claim(FETCH_QUEUE)

        counts = queue.counts(FETCH_QUEUE)
        assert counts.waiting == 1
        assert counts.active == 1
        assert counts.delayed == 1
        assert counts.failed == 0
        assert counts.paused is False

    def test_list_jobs_newest_first(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        first = queue.add(FETCH_QUEUE, "a", {})
        second = queue.add(FETCH_QUEUE, "b", {})
        backdate(session_factory, first, created_at=utcnow() - timedelta(minutes=5))

        jobs = queue.list_jobs(FETCH_QUEUE, [JobState.WAITING])
        assert [job.id for job in jobs] == [second, first]

    def test_pause_and_resume(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        queue.add(FETCH_QUEUE, "a", {})
        queue.pause(FETCH_QUEUE)
        queue.pause(FETCH_QUEUE)

        assert queue.is_paused(FETCH_QUEUE)
        assert queue.counts(FETCH_QUEUE).paused
        assert queue.claim(FETCH_QUEUE) is None

        queue.resume(FETCH_QUEUE)
        assert not queue.is_paused(FETCH_QUEUE)
        assert queue.claim(FETCH_QUEUE) is not None

    def test_clean_by_age_and_state(self, session_factory) -> None:
        queue = JobQueue(session_factory)
        old = queue.add(FETCH_QUEUE, "old", {})
        recent = queue.add(FETCH_QUEUE, "recent", {})
        for _ in (old, recent):
            queue.complete(queue.claim(FETCH_QUEUE).id)
        backdate(session_factory, old, finished_at=utcnow() - timedelta(hours=2))

        assert queue.clean(FETCH_QUEUE, grace_ms=3_600_000) == [old]
        assert queue.get(old) is None
        assert queue.get(recent) is not None

    def test_clean_rejects_active_state(self, session_factory) -> None:
        with pytest.raises(ValueError):
            JobQueue(session_factory).clean(FETCH_QUEUE, state=JobState.ACTIVE)

    def test_completed_jobs_are_trimmed(self, session_factory) -> None:
        queue = JobQueue(session_factory, {FETCH_QUEUE: JobOptions(remove_on_complete=1)})
        ids = [queue.add(FETCH_QUEUE, str(i), {}) for i in range(3)]
        for _ in ids:
            queue.complete(queue.claim(FETCH_QUEUE).id)
        assert queue.counts(FETCH_QUEUE).completed == 1
