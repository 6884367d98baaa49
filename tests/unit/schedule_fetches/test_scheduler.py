"""Tests for schedule_fetches.scheduler module."""

import threading
from types import SimpleNamespace
from unittest.mock import Mock

from job_queue.models import FETCH_QUEUE, JobState
from job_queue.queue import JobQueue
from news_db.sources import SourceRegistry
from schedule_fetches.scheduler import FETCH_JOB_NAME, Scheduler


def source(n: int) -> SimpleNamespace:
    return SimpleNamespace(id=f"s{n}", name=f"Source {n}")


class TestScheduler:
    def test_queues_one_job_per_source_in_batch(self, session_factory, add_source) -> None:
        for n in range(7):
            add_source(name=f"Source {n}", base_url=f"https://example.com/{n}.xml")
        add_source(name="Inactive", base_url="https://example.com/off.xml", is_active=False)
        queue = JobQueue(session_factory)

        job_ids = Scheduler(SourceRegistry(session_factory), queue, batch_size=5).run_once()

        assert len(job_ids) == 5
        jobs = queue.list_jobs(FETCH_QUEUE, [JobState.WAITING], limit=10)
        assert len(jobs) == 5
        assert {job.name for job in jobs} == {FETCH_JOB_NAME}
        assert len({job.payload["source_id"] for job in jobs}) == 5

    def test_failed_add_is_skipped(self) -> None:
        sources = Mock()
        sources.pick_random_active.return_value = [source(1), source(2), source(3)]
        queue = Mock()
        queue.add.side_effect = [RuntimeError("queue down"), "job-2", "job-3"]

        assert Scheduler(sources, queue, batch_size=3).run_once() == ["job-2", "job-3"]
        queue.add.assert_called_with(FETCH_QUEUE, FETCH_JOB_NAME, {"source_id": "s3"})

    def test_source_selection_failure(self) -> None:
        sources = Mock()
        sources.pick_random_active.side_effect = RuntimeError("db down")
        queue = Mock()

        assert Scheduler(sources, queue).run_once() == []
        queue.add.assert_not_called()

    def test_no_active_sources(self) -> None:
        sources = Mock()
        sources.pick_random_active.return_value = []
        assert Scheduler(sources, Mock()).run_once() == []

    def test_run_forever_runs_until_stopped(self) -> None:
        stop_event = threading.Event()
        sources = Mock()

        def pick(limit):
            stop_event.set()
            return [source(1)]

        sources.pick_random_active.side_effect = pick
        queue = Mock()

        Scheduler(sources, queue, batch_size=1, interval_minutes=30).run_forever(stop_event)

        queue.add.assert_called_once()
