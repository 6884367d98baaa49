"""Worker pools that pull jobs from a queue and run a stage handler."""

from __future__ import annotations

import logging
import threading
import time
import traceback
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional

from common.errors import UnrecoverableJobError
from job_queue.models import JobRecord
from job_queue.queue import JobQueue

logger = logging.getLogger(__name__)

Handler = Callable[[JobRecord], Optional[dict[str, Any]]]

STALL_CHECK_INTERVAL_SECONDS = 30


class Worker:
    """Runs `handler` for jobs of one queue with bounded concurrency."""

    def __init__(
        self,
        queue: JobQueue,
        queue_name: str,
        handler: Handler,
        concurrency: int = 1,
        poll_interval: float = 1.0,
        stall_timeout_seconds: int = 600,
    ):
        self.queue = queue
        self.queue_name = queue_name
        self.handler = handler
        self.concurrency = max(1, concurrency)
        self.poll_interval = poll_interval
        self.stall_timeout_seconds = stall_timeout_seconds
        self._last_stall_check = 0.0

    def run_job(self, job: JobRecord) -> None:
        """Run one claimed job and record its outcome on the queue.

        Never raises: jobs run on pool threads whose futures are not read, so
        a failure to record the outcome is logged here instead.
        """
        try:
            self._run(job)
        except Exception:
            logger.exception("Failed to record outcome of job %s in %s", job.id, self.queue_name)

    def _run(self, job: JobRecord) -> None:
        logger.info(
            "Processing job %s from %s (attempt %d/%d)",
            job.id, self.queue_name, job.attempts_made + 1, job.max_attempts,
        )
        try:
            result = self.handler(job)
        except UnrecoverableJobError as e:
            self.queue.fail(
                job.id, str(e), traceback.format_exc(), retry=False, lock_token=job.lock_token,
            )
        except Exception as e:
            self.queue.fail(
                job.id, str(e) or e.__class__.__name__, traceback.format_exc(),
                lock_token=job.lock_token,
            )
        else:
            if self.queue.complete(job.id, result, lock_token=job.lock_token):
                logger.info("Job %s completed", job.id)

    def process_next(self) -> bool:
        """Claim and run one job synchronously. Returns False if none was ready."""
        job = self.queue.claim(self.queue_name)
        if job is None:
            return False
        self.run_job(job)
        return True

    def check_stalled(self) -> None:
        now = time.monotonic()
        if now - self._last_stall_check < STALL_CHECK_INTERVAL_SECONDS:
            return
        self._last_stall_check = now
        stalled = self.queue.fail_stalled(self.queue_name, self.stall_timeout_seconds)
        if stalled:
            logger.warning("Failed %d stalled job(s) in %s", stalled, self.queue_name)

    def run(self, stop_event: threading.Event) -> None:
        """Poll the queue until `stop_event` is set, then drain in-flight jobs."""
        logger.info("Worker for %s started (concurrency=%d)", self.queue_name, self.concurrency)
        in_flight: set[Future] = set()
        with ThreadPoolExecutor(
            max_workers=self.concurrency,
            thread_name_prefix=self.queue_name,
        ) as executor:
            while not stop_event.is_set():
                in_flight = {future for future in in_flight if not future.done()}
                if len(in_flight) >= self.concurrency:
                    wait(in_flight, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                    continue

                try:
                    self.check_stalled()
                    job = self.queue.claim(self.queue_name)
                except Exception as e:
                    logger.error("Failed to claim job from %s: %s", self.queue_name, e)
                    stop_event.wait(self.poll_interval)
                    continue

                if job is None:
                    stop_event.wait(self.poll_interval)
                    continue

                in_flight.add(executor.submit(self.run_job, job))

            if in_flight:
                logger.info("Waiting for %d in-flight job(s) in %s", len(in_flight), self.queue_name)
                wait(in_flight)
        logger.info("Worker for %s stopped", self.queue_name)


class Dispatcher:
    """Runs one worker loop per queue, each on its own thread."""

    def __init__(self, workers: list[Worker]):
        self.workers = workers

    def run(self, stop_event: threading.Event) -> None:
        threads = [
            threading.Thread(
                target=worker.run,
                args=(stop_event,),
                name=f"worker-{worker.queue_name}",
                daemon=True,
            )
            for worker in self.workers
        ]
        for thread in threads:
            thread.start()
        logger.info("Dispatcher running %d worker(s)", len(threads))

        try:
            while not stop_event.is_set():
                stop_event.wait(1.0)
        finally:
            stop_event.set()
            for thread in threads:
                thread.join()
            logger.info("Dispatcher stopped")
