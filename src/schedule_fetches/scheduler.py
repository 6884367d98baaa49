"""Periodic scheduler that queues fetch jobs for a random batch of sources."""

from __future__ import annotations

import logging
import threading

from job_queue.models import FETCH_QUEUE

logger = logging.getLogger(__name__)

FETCH_JOB_NAME = "fetch-source"


class Scheduler:
    """Queues one fetch job per source for `batch_size` random active sources.

    Runs once at start and then every `interval_minutes`. It does not look
    at how many fetch jobs are already queued.
    """

    def __init__(self, sources, queue, batch_size: int = 5, interval_minutes: int = 30):
        self.sources = sources
        self.queue = queue
        self.batch_size = batch_size
        self.interval_minutes = interval_minutes

    def run_once(self) -> list[str]:
        """Queue one batch and return the ids of the jobs added."""
        try:
            sources = self.sources.pick_random_active(self.batch_size)
        except Exception as e:
            logger.error("Failed to select sources for fetching: %s", e)
            return []

        if not sources:
            logger.warning("No active sources to fetch")
            return []

        job_ids = []
        for source in sources:
            try:
                job_id = self.queue.add(FETCH_QUEUE, FETCH_JOB_NAME, {"source_id": source.id})
            except Exception as e:
                logger.error("Failed to queue fetch for %s: %s", source.name, e)
                continue
            job_ids.append(job_id)

        logger.info("Scheduled %d fetch job(s) of %d source(s)", len(job_ids), len(sources))
        return job_ids

    def run_forever(self, stop_event: threading.Event) -> None:
        logger.info("Scheduler started, interval %d minutes", self.interval_minutes)
        while not stop_event.is_set():
            self.run_once()
            stop_event.wait(self.interval_minutes * 60)
        logger.info("Scheduler stopped")
