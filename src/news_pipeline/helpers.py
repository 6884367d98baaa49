"""Helper functions for the pipeline CLIs."""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from common.cli_helpers import add_config_argument
from common.config import load_config
from job_queue.models import STAGE_QUEUES
from news_pipeline.pipeline import Pipeline, build_pipeline

logger = logging.getLogger(__name__)


def load_pipeline(config_name: str | None) -> Pipeline:
    return build_pipeline(load_config(config_name))


def install_stop_handlers(stop_event: threading.Event) -> None:
    """Set `stop_event` on SIGINT or SIGTERM."""

    def _handle(signum, _frame) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def parse_news_pipeline_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for news_pipeline."""

    parser = argparse.ArgumentParser(description="Run the news ingestion pipeline")
    add_config_argument(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create tables and seed categories")
    init_db.add_argument(
        "--no-seed",
        action="store_true",
        help="Create tables without seeding the category taxonomy",
    )

    workers = subparsers.add_parser("run-workers", help="Run stage workers until stopped")
    workers.add_argument(
        "--queue",
        dest="queues",
        action="append",
        choices=STAGE_QUEUES,
        help="Queue to work on; repeat for several (default: all stage queues)",
    )

    subparsers.add_parser("run-scheduler", help="Queue fetch jobs on the configured interval")
    subparsers.add_parser("run", help="Run the scheduler and all stage workers")

    return parser.parse_args(argv)
