"""CLI for draining the process queue once, without a long-running worker."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from common.cli_helpers import add_config_argument, parse_positive_int, setup_logging
from job_queue.models import PROCESS_QUEUE
from news_pipeline.helpers import load_pipeline
from news_pipeline.pipeline import build_workers

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def parse_process_articles_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for process_articles."""

    parser = argparse.ArgumentParser(description="Process queued candidates and exit")
    add_config_argument(parser)
    parser.add_argument(
        "--max-jobs",
        type=parse_positive_int,
        default=10,
        help="Maximum number of jobs to process (default: 10)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_process_articles_args(argv)
    pipeline = load_pipeline(args.config)
    (worker,) = build_workers(pipeline, (PROCESS_QUEUE,))

    processed = 0
    while processed < args.max_jobs and worker.process_next():
        processed += 1

    logger.info("Processed %d job(s) from %s", processed, PROCESS_QUEUE)


if __name__ == "__main__":
    main()
