"""CLI for the fetch scheduler."""

from __future__ import annotations

import argparse
import logging
import threading

from dotenv import load_dotenv

from common.cli_helpers import add_config_argument, setup_logging
from news_pipeline.helpers import install_stop_handlers, load_pipeline

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def parse_schedule_fetches_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for schedule_fetches."""

    parser = argparse.ArgumentParser(description="Queue fetch jobs for random active sources")
    add_config_argument(parser)
    parser.add_argument("--once", action="store_true", help="Queue one batch and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_schedule_fetches_args(argv)
    pipeline = load_pipeline(args.config)

    if args.once:
        job_ids = pipeline.scheduler.run_once()
        logger.info("Queued %d fetch job(s)", len(job_ids))
        return

    stop_event = threading.Event()
    install_stop_handlers(stop_event)
    pipeline.scheduler.run_forever(stop_event)


if __name__ == "__main__":
    main()
