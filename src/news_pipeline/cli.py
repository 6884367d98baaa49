"""Service entry point: database setup, workers and scheduler."""

from __future__ import annotations

import logging
import threading

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from job_queue.worker import Dispatcher
from news_db.connection import init_db
from news_pipeline.helpers import install_stop_handlers, load_pipeline, parse_news_pipeline_args
from news_pipeline.pipeline import build_workers

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    args = parse_news_pipeline_args(argv)
    pipeline = load_pipeline(args.config)

    if args.command == "init-db":
        init_db(pipeline.engine, seed_categories=not args.no_seed)
        return

    stop_event = threading.Event()
    install_stop_handlers(stop_event)

    if args.command == "run-scheduler":
        pipeline.scheduler.run_forever(stop_event)
        return

    queues = tuple(args.queues) if getattr(args, "queues", None) else None
    dispatcher = Dispatcher(build_workers(pipeline, queues))

    if args.command == "run":
        scheduler_thread = threading.Thread(
            target=pipeline.scheduler.run_forever,
            args=(stop_event,),
            name="scheduler",
            daemon=True,
        )
        scheduler_thread.start()
        dispatcher.run(stop_event)
        scheduler_thread.join()
        return

    dispatcher.run(stop_event)


if __name__ == "__main__":
    main()
