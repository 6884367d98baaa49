"""CLI for queue introspection: counts, failed jobs, retry, clean, pause/resume."""

from __future__ import annotations

import json
import logging
import sys

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from common.config import load_config
from common.serialization import serialize_dataclass
from job_queue.helpers import options_from_config, parse_job_queue_args
from job_queue.monitor import QueueMonitor, job_summary, status_to_dict
from job_queue.queue import JobQueue
from news_db.connection import get_engine, get_session_factory

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def main(argv: list[str] | None = None) -> None:
    args = parse_job_queue_args(argv)
    config = load_config(args.config)
    engine = get_engine(config.database.url, echo=config.database.echo)
    queue = JobQueue(get_session_factory(engine), options_from_config(config))
    monitor = QueueMonitor(queue)

    if args.command == "status":
        if args.queue:
            _print(status_to_dict(monitor.status(args.queue)))
        else:
            _print({name: status_to_dict(s) for name, s in monitor.status_all().items()})

    elif args.command == "failed":
        _print([job_summary(job) for job in monitor.failed(args.queue, args.limit)])

    elif args.command == "get":
        job = monitor.job(args.queue, args.job_id)
        if job is None:
            logger.error("Job %s not found in %s", args.job_id, args.queue)
            sys.exit(1)
        _print(serialize_dataclass(job))

    elif args.command == "retry":
        if not monitor.retry(args.queue, args.job_id):
            logger.error("Job %s in %s is missing or not failed", args.job_id, args.queue)
            sys.exit(1)

    elif args.command == "clean":
        removed = monitor.clean(args.queue, args.grace_ms, args.state, args.limit)
        _print({"removed": len(removed), "ids": removed})

    elif args.command == "pause":
        monitor.pause(args.queue)

    elif args.command == "resume":
        monitor.resume(args.queue)


if __name__ == "__main__":
    main()
