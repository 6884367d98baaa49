"""Helper functions for the job_queue CLI."""

from __future__ import annotations

import argparse

from common.cli_helpers import add_config_argument, parse_positive_int
from common.config import Config
from job_queue.models import STAGE_QUEUES, JobOptions, JobState


def options_from_config(config: Config) -> dict[str, JobOptions]:
    """Per-queue job options from the queue section of the config."""
    return {
        name: JobOptions(
            attempts=stage.attempts,
            backoff_type=stage.backoff_type,
            backoff_delay_ms=stage.backoff_delay_ms,
            remove_on_complete=stage.remove_on_complete,
            remove_on_fail=stage.remove_on_fail,
        )
        for name, stage in config.queue.stages.items()
    }


def parse_job_queue_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for job_queue."""

    parser = argparse.ArgumentParser(description="Inspect and manage the stage queues")
    add_config_argument(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    status = subparsers.add_parser("status", help="Counts and recent waiting/active jobs")
    status.add_argument("queue", nargs="?", choices=STAGE_QUEUES, help="Queue (default: all)")

    failed = subparsers.add_parser("failed", help="List failed jobs")
    failed.add_argument("queue", choices=STAGE_QUEUES)
    failed.add_argument("--limit", type=parse_positive_int, default=20)

    get = subparsers.add_parser("get", help="Show one job with its error detail")
    get.add_argument("queue", choices=STAGE_QUEUES)
    get.add_argument("job_id")

    retry = subparsers.add_parser("retry", help="Retry a failed job")
    retry.add_argument("queue", choices=STAGE_QUEUES)
    retry.add_argument("job_id")

    clean = subparsers.add_parser("clean", help="Delete old jobs in a state")
    clean.add_argument("queue", choices=STAGE_QUEUES)
    clean.add_argument(
        "--state",
        type=JobState,
        choices=[JobState.COMPLETED, JobState.FAILED, JobState.WAITING, JobState.DELAYED],
        default=JobState.COMPLETED,
        help="Job state to clean (default: completed)",
    )
    clean.add_argument(
        "--grace-ms",
        type=int,
        default=3_600_000,
        help="Only clean jobs older than this many milliseconds (default: 1 hour)",
    )
    clean.add_argument("--limit", type=parse_positive_int, default=100)

    for command in ("pause", "resume"):
        sub = subparsers.add_parser(command, help=f"{command.capitalize()} a queue")
        sub.add_argument("queue", choices=STAGE_QUEUES)

    return parser.parse_args(argv)
