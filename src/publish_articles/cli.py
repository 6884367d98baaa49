"""CLI for publishing pending articles."""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from common.cli_helpers import add_config_argument, setup_logging
from job_queue.models import PUBLISH_QUEUE
from news_pipeline.helpers import load_pipeline

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def parse_publish_articles_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for publish_articles."""

    parser = argparse.ArgumentParser(description="Publish pending articles")
    add_config_argument(parser)
    parser.add_argument("article_ids", nargs="+", help="Ids of pending articles")
    parser.add_argument(
        "--enqueue",
        action="store_true",
        help="Add publish jobs to the queue instead of publishing now",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_publish_articles_args(argv)
    pipeline = load_pipeline(args.config)

    for article_id in args.article_ids:
        if args.enqueue:
            pipeline.queue.add(PUBLISH_QUEUE, "publish-article", {"article_id": article_id})
            continue
        result = pipeline.publish_stage.run(article_id)
        if not result.published:
            logger.warning("Article %s was not published", article_id)


if __name__ == "__main__":
    main()
