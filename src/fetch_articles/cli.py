"""CLI for running the fetch stage against one source."""

from __future__ import annotations

import argparse
import json
import logging

from dotenv import load_dotenv

from common.cli_helpers import add_config_argument, setup_logging
from common.serialization import serialize_dataclass
from news_pipeline.helpers import load_pipeline

load_dotenv()

setup_logging()
logger = logging.getLogger(__name__)


def parse_fetch_articles_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for fetch_articles."""

    parser = argparse.ArgumentParser(description="Fetch one source and queue its best candidate")
    add_config_argument(parser)
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--source-id", help="Id of the source to fetch")
    group.add_argument("--all", action="store_true", help="Fetch every active source")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_fetch_articles_args(argv)
    pipeline = load_pipeline(args.config)

    source_ids = (
        [source.id for source in pipeline.sources.list_active()] if args.all else [args.source_id]
    )
    if not source_ids:
        logger.warning("No active sources to fetch")
        return

    for source_id in source_ids:
        try:
            result = pipeline.fetch_stage.run(source_id)
        except Exception as e:
            logger.error("Fetch failed for source %s: %s", source_id, e)
            continue
        print(json.dumps(serialize_dataclass(result)))


if __name__ == "__main__":
    main()
