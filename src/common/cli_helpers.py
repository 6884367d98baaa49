"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging
import os


def setup_logging(level: str | None = None) -> None:
    """Configure standard logging format for CLI tools."""
    level_name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def add_config_argument(parser: argparse.ArgumentParser) -> None:
    """Add the shared --config option."""
    parser.add_argument(
        "--config",
        default=None,
        help="Config name under configs/ (default: $PIPELINE_CONFIG or 'default').",
    )


def parse_positive_int(value: str) -> int:
    """Parse a strictly positive integer for argparse arguments."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {parsed}")
    return parsed
