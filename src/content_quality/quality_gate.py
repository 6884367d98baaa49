"""Heuristics deciding whether content is a full article or a snippet."""

import logging
import re

from common.utils import count_words, strip_tags
from content_quality.models import ContentStats

logger = logging.getLogger(__name__)

MIN_FULL_WORDS = 250
MIN_FULL_CHARS = 1000

SNIPPET_MARKER_PATTERN = re.compile(r"read more|continue reading|full story|view more", re.IGNORECASE)
TRAILING_ELLIPSIS_PATTERN = re.compile(r"(\.\.\.|…)$")
PARAGRAPH_PATTERN = re.compile(r"<p[\s>]", re.IGNORECASE)


def is_snippet(content: str) -> bool:
    """True if the content carries a "read more" marker or ends with an ellipsis."""
    if SNIPPET_MARKER_PATTERN.search(content):
        return True
    return bool(TRAILING_ELLIPSIS_PATTERN.search(strip_tags(content).strip()))


def is_full_content(content: str | None, title: str = "") -> bool:
    """Decide whether content is a complete article body.

    Snippet markers always win. Otherwise the plain text must reach both
    MIN_FULL_WORDS words and MIN_FULL_CHARS characters.
    """
    if not content:
        return False

    text = strip_tags(content).strip()
    word_count = count_words(text)
    char_count = len(text)

    if is_snippet(content):
        logger.debug("Snippet marker found in content for %r", title)
        return False

    return word_count >= MIN_FULL_WORDS and char_count >= MIN_FULL_CHARS


def needs_scraping(content: str | None, source_type: str, title: str = "") -> bool:
    """Decide whether a candidate needs a secondary full-page scrape."""
    if source_type == "rss-scrape":
        return True

    is_full = is_full_content(content, title)

    if source_type == "rss-full" and not is_full:
        logger.warning(
            "Source marked rss-full but content looks truncated, scraping: %s", title
        )

    return not is_full


def get_content_stats(content: str | None) -> ContentStats:
    """Measure word, character and paragraph counts of HTML content."""
    content = content or ""
    text = strip_tags(content).strip()
    return ContentStats(
        word_count=count_words(text),
        char_count=len(text),
        paragraphs=len(PARAGRAPH_PATTERN.findall(content)),
        has_images="<img" in content.lower(),
    )
