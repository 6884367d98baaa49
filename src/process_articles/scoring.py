"""Editorial flags (trending, featured) and slug derivation."""

import re
from datetime import datetime, timedelta
from typing import Optional

from common.datetime import ensure_utc, utcnow
from content_quality.models import ContentStats

TRENDING_WINDOW = timedelta(hours=6)
TRENDING_TITLE_PATTERN = re.compile(r"breaking|urgent|just in|developing|live|update", re.IGNORECASE)
TRENDING_LEAD_PATTERN = re.compile(r"breaking|urgent|alert|exclusive", re.IGNORECASE)
TRENDING_LEAD_CHARS = 200
BREAKING_KEYWORDS = {"breaking", "urgent", "crisis", "emergency", "alert"}

FEATURED_MIN_WORDS = 500
FEATURED_MIN_PARAGRAPHS = 3
FEATURED_TITLE_LENGTH = (30, 100)
FEATURED_MIN_SCORE = 4
CLICKBAIT_PATTERN = re.compile(r"\?|!|you won't believe|shocking|incredible", re.IGNORECASE)

MAX_SLUG_LENGTH = 100


def is_recent(published_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """Published within TRENDING_WINDOW; an unknown date counts as recent."""
    if published_at is None:
        return True
    now = now or utcnow()
    return now - ensure_utc(published_at) < TRENDING_WINDOW


def should_be_trending(
    title: str,
    content: str,
    keywords: list[str],
    published_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> bool:
    """Recent and carrying at least one breaking-news signal."""
    if not is_recent(published_at, now):
        return False

    signals = (
        bool(TRENDING_TITLE_PATTERN.search(title)),
        bool(TRENDING_LEAD_PATTERN.search(content[:TRENDING_LEAD_CHARS])),
        any(keyword.lower() in BREAKING_KEYWORDS for keyword in keywords),
    )
    return any(signals)


def featured_score(title: str, stats: ContentStats, image_url: Optional[str]) -> int:
    """Number of quality checks passed, out of five."""
    min_title, max_title = FEATURED_TITLE_LENGTH
    checks = (
        bool(image_url),
        stats.word_count >= FEATURED_MIN_WORDS,
        stats.paragraphs >= FEATURED_MIN_PARAGRAPHS,
        min_title <= len(title) <= max_title,
        not CLICKBAIT_PATTERN.search(title),
    )
    return sum(checks)


def should_be_featured(title: str, stats: ContentStats, image_url: Optional[str]) -> bool:
    return featured_score(title, stats, image_url) >= FEATURED_MIN_SCORE


def generate_slug(title: str) -> str:
    """Lowercase, drop non-word characters, hyphenate whitespace, trim hyphens."""
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")[:MAX_SLUG_LENGTH]
