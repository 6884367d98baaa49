"""Typed records read from and written to the news database."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

SOURCE_TYPES = ("rss-full", "rss-scrape", "rss", "api", "scraper")
RSS_SOURCE_TYPES = ("rss-full", "rss-scrape", "rss")

ARTICLE_STATUSES = ("draft", "pending", "published", "archived")


@dataclass
class Source:
    """A configured feed or scrape target with its health counters."""
    id: str
    name: str
    base_url: str
    type: str
    is_active: bool = True
    fetch_interval_minutes: int = 30
    success_count: int = 0
    error_count: int = 0
    last_error: Optional[str] = None
    last_fetched_at: Optional[datetime] = None
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class NewArticle:
    """Fully enriched article ready to be inserted as published."""
    title: str
    slug: str
    summary: str
    content_original: str
    content_rewritten: str
    source_url: str
    source_url_normalized: str
    content_hash: str
    source_id: str
    source_name: Optional[str]
    author_name: Optional[str]
    category_id: Optional[str]
    featured_image: str
    keywords: list[str]
    entities: dict[str, list[str]]
    is_trending: bool
    is_featured: bool
    media_gallery: list[dict[str, Any]] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    reading_time_minutes: Optional[int] = None


@dataclass
class StoredArticle:
    """Article as read back from storage."""
    id: str
    title: str
    slug: str
    status: str
    source_url: str
    source_id: Optional[str]
    category_id: Optional[str]
    featured_image: Optional[str]
    is_trending: bool
    is_featured: bool
    keywords: list[str]
    entities: dict[str, Any]
    summary: Optional[str] = None
    author_name: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass
class SimilarArticle:
    """Published article with a title similar to a query title."""
    id: str
    title: str
    slug: str
    similarity: float
    published_at: Optional[datetime]
