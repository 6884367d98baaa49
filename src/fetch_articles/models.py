"""Data models for fetch_articles pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class RawCandidate:
    """Feed entry or scraped page normalized by an adapter."""
    title: str
    link: str
    content: str
    content_snippet: str = ""
    published_at: Optional[datetime] = None
    author: Optional[str] = None
    categories: list[str] = field(default_factory=list)
    image_hint: Optional[str] = None


@dataclass
class ScrapedPage:
    """Readable article extracted from a web page."""
    url: str
    title: str
    content: str
    excerpt: str
    byline: Optional[str]
    site_name: Optional[str]
    published_time: Optional[datetime]
    image_url: Optional[str] = None


@dataclass
class Candidate:
    """Candidate that cleared every fetch gate, handed to the process stage."""
    source_id: str
    source_name: str
    title: str
    link: str
    content: str
    author: Optional[str]
    published_at: Optional[datetime]
    image_url: str


@dataclass
class FetchResult:
    """Outcome of one fetch job."""
    source: str
    total_fetched: int
    queued: int
    skipped: int
