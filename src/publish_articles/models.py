"""Data models for publish_articles pipeline stage."""

from dataclasses import dataclass


@dataclass
class PublishResult:
    """Outcome of one publish job."""
    article_id: str
    published: bool
