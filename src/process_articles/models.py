"""Data models for process_articles pipeline stage."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ClassificationLabel:
    """One label returned by a classifier with its confidence."""
    label: str
    score: float


@dataclass
class ExtractedEntities:
    """Named entities grouped into people, places and organizations."""
    people: list[str] = field(default_factory=list)
    places: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)


@dataclass
class SummaryVariants:
    """Summaries of the same text at three target lengths."""
    short: str
    medium: str
    long: str


@dataclass
class ContentImage:
    """Inline image found in article HTML."""
    url: str
    alt: str = ""
    caption: str = ""


@dataclass
class ResearchSource:
    """Page retrieved while researching a story."""
    url: str
    title: str
    content: str


@dataclass
class ResearchResult:
    """Facts and background gathered from related pages."""
    sources: list[ResearchSource] = field(default_factory=list)
    facts: list[str] = field(default_factory=list)
    context: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.sources or self.facts or self.context)


@dataclass
class ProcessResult:
    """Outcome of one process job."""
    article_id: str
    slug: str
    category_slug: Optional[str]
    is_trending: bool
    is_featured: bool
