"""Data models for content_quality."""

from dataclasses import dataclass


@dataclass
class ContentStats:
    """Size and structure measurements of a piece of HTML content."""
    word_count: int
    char_count: int
    paragraphs: int
    has_images: bool
