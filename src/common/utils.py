"""Common utility functions."""

import re
from typing import Any


def get_value(obj: Any, key: str) -> Any:
    """Get value from dict or object attribute."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def strip_tags(html: str | None) -> str:
    """Replace HTML tags with spaces."""
    if not html:
        return ""
    return re.sub(r"<[^>]*>", " ", html)


def collapse_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def count_words(text: str | None) -> int:
    """Count whitespace-separated, non-empty tokens."""
    if not text:
        return 0
    return len(text.split())
