"""Hashing utilities."""

import hashlib


def content_hash(content: str | None) -> str:
    """Hash content for duplicate detection (case and surrounding whitespace ignored)."""
    normalized = (content or "").strip().lower()
    return hashlib.md5(normalized.encode("utf-8")).hexdigest()
