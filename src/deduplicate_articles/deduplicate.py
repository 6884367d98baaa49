"""Exact-match duplicate detection against stored articles."""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError

from common.hashing import content_hash

logger = logging.getLogger(__name__)


class ArticleLookup(Protocol):
    def exists_by_normalized_url(self, normalized_url: str) -> bool: ...

    def exists_by_title(self, title: str) -> bool: ...

    def exists_by_content_hash(self, digest: str) -> bool: ...


def normalize_url(url: str) -> str:
    """Drop query string and fragment, keep scheme, host and path, lower-cased."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.strip().lower()
    if not parsed.scheme or not parsed.netloc:
        return url.strip().lower()
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}".lower()


class Deduplicator:
    """Checks a candidate by normalized URL, exact title and content hash."""

    def __init__(self, articles: ArticleLookup):
        self._articles = articles

    def is_duplicate(self, source_url: str, title: str, content: str = "") -> bool:
        """Return True if any dedup signal matches a stored article.

        Lookup errors are logged and treated as "not a duplicate".
        """
        try:
            if self._articles.exists_by_normalized_url(normalize_url(source_url)):
                logger.info("Duplicate by URL: %s", source_url)
                return True

            if title and self._articles.exists_by_title(title.strip()):
                logger.info("Duplicate by title: %s", title)
                return True

            if content and content.strip():
                if self._articles.exists_by_content_hash(content_hash(content)):
                    logger.info("Duplicate by content hash: %s", source_url)
                    return True
        except SQLAlchemyError as e:
            logger.error("Duplicate check failed for %s: %s", source_url, e)
            return False

        return False
