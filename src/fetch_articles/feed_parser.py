"""RSS/Atom feed adapter producing RawCandidate records."""

import logging
from typing import Any, Callable, Optional

import feedparser
import requests

from common.datetime import parse_datetime
from common.errors import FeedParseError
from common.utils import collapse_whitespace, get_value, strip_tags
from fetch_articles.models import RawCandidate

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 30
FEED_USER_AGENT = "news-ingest/1.0 (RSS reader)"

Rule = tuple[str, Callable[[Any], Optional[str]]]


def _content_entries(entry: Any) -> list[Any]:
    return get_value(entry, "content") or []


def _content_encoded(entry: Any) -> Optional[str]:
    for item in _content_entries(entry):
        if "html" in (get_value(item, "type") or ""):
            return get_value(item, "value")
    return None


def _content(entry: Any) -> Optional[str]:
    for item in _content_entries(entry):
        value = get_value(item, "value")
        if value:
            return value
    return None


def _description(entry: Any) -> Optional[str]:
    return get_value(entry, "description")


def _summary(entry: Any) -> Optional[str]:
    detail = get_value(entry, "summary_detail")
    if detail:
        return get_value(detail, "value")
    return get_value(entry, "summary")


def _content_snippet(entry: Any) -> Optional[str]:
    return collapse_whitespace(strip_tags(get_value(entry, "summary"))) or None


# Evaluated in order; the first rule yielding a non-empty value wins.
CONTENT_RULES: list[Rule] = [
    ("content_encoded", _content_encoded),
    ("content", _content),
    ("description", _description),
    ("summary", _summary),
    ("content_snippet", _content_snippet),
]


def _enclosure_image(entry: Any) -> Optional[str]:
    for enclosure in get_value(entry, "enclosures") or []:
        if (get_value(enclosure, "type") or "").startswith("image"):
            return get_value(enclosure, "href") or get_value(enclosure, "url")
    return None


def _media_content_image(entry: Any) -> Optional[str]:
    for media in get_value(entry, "media_content") or []:
        medium = get_value(media, "medium") or ""
        media_type = get_value(media, "type") or ""
        if medium in ("", "image") and (not media_type or media_type.startswith("image")):
            url = get_value(media, "url")
            if url:
                return url
    return None


def _media_thumbnail_image(entry: Any) -> Optional[str]:
    for thumbnail in get_value(entry, "media_thumbnail") or []:
        url = get_value(thumbnail, "url")
        if url:
            return url
    return None


IMAGE_RULES: list[Rule] = [
    ("enclosure", _enclosure_image),
    ("media_content", _media_content_image),
    ("media_thumbnail", _media_thumbnail_image),
]

AUTHOR_RULES: list[Rule] = [
    ("author", lambda entry: get_value(entry, "author")),
    ("creator", lambda entry: get_value(entry, "dc_creator")),
]

DATE_RULES: list[Rule] = [
    ("published", lambda entry: get_value(entry, "published")),
    ("updated", lambda entry: get_value(entry, "updated")),
]


def first_match(entry: Any, rules: list[Rule]) -> Optional[str]:
    """Return the first non-blank value produced by `rules`."""
    for name, rule in rules:
        value = rule(entry)
        if isinstance(value, str) and value.strip():
            logger.debug("Rule %s matched", name)
            return value.strip()
    return None


def parse_entry(entry: Any) -> RawCandidate:
    """Normalize one feedparser entry."""
    tags = get_value(entry, "tags") or []
    return RawCandidate(
        title=(get_value(entry, "title") or "").strip(),
        link=(get_value(entry, "link") or "").strip(),
        content=first_match(entry, CONTENT_RULES) or "",
        content_snippet=_content_snippet(entry) or "",
        published_at=parse_datetime(first_match(entry, DATE_RULES)),
        author=first_match(entry, AUTHOR_RULES),
        categories=[get_value(tag, "term") for tag in tags if get_value(tag, "term")],
        image_hint=first_match(entry, IMAGE_RULES),
    )


def parse_feed(
    url: str,
    timeout: int = FEED_TIMEOUT,
    user_agent: str = FEED_USER_AGENT,
    max_items: int | None = None,
) -> list[RawCandidate]:
    """Download and parse a feed into candidates, in feed order."""
    logger.info("Parsing RSS feed %s", url)
    response = requests.get(url, timeout=timeout, headers={"User-Agent": user_agent})
    response.raise_for_status()

    feed = feedparser.parse(response.content)
    if feed.bozo and not feed.entries:
        raise FeedParseError(f"Failed to parse feed {url}: {feed.get('bozo_exception')}")

    entries = feed.entries[:max_items] if max_items else feed.entries
    candidates = []
    for entry in entries:
        try:
            candidates.append(parse_entry(entry))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Failed to parse entry in %s: %s", url, e)

    logger.info(
        "Parsed %d entries from %s (%d with content over 500 chars)",
        len(candidates),
        url,
        sum(1 for c in candidates if len(c.content) > 500),
    )
    return candidates
