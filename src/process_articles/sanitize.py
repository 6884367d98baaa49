"""HTML sanitizing and plain-text helpers."""

import html
import re

import bleach

from common.utils import collapse_whitespace, strip_tags

ALLOWED_TAGS = {
    "p", "br", "strong", "em", "u",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "a", "blockquote", "code", "pre", "img",
}
ALLOWED_ATTRIBUTES = {"*": ["href", "src", "alt", "title", "class"]}
ALLOWED_PROTOCOLS = {"http", "https", "mailto"}

SCRIPT_STYLE_PATTERN = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)


def clean_html(content: str | None) -> str:
    """Reduce HTML to the allow-listed tags and attributes."""
    if not content:
        return ""
    content = SCRIPT_STYLE_PATTERN.sub("", content)
    return bleach.clean(
        content,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    ).strip()


def extract_plain_text(content: str | None) -> str:
    """Strip tags, decode entities and normalize whitespace."""
    if not content:
        return ""
    return collapse_whitespace(html.unescape(strip_tags(content)))


def truncate_text(text: str, max_length: int) -> str:
    """Shorten text at a sentence boundary if one is near the limit, else at a word."""
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_sentence_end = max(truncated.rfind("."), truncated.rfind("!"), truncated.rfind("?"))
    if last_sentence_end > max_length * 0.8:
        return truncated[: last_sentence_end + 1]

    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated + "..."
