"""Single-page scraper producing readable article content."""

import logging
from typing import Optional

import requests
import trafilatura
from lxml import html as lxml_html
from readability import Document

from common.datetime import parse_datetime
from common.utils import collapse_whitespace
from fetch_articles.images import extract_image_url
from fetch_articles.models import ScrapedPage

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT = 15
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EXCERPT_LENGTH = 200

PUBLISHED_TIME_XPATHS = [
    '//meta[@property="article:published_time"]/@content',
    '//meta[@name="publish-date"]/@content',
    '//meta[@property="og:published_time"]/@content',
    "//time[@datetime]/@datetime",
    '//meta[@name="date"]/@content',
]


def fetch_page(url: str, timeout: int = SCRAPE_TIMEOUT, user_agent: str = BROWSER_USER_AGENT) -> Optional[str]:
    """Download a page; non-200 responses give None."""
    response = requests.get(
        url,
        timeout=timeout,
        headers={
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
    )
    if response.status_code != 200:
        logger.warning("Scrape of %s returned HTTP %d", url, response.status_code)
        return None
    return response.text


def clean_readable_html(content: str) -> str:
    """Remove script, style and comment nodes from readable HTML."""
    if not content or not content.strip():
        return ""
    tree = lxml_html.fromstring(content)
    for node in tree.xpath("//script | //style | //comment()"):
        node.drop_tree()
    return lxml_html.tostring(tree, encoding="unicode")


def published_time_from_meta(tree) -> Optional[str]:
    """Best-effort published time from page metadata."""
    for xpath in PUBLISHED_TIME_XPATHS:
        values = tree.xpath(xpath)
        if values and str(values[0]).strip():
            return str(values[0]).strip()
    return None


def extract_with_readability(page_html: str) -> tuple[str, Optional[str]]:
    """Readable HTML and short title via readability-lxml."""
    doc = Document(page_html)
    return clean_readable_html(doc.summary(html_partial=True)), doc.short_title()


def extract_with_trafilatura(page_html: str) -> str:
    content = trafilatura.extract(
        page_html,
        output_format="html",
        include_comments=False,
        include_images=True,
    )
    return clean_readable_html(content or "")


def extract_content(url: str, page_html: str) -> tuple[str, Optional[str]]:
    """
    Extract readable article HTML from a page.

    Order:
    1. readability-lxml
    2. trafilatura

    Each tried once. If both fail -> returns ("", None).
    """
    try:
        content, title = extract_with_readability(page_html)
        if content:
            return content, title
    except Exception as e:
        logger.warning("readability failed for %s: %s", url, e)

    try:
        content = extract_with_trafilatura(page_html)
        if content:
            return content, None
    except Exception as e:
        logger.warning("trafilatura failed for %s: %s", url, e)

    return "", None


def parse_page(url: str, page_html: str) -> Optional[ScrapedPage]:
    """Extract the readable article from downloaded HTML."""
    content, short_title = extract_content(url, page_html)
    if not content:
        logger.warning("No readable content found at %s", url)
        return None

    metadata = trafilatura.extract_metadata(page_html, default_url=url)
    tree = lxml_html.fromstring(page_html)
    text = collapse_whitespace(lxml_html.fromstring(content).text_content())

    title = short_title or (metadata.title if metadata else None) or ""
    excerpt = (metadata.description if metadata and metadata.description else text[:EXCERPT_LENGTH])
    published = (metadata.date if metadata else None) or published_time_from_meta(tree)

    return ScrapedPage(
        url=url,
        title=title.strip(),
        content=content,
        excerpt=excerpt or "",
        byline=metadata.author if metadata else None,
        site_name=metadata.sitename if metadata else None,
        published_time=parse_datetime(published),
        image_url=extract_image_url(page_html, url),
    )


def scrape_page(
    url: str,
    timeout: int = SCRAPE_TIMEOUT,
    user_agent: str = BROWSER_USER_AGENT,
) -> Optional[ScrapedPage]:
    """Scrape a page into a ScrapedPage, or None if nothing readable came back.

    Network errors propagate to the caller.
    """
    logger.info("Scraping %s", url)
    page_html = fetch_page(url, timeout=timeout, user_agent=user_agent)
    if not page_html:
        return None
    return parse_page(url, page_html)
