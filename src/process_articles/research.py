"""Web research: related pages, extra facts and background for a story."""

from __future__ import annotations

import logging
import re
import time
from typing import Callable
from urllib.parse import parse_qs, quote_plus, urlencode, urlparse, urlunparse

import requests
from bs4 import BeautifulSoup

from common.utils import collapse_whitespace
from process_articles.models import ResearchResult, ResearchSource

logger = logging.getLogger(__name__)

RESEARCH_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
MAX_QUERY_LENGTH = 200
MAX_SOURCE_CHARS = 3000
MIN_SOURCE_CHARS = 200
MAX_FACTS = 10
MAX_CONTEXT_SENTENCES = 5

EXCLUDED_DOMAINS = (
    "youtube.com",
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "pinterest.com",
    "reddit.com",
    "quora.com",
    "wikipedia.org",
)
TRACKING_PARAMS = ("utm_source", "utm_medium", "utm_campaign")
BOILERPLATE_SELECTOR = "script, style, nav, header, footer, .advertisement, .ad"
CONTENT_SELECTORS = (
    "article",
    '[role="main"]',
    ".article-body",
    ".entry-content",
    ".post-content",
    "main",
)

TITLE_PREFIX_PATTERN = re.compile(r"^(breaking|update|exclusive|just in):", re.IGNORECASE)
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
FACT_PATTERN = re.compile(
    r"\d+|percent|million|billion|according to|reported|confirmed|announced|stated",
    re.IGNORECASE,
)
CONTEXT_PATTERN = re.compile(
    r"background|history|previously|earlier|past|before|context|originally|initially",
    re.IGNORECASE,
)


def build_search_query(title: str, keywords: list[str]) -> str:
    clean_title = TITLE_PREFIX_PATTERN.sub("", title)
    clean_title = re.sub(r"[?!]", "", clean_title).strip()
    return f"{clean_title} {' '.join(keywords[:3])}"[:MAX_QUERY_LENGTH].strip()


def is_excluded_domain(url: str) -> bool:
    lowered = url.lower()
    return any(domain in lowered for domain in EXCLUDED_DOMAINS)


def clean_url(url: str) -> str:
    """Resolve search redirect links and drop tracking parameters."""
    if url.startswith("//"):
        url = "https:" + url
    parsed = urlparse(url)
    params = parse_qs(parsed.query, keep_blank_values=True)
    if "uddg" in params:
        return clean_url(params["uddg"][0])
    kept = [(key, value) for key, values in params.items() if key not in TRACKING_PARAMS for value in values]
    return urlunparse(parsed._replace(query=urlencode(kept)))


def extract_facts(sources: list[ResearchSource], original_content: str) -> list[str]:
    """Numeric or reported sentences (50-200 chars) that are not in the original."""
    original_lower = original_content.lower()
    facts: list[str] = []
    for source in sources:
        for sentence in SENTENCE_PATTERN.findall(source.content):
            sentence = sentence.strip()
            if sentence.lower()[:50] in original_lower:
                continue
            if FACT_PATTERN.search(sentence) and 50 <= len(sentence) <= 200 and sentence not in facts:
                facts.append(sentence)
                if len(facts) >= MAX_FACTS:
                    return facts
    return facts


def extract_context(sources: list[ResearchSource], original_content: str) -> list[str]:
    """Background sentences (50-250 chars) that are not in the original."""
    original_lower = original_content.lower()
    combined = " ".join(source.content for source in sources)
    context: list[str] = []
    for sentence in SENTENCE_PATTERN.findall(combined):
        sentence = sentence.strip()
        if sentence.lower()[:30] in original_lower:
            continue
        if CONTEXT_PATTERN.search(sentence) and 50 <= len(sentence) <= 250:
            context.append(sentence)
            if len(context) >= MAX_CONTEXT_SENTENCES:
                break
    return context


def extract_main_text(page_html: str) -> str:
    """Main text of a page with navigation and ads removed."""
    soup = BeautifulSoup(page_html, "lxml")
    for element in soup.select(BOILERPLATE_SELECTOR):
        element.decompose()

    content = ""
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            content = element.get_text(" ", strip=True)
            break

    if len(content) < MIN_SOURCE_CHARS and soup.body is not None:
        content = soup.body.get_text(" ", strip=True)

    return collapse_whitespace(content)[:MAX_SOURCE_CHARS]


class WebResearcher:
    """Searches the web for a story and gathers facts from the top results."""

    def __init__(
        self,
        max_results: int = 5,
        search_timeout: int = 10,
        page_timeout: int = 8,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_results = max_results
        self.search_timeout = search_timeout
        self.page_timeout = page_timeout
        self.pause_seconds = pause_seconds
        self.sleep = sleep

    def research(self, title: str, content: str, keywords: list[str]) -> ResearchResult:
        """Research a story; any failure gives an empty result."""
        try:
            query = build_search_query(title, keywords)
            logger.info("Researching %r", query[:50])
            results = self.search(query)
            if not results:
                logger.info("No search results for %r", query[:50])
                return ResearchResult()

            sources = self.fetch_sources(results[: self.max_results])
            return ResearchResult(
                sources=sources,
                facts=extract_facts(sources, content),
                context=extract_context(sources, content),
            )
        except (requests.RequestException, ValueError) as e:
            logger.warning("Web research failed for %r: %s", title, e)
            return ResearchResult()

    def search(self, query: str) -> list[tuple[str, str]]:
        """Return (title, url) pairs, trying DuckDuckGo then Bing."""
        try:
            results = self.search_duckduckgo(query)
            if results:
                return results
        except requests.RequestException as e:
            logger.warning("DuckDuckGo search failed: %s", e)
        return self.search_bing(query)

    def _get(self, url: str, timeout: int) -> str:
        response = requests.get(url, timeout=timeout, headers={"User-Agent": RESEARCH_USER_AGENT})
        response.raise_for_status()
        return response.text

    def search_duckduckgo(self, query: str) -> list[tuple[str, str]]:
        page = self._get(f"https://html.duckduckgo.com/html/?q={quote_plus(query)}", self.search_timeout)
        soup = BeautifulSoup(page, "lxml")
        results = []
        for element in soup.select(".result"):
            title = element.select_one(".result__title")
            link = element.select_one(".result__url") or element.select_one(".result__a")
            href = link.get("href") if link is not None else None
            if title is None or not href:
                continue
            url = clean_url(href)
            if url.startswith("http") and not is_excluded_domain(url):
                results.append((title.get_text(strip=True), url))
        return results

    def search_bing(self, query: str) -> list[tuple[str, str]]:
        page = self._get(f"https://www.bing.com/search?q={quote_plus(query)}", self.search_timeout)
        soup = BeautifulSoup(page, "lxml")
        results = []
        for element in soup.select(".b_algo"):
            title = element.select_one("h2")
            link = element.select_one("a")
            href = link.get("href") if link is not None else None
            if title is None or not href:
                continue
            url = clean_url(href)
            if url.startswith("http") and not is_excluded_domain(url):
                results.append((title.get_text(strip=True), url))
        return results

    def fetch_sources(self, results: list[tuple[str, str]]) -> list[ResearchSource]:
        sources = []
        for index, (title, url) in enumerate(results):
            if index and self.pause_seconds:
                self.sleep(self.pause_seconds)
            try:
                text = extract_main_text(self._get(url, self.page_timeout))
            except requests.RequestException as e:
                logger.warning("Failed to fetch research source %s: %s", url, e)
                continue
            if len(text) >= MIN_SOURCE_CHARS:
                sources.append(ResearchSource(url=url, title=title, content=text))
                logger.info("Research source %s (%d chars)", url, len(text))
        return sources
