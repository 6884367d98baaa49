"""Fetch stage: pick at most one publishable candidate per source and queue it."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from common.errors import SourceUnavailableError, UnsupportedSourceError
from common.serialization import serialize_dataclass
from common.utils import count_words, strip_tags
from content_quality.quality_gate import needs_scraping
from deduplicate_articles.deduplicate import Deduplicator
from fetch_articles.feed_parser import parse_feed
from fetch_articles.images import extract_image_url, is_excluded_image
from fetch_articles.models import Candidate, FetchResult, RawCandidate, ScrapedPage
from fetch_articles.scraper import scrape_page
from job_queue.models import PROCESS_QUEUE
from news_db.records import RSS_SOURCE_TYPES, Source

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 500
SCRAPE_MIN_LENGTH = 500
SCRAPE_WORD_RATIO = 1.5


class FetchStage:
    """Runs fetch jobs for single sources.

    Collaborators are injected: the source registry, the deduplicator, the
    queue that receives process jobs, and the feed/scrape/image adapters.
    """

    def __init__(
        self,
        sources,
        deduplicator: Deduplicator,
        queue,
        feed_parser: Callable[[str], list[RawCandidate]] = parse_feed,
        scraper: Callable[[str], Optional[ScrapedPage]] = scrape_page,
        image_extractor: Callable[[Optional[str], Optional[str]], Optional[str]] = extract_image_url,
    ):
        self.sources = sources
        self.deduplicator = deduplicator
        self.queue = queue
        self.feed_parser = feed_parser
        self.scraper = scraper
        self.image_extractor = image_extractor

    def run(self, source_id: str) -> FetchResult:
        source = self.sources.get_active(source_id)
        if source is None:
            self.sources.record_failure(source_id, "Source not found or inactive")
            raise SourceUnavailableError(source_id)

        logger.info("Fetching from source %s (%s)", source.name, source.type)
        try:
            raw_candidates = self.retrieve_candidates(source)
            self.sources.record_success(source.id)
            return self.select_and_queue(source, raw_candidates)
        except Exception as e:
            self.sources.record_failure(source.id, str(e))
            raise

    def retrieve_candidates(self, source: Source) -> list[RawCandidate]:
        if source.type in RSS_SOURCE_TYPES:
            return self.feed_parser(source.base_url)

        if source.type == "scraper":
            scraped = self.scraper(source.base_url)
            if scraped is None:
                return []
            return [
                RawCandidate(
                    title=scraped.title,
                    link=source.base_url,
                    content=scraped.content,
                    content_snippet=scraped.excerpt,
                    published_at=scraped.published_time,
                    author=scraped.byline,
                    image_hint=scraped.image_url,
                )
            ]

        raise UnsupportedSourceError(f"Unsupported source type {source.type!r} for {source.name}")

    def select_and_queue(self, source: Source, raw_candidates: list[RawCandidate]) -> FetchResult:
        """Queue the first candidate that passes every gate, in feed order."""
        skipped = 0
        queued = 0
        for raw in raw_candidates:
            candidate = self.evaluate(source, raw)
            if candidate is None:
                skipped += 1
                continue

            job_id = self.queue.add(PROCESS_QUEUE, "process-article", serialize_dataclass(candidate))
            logger.info("Queued %r for processing (job %s)", candidate.title, job_id)
            queued = 1
            break

        if not queued:
            logger.info("No publishable candidate from %s (%d checked)", source.name, skipped)

        return FetchResult(
            source=source.name,
            total_fetched=len(raw_candidates),
            queued=queued,
            skipped=skipped,
        )

    def evaluate(self, source: Source, raw: RawCandidate) -> Candidate | None:
        """Run the gates for one candidate; None means rejected."""
        if not raw.link:
            logger.info("Skipping candidate without link: %r", raw.title)
            return None

        if self.deduplicator.is_duplicate(raw.link, raw.title, raw.content or ""):
            logger.info("Skipping duplicate: %s", raw.link)
            return None

        image_url = raw.image_hint
        if image_url and is_excluded_image(image_url):
            logger.info("Ignoring excluded feed image %s for %s", image_url, raw.link)
            image_url = None
        content = raw.content or raw.content_snippet or ""

        if source.type != "scraper" and needs_scraping(content, source.type, raw.title):
            scraped_content, scraped_image = self.try_scrape(raw.link, content)
            if scraped_content is not None:
                content = scraped_content
                if not image_url:
                    image_url = scraped_image or self.image_extractor(scraped_content, raw.link)

        if not image_url:
            image_url = self.image_extractor(content, raw.link)

        if not image_url:
            logger.info("Skipping candidate without image: %s", raw.link)
            return None

        if len(content) < MIN_CONTENT_LENGTH:
            logger.info(
                "Skipping candidate with short content (%d chars): %s", len(content), raw.link
            )
            return None

        return Candidate(
            source_id=source.id,
            source_name=source.name,
            title=raw.title,
            link=raw.link,
            content=content,
            author=raw.author,
            published_at=raw.published_at,
            image_url=image_url,
        )

    def try_scrape(self, link: str, content: str) -> tuple[Optional[str], Optional[str]]:
        """Scrape `link`; return (content, image) only if the scrape is substantially longer."""
        try:
            scraped = self.scraper(link)
        except Exception as e:
            logger.warning("Secondary scrape failed for %s: %s", link, e)
            return None, None

        if scraped is None:
            return None, None

        original_words = count_words(strip_tags(content))
        scraped_words = count_words(strip_tags(scraped.content))
        if len(scraped.content) > SCRAPE_MIN_LENGTH and scraped_words >= SCRAPE_WORD_RATIO * original_words:
            logger.info(
                "Using scraped content for %s (%d words vs %d)", link, scraped_words, original_words
            )
            return scraped.content, scraped.image_url

        logger.info(
            "Keeping feed content for %s (scraped %d words vs %d)", link, scraped_words, original_words
        )
        return None, None


def handle_fetch_job(stage: FetchStage, payload: dict[str, Any]) -> dict[str, Any]:
    """Queue handler: payload carries the source id."""
    result = stage.run(payload["source_id"])
    return serialize_dataclass(result)
