"""Process stage: enrich one validated candidate and store it as a published article."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from common.datetime import parse_datetime
from common.errors import ContentValidationError
from common.hashing import content_hash
from common.serialization import serialize_dataclass
from content_quality.quality_gate import get_content_stats
from deduplicate_articles.deduplicate import normalize_url
from fetch_articles.models import Candidate
from news_db.records import NewArticle
from process_articles.classify import CategoryAssigner
from process_articles.entities import EntityExtractor
from process_articles.keywords import extract_keywords, reading_time_minutes
from process_articles.models import ProcessResult
from process_articles.rewrite import ArticleRewriter
from process_articles.sanitize import clean_html, extract_plain_text
from process_articles.scoring import generate_slug, should_be_featured, should_be_trending
from process_articles.summarize import SummaryService, summary_quality

logger = logging.getLogger(__name__)

MIN_PLAIN_TEXT_LENGTH = 500
KEYWORD_LIMIT = 10
DEFAULT_AUTHOR = "PulsePress Editorial"


def candidate_from_payload(payload: dict[str, Any]) -> Candidate:
    """Rebuild a Candidate from a queued job payload."""
    return Candidate(
        source_id=payload.get("source_id") or "",
        source_name=payload.get("source_name") or "",
        title=payload.get("title") or "",
        link=payload.get("link") or "",
        content=payload.get("content") or "",
        author=payload.get("author"),
        published_at=parse_datetime(payload.get("published_at")),
        image_url=payload.get("image_url") or "",
    )


class ProcessStage:
    """Runs the enrichment steps for one candidate.

    Content length and image presence are re-checked here. Any error
    aborts the job before the single insert.
    """

    def __init__(
        self,
        sources,
        articles,
        summaries: SummaryService,
        entities: EntityExtractor,
        categories: CategoryAssigner,
        rewriter: ArticleRewriter,
    ):
        self.sources = sources
        self.articles = articles
        self.summaries = summaries
        self.entities = entities
        self.categories = categories
        self.rewriter = rewriter

    def run(self, candidate: Candidate) -> ProcessResult:
        title = candidate.title
        logger.info("Processing %r from %s", title, candidate.source_name)

        if not candidate.source_id or self.sources.get(candidate.source_id) is None:
            raise ContentValidationError(f"Invalid source_id: {candidate.source_id}")

        cleaned = clean_html(candidate.content)
        plain_text = extract_plain_text(cleaned)
        stats = get_content_stats(cleaned)
        logger.info(
            "Cleaned content: %d chars, %d words, %d paragraphs",
            len(plain_text), stats.word_count, stats.paragraphs,
        )

        if len(plain_text) < MIN_PLAIN_TEXT_LENGTH:
            raise ContentValidationError(f"Content too short: {len(plain_text)} chars")
        if not candidate.image_url:
            raise ContentValidationError("No image URL")

        summary = self.summaries.summarize(plain_text)
        logger.info(
            "Summary for %r: %d chars (quality %d)",
            title, len(summary), summary_quality(summary, plain_text),
        )
        keywords = extract_keywords(plain_text, KEYWORD_LIMIT)
        entities = self.entities.extract(plain_text)
        logger.info("Keywords for %r: %s", title, keywords)

        rewritten, images = self.rewriter.rewrite(
            title, plain_text, cleaned, candidate.image_url, keywords
        )

        category_slug, category_id = self.categories.assign(
            title, plain_text, keywords, candidate.source_name
        )

        is_trending = should_be_trending(title, plain_text, keywords, candidate.published_at)
        is_featured = should_be_featured(title, stats, candidate.image_url)

        slug = generate_slug(title)
        article = NewArticle(
            title=title,
            slug=slug,
            summary=summary,
            content_original=cleaned,
            content_rewritten=rewritten,
            source_url=candidate.link,
            source_url_normalized=normalize_url(candidate.link),
            content_hash=content_hash(cleaned),
            source_id=candidate.source_id,
            source_name=candidate.source_name or None,
            author_name=candidate.author or candidate.source_name or DEFAULT_AUTHOR,
            category_id=category_id,
            featured_image=candidate.image_url,
            keywords=keywords,
            entities=asdict(entities),
            is_trending=is_trending,
            is_featured=is_featured,
            media_gallery=[asdict(image) for image in images],
            tags=list(keywords[:5]),
            reading_time_minutes=reading_time_minutes(plain_text),
        )
        article_id = self.articles.insert_published(article)

        logger.info(
            "Published article %s (%s) category=%s trending=%s featured=%s",
            article_id, slug, category_slug, is_trending, is_featured,
        )
        return ProcessResult(
            article_id=article_id,
            slug=slug,
            category_slug=category_slug,
            is_trending=is_trending,
            is_featured=is_featured,
        )


def handle_process_job(stage: ProcessStage, payload: dict[str, Any]) -> dict[str, Any]:
    """Queue handler: payload is a serialized Candidate."""
    result = stage.run(candidate_from_payload(payload))
    return serialize_dataclass(result)
