"""Article storage: dedup lookups, inserts and publishing."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from common.datetime import ensure_utc, utcnow
from news_db.connection import session_scope
from news_db.models import Article
from news_db.records import NewArticle, SimilarArticle, StoredArticle

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.3


def _to_stored(row: Article) -> StoredArticle:
    return StoredArticle(
        id=row.id,
        title=row.title,
        slug=row.slug,
        status=row.status,
        source_url=row.source_url,
        source_id=row.source_id,
        category_id=row.category_id,
        featured_image=row.featured_image,
        is_trending=row.is_trending,
        is_featured=row.is_featured,
        keywords=list(row.keywords or []),
        entities=dict(row.entities or {}),
        summary=row.summary,
        author_name=row.author_name,
        published_at=ensure_utc(row.published_at),
    )


class ArticleStore:
    """Point lookups and writes against the articles table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _exists(self, *criteria) -> bool:
        with session_scope(self._session_factory) as session:
            found = session.execute(
                select(Article.id).where(*criteria).limit(1)
            ).scalar_one_or_none()
            return found is not None

    def exists_by_normalized_url(self, normalized_url: str) -> bool:
        return self._exists(Article.source_url_normalized == normalized_url)

    def exists_by_title(self, title: str) -> bool:
        return self._exists(func.lower(Article.title) == title.lower())

    def exists_by_content_hash(self, digest: str) -> bool:
        return self._exists(Article.content_hash == digest)

    def get(self, article_id: str) -> StoredArticle | None:
        with session_scope(self._session_factory) as session:
            row = session.get(Article, article_id)
            return _to_stored(row) if row is not None else None

    def insert_published(self, article: NewArticle) -> str:
        """Insert a new article as published in one statement and return its id.

        Not an upsert: a duplicate slug or normalized URL raises IntegrityError.
        """
        now = utcnow()
        row = Article(
            title=article.title,
            slug=article.slug,
            summary=article.summary,
            content_original=article.content_original,
            content_rewritten=article.content_rewritten,
            content_hash=article.content_hash,
            source_url=article.source_url,
            source_url_normalized=article.source_url_normalized,
            source_name=article.source_name,
            source_id=article.source_id,
            author_name=article.author_name,
            category_id=article.category_id,
            featured_image=article.featured_image,
            media_gallery=article.media_gallery,
            tags=article.tags,
            keywords=article.keywords,
            entities=article.entities,
            status="published",
            is_trending=article.is_trending,
            is_featured=article.is_featured,
            reading_time_minutes=article.reading_time_minutes,
            published_at=now,
            created_at=now,
            updated_at=now,
        )
        with session_scope(self._session_factory) as session:
            session.add(row)
            session.flush()
            article_id = row.id
        logger.info("Inserted published article %s (%s)", article_id, article.slug)
        return article_id

    def publish_pending(self, article_id: str) -> bool:
        """Publish a pending article, keeping an existing published_at.

        Returns False when the article is missing or not pending.
        """
        now = utcnow()
        stmt = (
            update(Article)
            .where(Article.id == article_id, Article.status == "pending")
            .values(
                status="published",
                published_at=func.coalesce(Article.published_at, now),
                updated_at=now,
            )
        )
        with session_scope(self._session_factory) as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def find_similar(self, title: str, limit: int = 5) -> list[SimilarArticle]:
        """Published articles whose titles are trigram-similar to `title`.

        Requires the pg_trgm extension.
        """
        score = func.similarity(Article.title, title)
        stmt = (
            select(
                Article.id,
                Article.title,
                Article.slug,
                Article.published_at,
                score.label("similarity"),
            )
            .where(Article.status == "published", score > SIMILARITY_THRESHOLD)
            .order_by(score.desc())
            .limit(limit)
        )
        try:
            with session_scope(self._session_factory) as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error("Similar article lookup failed for %r: %s", title, e)
            return []
        return [
            SimilarArticle(
                id=row.id,
                title=row.title,
                slug=row.slug,
                similarity=float(row.similarity),
                published_at=ensure_utc(row.published_at),
            )
            for row in rows
        ]
