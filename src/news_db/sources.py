"""Source registry backed by the news_sources table."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from common.datetime import ensure_utc, utcnow
from news_db.connection import session_scope
from news_db.models import NewsSource
from news_db.records import Source

logger = logging.getLogger(__name__)


def _to_source(row: NewsSource) -> Source:
    return Source(
        id=row.id,
        name=row.name,
        base_url=row.base_url,
        type=row.type,
        is_active=row.is_active,
        fetch_interval_minutes=row.fetch_interval_minutes,
        success_count=row.success_count,
        error_count=row.error_count,
        last_error=row.last_error,
        last_fetched_at=ensure_utc(row.last_fetched_at),
        config=row.config or {},
    )


class SourceRegistry:
    """Reads sources and records fetch outcomes against them."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get(self, source_id: str) -> Source | None:
        with session_scope(self._session_factory) as session:
            row = session.get(NewsSource, source_id)
            return _to_source(row) if row is not None else None

    def get_active(self, source_id: str) -> Source | None:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(NewsSource).where(
                    NewsSource.id == source_id,
                    NewsSource.is_active.is_(True),
                )
            ).scalar_one_or_none()
            return _to_source(row) if row is not None else None

    def list_active(self) -> list[Source]:
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(NewsSource)
                .where(NewsSource.is_active.is_(True))
                .order_by(NewsSource.name)
            ).scalars().all()
            return [_to_source(row) for row in rows]

    def pick_random_active(self, limit: int = 5) -> list[Source]:
        """Return up to `limit` active sources in random order."""
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(NewsSource)
                .where(NewsSource.is_active.is_(True))
                .order_by(func.random())
                .limit(limit)
            ).scalars().all()
            return [_to_source(row) for row in rows]

    def record_success(self, source_id: str) -> None:
        """Bump success_count, stamp last_fetched_at and clear last_error.

        Errors are logged, never raised.
        """
        now = utcnow()
        stmt = (
            update(NewsSource)
            .where(NewsSource.id == source_id)
            .values(
                last_fetched_at=now,
                success_count=NewsSource.success_count + 1,
                last_error=None,
                updated_at=now,
            )
        )
        self._execute_health_update(stmt, source_id)

    def record_failure(self, source_id: str, error_message: str) -> None:
        """Bump error_count and store the error message.

        Errors are logged, never raised.
        """
        stmt = (
            update(NewsSource)
            .where(NewsSource.id == source_id)
            .values(
                error_count=NewsSource.error_count + 1,
                last_error=error_message,
                updated_at=utcnow(),
            )
        )
        self._execute_health_update(stmt, source_id)

    def _execute_health_update(self, stmt, source_id: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Failed to update health counters for source %s: %s", source_id, e)
