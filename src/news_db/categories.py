"""Category lookups by slug."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from news_db.connection import session_scope
from news_db.models import Category

DEFAULT_CATEGORY_SLUGS = ("general", "world", "news", "top")


class CategoryStore:
    """Maps category slugs to ids for the fixed taxonomy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def id_for_slug(self, slug: str) -> str | None:
        with session_scope(self._session_factory) as session:
            return session.execute(
                select(Category.id).where(Category.slug == slug)
            ).scalar_one_or_none()

    def default_id(self) -> str | None:
        """Return the id of the first catch-all category that exists."""
        with session_scope(self._session_factory) as session:
            rows = session.execute(
                select(Category.slug, Category.id).where(
                    Category.slug.in_(DEFAULT_CATEGORY_SLUGS)
                )
            ).all()
        by_slug = {slug: category_id for slug, category_id in rows}
        for slug in DEFAULT_CATEGORY_SLUGS:
            if slug in by_slug:
                return by_slug[slug]
        return None
