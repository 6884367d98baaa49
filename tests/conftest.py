"""Shared fixtures: an in-memory SQLite database with the full schema."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from news_db.connection import get_session_factory, init_db, session_scope
from news_db.models import NewsSource


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def add_source(session_factory):
    """Insert a news source and return its id."""

    def _add(
        name: str = "Example News",
        base_url: str = "https://example.com/feed.xml",
        type: str = "rss-full",
        is_active: bool = True,
    ) -> str:
        with session_scope(session_factory) as session:
            row = NewsSource(name=name, base_url=base_url, type=type, is_active=is_active)
            session.add(row)
            session.flush()
            return row.id

    return _add
