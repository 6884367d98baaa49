"""Database engine and session management."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from dotenv import load_dotenv
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from news_db.models import Base, Category

load_dotenv()

logger = logging.getLogger(__name__)

CATEGORY_TAXONOMY = [
    ("Top Stories", "top", "Breaking news and top stories"),
    ("Politics", "politics", "Political news and analysis"),
    ("World", "world", "International news"),
    ("Business", "business", "Business and finance news"),
    ("Technology", "technology", "Tech news and innovation"),
    ("Sports", "sports", "Sports news and updates"),
    ("Entertainment", "entertainment", "Entertainment and celebrity news"),
    ("Science", "science", "Science and research"),
    ("Health", "health", "Health and wellness"),
    ("Lifestyle", "lifestyle", "Lifestyle and culture"),
    ("Opinion", "opinion", "Opinion pieces and editorials"),
    ("Local", "local", "Local news"),
]


def get_engine(url: str | None = None, echo: bool = False) -> Engine:
    """Create an engine from the given URL or DATABASE_URL."""
    url = url or os.environ["DATABASE_URL"]
    return create_engine(url, echo=echo, pool_pre_ping=True)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a session factory bound to an engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Context manager for a session with automatic commit/rollback."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine, seed_categories: bool = True) -> None:
    """Create all tables and seed the category taxonomy if missing."""
    Base.metadata.create_all(engine)
    if not seed_categories:
        return

    with session_scope(get_session_factory(engine)) as session:
        existing = set(session.execute(select(Category.slug)).scalars().all())
        added = 0
        for sort_order, (name, slug, description) in enumerate(CATEGORY_TAXONOMY, start=1):
            if slug in existing:
                continue
            session.add(
                Category(name=name, slug=slug, description=description, sort_order=sort_order)
            )
            added += 1
    logger.info("Database initialised (%d categories added)", added)
