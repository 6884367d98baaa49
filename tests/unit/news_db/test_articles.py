"""Tests for news_db.articles and news_db.categories modules."""

import pytest
from sqlalchemy.exc import IntegrityError

from news_db.articles import ArticleStore
from news_db.categories import CategoryStore
from news_db.connection import session_scope
from news_db.models import Article, Category
from news_db.records import NewArticle


def make_article(**overrides) -> NewArticle:
    values = dict(
        title="Council Approves New Budget",
        slug="council-approves-new-budget",
        summary="The council approved the budget.",
        content_original="<p>The council approved the budget.</p>",
        content_rewritten="<article></article>",
        source_url="https://example.com/news/budget?utm_source=rss",
        source_url_normalized="https://example.com/news/budget",
        content_hash="0" * 32,
        source_id=None,
        source_name="Example News",
        author_name="Jane Reporter",
        category_id=None,
        featured_image="https://example.com/budget.jpg",
        keywords=["council", "budget"],
        entities={"people": [], "places": [], "organizations": []},
        is_trending=False,
        is_featured=True,
    )
    values.update(overrides)
    return NewArticle(**values)


class TestArticleStore:
    def test_insert_published_sets_status_and_date(self, session_factory) -> None:
        store = ArticleStore(session_factory)
        article_id = store.insert_published(make_article())

        stored = store.get(article_id)
        assert stored.status == "published"
        assert stored.published_at is not None
        assert stored.keywords == ["council", "budget"]
        assert stored.is_featured is True

    def test_exists_lookups(self, session_factory) -> None:
        store = ArticleStore(session_factory)
        store.insert_published(make_article())

        assert store.exists_by_normalized_url("https://example.com/news/budget")
        assert store.exists_by_title("COUNCIL APPROVES NEW BUDGET")
        assert store.exists_by_content_hash("0" * 32)
        assert not store.exists_by_normalized_url("https://example.com/news/other")
        assert not store.exists_by_title("Something else")
        assert not store.exists_by_content_hash("f" * 32)

    def test_duplicate_normalized_url_is_rejected(self, session_factory) -> None:
        store = ArticleStore(session_factory)
        store.insert_published(make_article())
        with pytest.raises(IntegrityError):
            store.insert_published(make_article(slug="another-slug", title="Another"))

    def test_publish_pending(self, session_factory) -> None:
        with session_scope(session_factory) as session:
            row = Article(
                title="Pending story",
                slug="pending-story",
                source_url="https://example.com/p",
                source_url_normalized="https://example.com/p",
                status="pending",
            )
            session.add(row)
            session.flush()
            article_id = row.id

        store = ArticleStore(session_factory)
        assert store.publish_pending(article_id) is True
        stored = store.get(article_id)
        assert stored.status == "published"
        assert stored.published_at is not None
        assert store.publish_pending(article_id) is False

    def test_publish_pending_missing_article(self, session_factory) -> None:
        assert ArticleStore(session_factory).publish_pending("missing") is False

    def test_find_similar_degrades_without_pg_trgm(self, session_factory) -> None:
        store = ArticleStore(session_factory)
        store.insert_published(make_article())
        assert store.find_similar("Council approves budget") == []


class TestCategoryStore:
    def test_seeded_taxonomy(self, session_factory) -> None:
        store = CategoryStore(session_factory)
        assert store.id_for_slug("technology") is not None
        assert store.id_for_slug("unknown") is None

    def test_default_prefers_world_over_top(self, session_factory) -> None:
        store = CategoryStore(session_factory)
        assert store.default_id() == store.id_for_slug("world")

    def test_default_prefers_general_when_present(self, session_factory) -> None:
        store = CategoryStore(session_factory)
        with session_scope(session_factory) as session:
            session.add(Category(name="General", slug="general"))
        assert store.default_id() == store.id_for_slug("general")
