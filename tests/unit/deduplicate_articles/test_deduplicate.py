"""Tests for deduplicate_articles.deduplicate module."""

from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from common.hashing import content_hash
from deduplicate_articles.deduplicate import Deduplicator, normalize_url
from news_db.articles import ArticleStore
from news_db.records import NewArticle

BODY = "<p>The city council voted on Tuesday to approve the new budget.</p>"


def store_article(session_factory) -> ArticleStore:
    store = ArticleStore(session_factory)
    store.insert_published(
        NewArticle(
            title="Council Approves Budget",
            slug="council-approves-budget",
            summary="",
            content_original=BODY,
            content_rewritten="",
            source_url="https://Example.com/news/budget?utm_source=rss",
            source_url_normalized=normalize_url("https://Example.com/news/budget?utm_source=rss"),
            content_hash=content_hash(BODY),
            source_id=None,
            source_name=None,
            author_name=None,
            category_id=None,
            featured_image="https://example.com/a.jpg",
            keywords=[],
            entities={},
            is_trending=False,
            is_featured=False,
        )
    )
    return store


class TestNormalizeUrl:
    def test_drops_query_and_fragment(self) -> None:
        assert normalize_url("https://example.com/a/b?x=1#top") == "https://example.com/a/b"

    def test_lower_cases(self) -> None:
        assert normalize_url("HTTPS://Example.COM/Path") == "https://example.com/path"

    def test_relative_url_is_lower_cased(self) -> None:
        assert normalize_url(" /Path ") == "/path"


class TestDeduplicator:
    def test_same_url_with_other_query(self, session_factory) -> None:
        dedup = Deduplicator(store_article(session_factory))
        assert dedup.is_duplicate("https://example.com/news/budget?ref=home", "Other title")

    def test_same_title_any_case(self, session_factory) -> None:
        dedup = Deduplicator(store_article(session_factory))
        assert dedup.is_duplicate("https://example.com/other", "council approves BUDGET")

    def test_same_content_hash(self, session_factory) -> None:
        dedup = Deduplicator(store_article(session_factory))
        assert dedup.is_duplicate("https://example.com/other", "Other", "  " + BODY.upper())

    def test_distinct_candidate(self, session_factory) -> None:
        dedup = Deduplicator(store_article(session_factory))
        assert not dedup.is_duplicate(
            "https://example.com/sports/final", "Final Ends In Draw", "<p>Different body.</p>"
        )

    def test_checks_url_first(self) -> None:
        articles = Mock()
        articles.exists_by_normalized_url.return_value = True
        assert Deduplicator(articles).is_duplicate("https://example.com/a", "Title", "Body")
        articles.exists_by_title.assert_not_called()
        articles.exists_by_content_hash.assert_not_called()

    def test_empty_content_skips_hash_lookup(self) -> None:
        articles = Mock()
        articles.exists_by_normalized_url.return_value = False
        articles.exists_by_title.return_value = False
        assert not Deduplicator(articles).is_duplicate("https://example.com/a", "Title", "  ")
        articles.exists_by_content_hash.assert_not_called()

    def test_lookup_error_is_not_a_duplicate(self) -> None:
        articles = Mock()
        articles.exists_by_normalized_url.side_effect = OperationalError("SELECT", {}, Exception("down"))
        assert not Deduplicator(articles).is_duplicate("https://example.com/a", "Title")
