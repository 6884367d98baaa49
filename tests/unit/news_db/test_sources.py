"""Tests for news_db.sources module."""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from news_db.sources import SourceRegistry


class TestSourceRegistry:
    def test_get_active_ignores_inactive_source(self, session_factory, add_source) -> None:
        source_id = add_source(is_active=False)
        registry = SourceRegistry(session_factory)
        assert registry.get_active(source_id) is None
        assert registry.get(source_id) is not None

    def test_get_active_returns_typed_record(self, session_factory, add_source) -> None:
        source_id = add_source(name="Daily Planet", type="rss-scrape")
        source = SourceRegistry(session_factory).get_active(source_id)
        assert source.name == "Daily Planet"
        assert source.type == "rss-scrape"
        assert source.success_count == 0

    def test_get_missing_source(self, session_factory) -> None:
        assert SourceRegistry(session_factory).get("missing") is None

    def test_list_active(self, session_factory, add_source) -> None:
        add_source(name="B News")
        add_source(name="A News")
        add_source(name="Old News", is_active=False)
        names = [s.name for s in SourceRegistry(session_factory).list_active()]
        assert names == ["A News", "B News"]

    def test_pick_random_active_respects_limit(self, session_factory, add_source) -> None:
        for i in range(7):
            add_source(name=f"Source {i}")
        add_source(name="Inactive", is_active=False)
        picked = SourceRegistry(session_factory).pick_random_active(5)
        assert len(picked) == 5
        assert all(source.is_active for source in picked)

    def test_record_success_updates_counters(self, session_factory, add_source) -> None:
        source_id = add_source()
        registry = SourceRegistry(session_factory)
        registry.record_failure(source_id, "boom")
        registry.record_success(source_id)
        registry.record_success(source_id)

        source = registry.get(source_id)
        assert source.success_count == 2
        assert source.error_count == 1
        assert source.last_error is None
        assert source.last_fetched_at is not None

    def test_record_failure_stores_message(self, session_factory, add_source) -> None:
        source_id = add_source()
        registry = SourceRegistry(session_factory)
        registry.record_failure(source_id, "HTTP 500")
        source = registry.get(source_id)
        assert source.error_count == 1
        assert source.last_error == "HTTP 500"

    def test_health_update_errors_are_swallowed(self, session_factory, add_source) -> None:
        source_id = add_source()
        registry = SourceRegistry(session_factory)
        with patch(
            "news_db.sources.session_scope",
            side_effect=OperationalError("UPDATE", {}, Exception("db down")),
        ):
            registry.record_failure(source_id, "boom")
