"""Tests for common.datetime module."""

from datetime import datetime, timedelta, timezone

from common.datetime import ensure_utc, parse_datetime, utcnow


class TestParseDatetime:
    def test_none_returns_none(self) -> None:
        assert parse_datetime(None) is None

    def test_empty_string_returns_none(self) -> None:
        assert parse_datetime("") is None

    def test_aware_datetime_passthrough(self) -> None:
        dt = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_datetime(dt) is dt

    def test_naive_datetime_gets_utc(self) -> None:
        result = parse_datetime(datetime(2024, 1, 1, 12, 0, 0))
        assert result.tzinfo == timezone.utc

    def test_iso_string_with_z_suffix(self) -> None:
        result = parse_datetime("2024-01-01T12:00:00Z")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_rfc822_string(self) -> None:
        result = parse_datetime("Mon, 01 Jan 2024 12:00:00 GMT")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_us_zone_abbreviation(self) -> None:
        result = parse_datetime("Mon, 01 Jan 2024 07:00:00 EST")
        assert result == datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_unparseable_returns_none(self) -> None:
        assert parse_datetime("not a date") is None


class TestEnsureUtc:
    def test_none(self) -> None:
        assert ensure_utc(None) is None

    def test_keeps_existing_zone(self) -> None:
        tz = timezone(timedelta(hours=2))
        dt = datetime(2024, 1, 1, tzinfo=tz)
        assert ensure_utc(dt).tzinfo is tz


class TestUtcnow:
    def test_is_aware(self) -> None:
        assert utcnow().tzinfo is not None
