"""Tests for process_articles.keywords module."""

from process_articles.keywords import extract_keywords, reading_time_minutes


class TestExtractKeywords:
    def test_ranks_by_frequency(self) -> None:
        text = "Transit budget approved. The transit council said the budget covers transit."
        assert extract_keywords(text)[:3] == ["transit", "budget", "approved"]

    def test_filters_short_numeric_and_stop_words(self) -> None:
        keywords = extract_keywords("The city will spend 2024 dollars about this plan from now")
        assert "2024" not in keywords
        assert "about" not in keywords
        assert "the" not in keywords
        assert "city" in keywords

    def test_limit(self) -> None:
        text = " ".join(f"term{chr(97 + i)}" for i in range(20))
        assert len(extract_keywords(text, limit=5)) == 5

    def test_empty(self) -> None:
        assert extract_keywords("") == []


class TestReadingTime:
    def test_minimum_one_minute(self) -> None:
        assert reading_time_minutes("") == 1

    def test_rounds_up(self) -> None:
        assert reading_time_minutes("word " * 401) == 3
