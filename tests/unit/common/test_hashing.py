"""Tests for common.hashing module."""

from common.hashing import content_hash


class TestContentHash:
    def test_deterministic_output(self) -> None:
        assert content_hash("Some article body") == content_hash("Some article body")

    def test_returns_md5_hex_string(self) -> None:
        result = content_hash("body")
        assert len(result) == 32
        assert all(c in "0123456789abcdef" for c in result)

    def test_ignores_case_and_surrounding_whitespace(self) -> None:
        assert content_hash("  Breaking News \n") == content_hash("breaking news")

    def test_different_content_produces_different_hash(self) -> None:
        assert content_hash("first story") != content_hash("second story")

    def test_none_hashes_like_empty_string(self) -> None:
        assert content_hash(None) == content_hash("")
