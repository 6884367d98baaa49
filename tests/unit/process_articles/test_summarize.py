"""Tests for process_articles.summarize module."""

from unittest.mock import Mock, patch

import pytest
import requests

from common.errors import ServiceUnavailableError
from process_articles.summarize import (
    MAX_SUMMARY_SENTENCES,
    HuggingFaceSummarizer,
    SummaryService,
    clean_summary,
    extractive_summary,
    prepare_text,
    summary_lengths,
    summary_quality,
)

ARTICLE = " ".join(
    f"Officials in District {n} reported that the new transit plan will change daily commutes."
    for n in range(12)
)


def http_error(status: int) -> requests.HTTPError:
    return requests.HTTPError(f"{status} error", response=Mock(status_code=status))


def json_response(data) -> Mock:
    response = Mock()
    response.json.return_value = data
    return response


class TestHelpers:
    def test_summary_lengths(self) -> None:
        assert summary_lengths(400) == (200, 300)
        assert summary_lengths(1200) == (300, 400)
        assert summary_lengths(400, 100) == (100, 200)

    def test_prepare_text_removes_boilerplate(self) -> None:
        prepared = prepare_text("Council met today.  Read more [1] Advertisement The vote passed.")
        assert "Read more" not in prepared
        assert "[1]" not in prepared
        assert "Advertisement" not in prepared
        assert "Council met today." in prepared

    def test_prepare_text_keeps_intro_and_conclusion(self) -> None:
        text = "a" * 3000 + "b" * 3000
        prepared = prepare_text(text)
        assert prepared.startswith("a" * 2000)
        assert prepared.endswith("b" * 2000)

    def test_clean_summary(self) -> None:
        assert clean_summary("first point. second part") == "First point."
        assert clean_summary("  no punctuation here ") == "No punctuation here."
        assert clean_summary("already done!") == "Already done!"


class TestExtractiveSummary:
    def test_meets_target_and_is_well_formed(self) -> None:
        target, _ = summary_lengths(len(ARTICLE))
        summary = extractive_summary(ARTICLE, target)

        assert len(summary) >= target * 0.8
        assert summary[0].isupper()
        assert summary[-1] in ".!?"

    def test_keeps_original_order(self) -> None:
        summary = extractive_summary(ARTICLE, 200)
        positions = [summary.find(f"District {n} ") for n in range(12) if f"District {n} " in summary]
        assert positions == sorted(positions)

    def test_long_text_is_capped_by_sentence_count(self) -> None:
        text = " ".join(
            f"Officials in District {n} reported that the new transit plan will change daily commutes."
            for n in range(80)
        )
        target, _ = summary_lengths(len(text))
        summary = extractive_summary(text, target)

        assert target == int(len(text) * 0.25)
        assert summary.count(".") == MAX_SUMMARY_SENTENCES
        assert len(summary) < target * 0.8


class TestSummaryService:
    def test_without_summarizer_uses_extraction(self) -> None:
        summary = SummaryService(None).summarize(ARTICLE)
        assert "District 0" in summary

    def test_accepts_long_enough_ai_summary(self) -> None:
        summarizer = Mock()
        summarizer.summarize.return_value = "transit " * 40
        fallback = Mock()

        summary = SummaryService(summarizer, fallback).summarize(ARTICLE)

        assert summary.startswith("Transit transit")
        assert summary.endswith(".")
        fallback.assert_not_called()

    def test_short_ai_summary_falls_back(self) -> None:
        summarizer = Mock()
        summarizer.summarize.return_value = "ok"
        fallback = Mock(return_value="Extractive.")

        assert SummaryService(summarizer, fallback).summarize(ARTICLE) == "Extractive."

    def test_unavailable_service_falls_back(self) -> None:
        summarizer = Mock()
        summarizer.summarize.side_effect = ServiceUnavailableError("down")
        fallback = Mock(return_value="Extractive.")

        assert SummaryService(summarizer, fallback).summarize(ARTICLE) == "Extractive."
        target = fallback.call_args.args[1]
        assert target == summary_lengths(len(ARTICLE))[0]

    def test_variants(self) -> None:
        variants = SummaryService(None).summarize_variants(ARTICLE)
        assert len(variants.short) <= len(variants.long)


class TestHuggingFaceSummarizer:
    @patch("process_articles.summarize.requests.post")
    def test_primary_model(self, mock_post) -> None:
        mock_post.return_value = json_response([{"summary_text": "A summary."}])
        summarizer = HuggingFaceSummarizer("https://hf.example/models/", "key")

        assert summarizer.summarize("text", 10, 50) == "A summary."
        url = mock_post.call_args.args[0]
        assert url == "https://hf.example/models/facebook/bart-large-cnn"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer key"

    @patch("process_articles.summarize.requests.post")
    def test_loading_model_tries_alternative(self, mock_post) -> None:
        loading = Mock()
        loading.raise_for_status.side_effect = http_error(503)
        mock_post.side_effect = [loading, json_response({"generated_text": "Alt summary."})]

        summarizer = HuggingFaceSummarizer("https://hf.example", None)

        assert summarizer.summarize("text", 10, 50) == "Alt summary."
        assert mock_post.call_args.args[0].endswith("sshleifer/distilbart-cnn-12-6")
        assert mock_post.call_args.kwargs["timeout"] == 25

    @patch("process_articles.summarize.requests.post")
    def test_other_http_errors_do_not_fall_back(self, mock_post) -> None:
        failing = Mock()
        failing.raise_for_status.side_effect = http_error(400)
        mock_post.return_value = failing

        with pytest.raises(ServiceUnavailableError):
            HuggingFaceSummarizer("https://hf.example", None).summarize("text", 10, 50)
        assert mock_post.call_count == 1

    @patch("process_articles.summarize.requests.post")
    def test_both_models_time_out(self, mock_post) -> None:
        mock_post.side_effect = requests.Timeout("slow")

        with pytest.raises(ServiceUnavailableError):
            HuggingFaceSummarizer("https://hf.example", None).summarize("text", 10, 50)
        assert mock_post.call_count == 2


class TestSummaryQuality:
    def test_good_summary_scores_high(self) -> None:
        summary = "Officials reported that the transit plan will change commutes. The plan covers twelve districts."
        assert summary_quality(summary, ARTICLE) >= 80

    def test_empty(self) -> None:
        assert summary_quality("", ARTICLE) == 0
