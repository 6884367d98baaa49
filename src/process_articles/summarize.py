"""Proportional article summaries with an extractive fallback."""

from __future__ import annotations

import logging
import re
from typing import Callable, Protocol

import requests

from common.errors import ServiceUnavailableError
from process_articles.models import SummaryVariants

logger = logging.getLogger(__name__)

SUMMARY_RATIO = 0.25
MIN_TARGET_LENGTH = 200
MAX_SUMMARY_LENGTH = 500
ACCEPTANCE_RATIO = 0.8
MAX_SUMMARY_SENTENCES = 10
MAX_INPUT_LENGTH = 4000

NOISE_PATTERNS = [
    re.compile(r"Click here|Read more|Continue reading|Subscribe now|Sign up", re.IGNORECASE),
    re.compile(r"\[.*?\]"),
    re.compile(r"Advertisement|Sponsored", re.IGNORECASE),
]
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
IMPORTANT_WORDS = (
    "announce", "revealed", "discovered", "found", "reported",
    "confirmed", "stated", "according", "official", "breaking",
    "new", "first", "major", "significant", "important",
)


class Summarizer(Protocol):
    """External summarization capability."""

    def summarize(self, text: str, min_length: int, max_length: int) -> str:
        """Return a summary or raise ServiceUnavailableError."""
        ...


class HuggingFaceSummarizer:
    """Summarizer backed by the Hugging Face Inference API.

    Tries the primary model first; when it is loading (HTTP 503) or times
    out, tries the alternative model once with its own timeout.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        model: str = "facebook/bart-large-cnn",
        fallback_model: str | None = "sshleifer/distilbart-cnn-12-6",
        timeout: int = 30,
        fallback_timeout: int = 25,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.fallback_model = fallback_model
        self.timeout = timeout
        self.fallback_timeout = fallback_timeout

    def summarize(self, text: str, min_length: int, max_length: int) -> str:
        parameters = {
            "max_length": max_length,
            "min_length": min_length,
            "do_sample": False,
            "early_stopping": True,
            "num_beams": 4,
            "length_penalty": 2.0,
            "no_repeat_ngram_size": 3,
        }
        try:
            return self._request(self.model, text, parameters, self.timeout)
        except requests.Timeout:
            logger.warning("Summarization model %s timed out", self.model)
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code != 503:
                raise ServiceUnavailableError(f"Summarization failed: {e}") from e
            logger.warning("Summarization model %s unavailable, trying alternative", self.model)
        except requests.RequestException as e:
            raise ServiceUnavailableError(f"Summarization failed: {e}") from e

        if not self.fallback_model:
            raise ServiceUnavailableError(f"Summarization model {self.model} unavailable")

        try:
            return self._request(
                self.fallback_model,
                text,
                {"max_length": max_length, "min_length": min_length},
                self.fallback_timeout,
            )
        except requests.RequestException as e:
            raise ServiceUnavailableError(f"Alternative summarization failed: {e}") from e

    def _request(self, model: str, text: str, parameters: dict, timeout: int) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        response = requests.post(
            f"{self.api_url}/{model}",
            json={"inputs": text, "parameters": parameters},
            headers=headers,
            timeout=timeout,
        )
        response.raise_for_status()
        data = response.json()
        item = data[0] if isinstance(data, list) and data else data
        summary = None
        if isinstance(item, dict):
            summary = item.get("summary_text") or item.get("generated_text")
        if not summary:
            raise ServiceUnavailableError(f"Empty summary from {model}")
        return summary


class TransformersSummarizer:
    """Summarizer running a local transformers pipeline."""

    def __init__(self, model: str = "facebook/bart-large-cnn"):
        self.model = model
        self._pipeline = None

    def summarize(self, text: str, min_length: int, max_length: int) -> str:
        if self._pipeline is None:
            from transformers import pipeline as hf_pipeline

            logger.info("Loading model: %s", self.model)
            self._pipeline = hf_pipeline("summarization", model=self.model)
        try:
            output = self._pipeline(
                text, max_length=max_length, min_length=min_length, truncation=True
            )
        except (RuntimeError, ValueError) as e:
            raise ServiceUnavailableError(f"Local summarization failed: {e}") from e
        return output[0]["summary_text"]


def prepare_text(text: str) -> str:
    """Collapse whitespace, drop boilerplate phrases, keep intro and conclusion of long texts."""
    cleaned = re.sub(r"\s+", " ", text).strip()
    for pattern in NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    if len(cleaned) > MAX_INPUT_LENGTH:
        half = MAX_INPUT_LENGTH // 2
        cleaned = cleaned[:half] + " " + cleaned[-half:]
    return cleaned.strip()


def clean_summary(summary: str) -> str:
    """End on terminal punctuation, collapse spaces, capitalize the first letter."""
    cleaned = summary.strip()

    if not re.search(r"[.!?]$", cleaned):
        last_punctuation = max(cleaned.rfind("."), cleaned.rfind("?"), cleaned.rfind("!"))
        if last_punctuation > 0:
            cleaned = cleaned[: last_punctuation + 1]
        else:
            cleaned += "."

    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if cleaned:
        cleaned = cleaned[0].upper() + cleaned[1:]
    return cleaned


def _score_sentence(sentence: str, index: int) -> float:
    score = 0.0
    lower = sentence.lower()

    if index < 3:
        score += 10 - index * 2

    score += sum(1 for word in IMPORTANT_WORDS if word in lower) * 2
    score += min(len(re.findall(r"\b[A-Z][a-z]+", sentence)), 5)
    score += min(len(re.findall(r"\d+", sentence)) * 1.5, 5)

    word_count = len(sentence.split())
    if 10 <= word_count <= 30:
        score += 3

    if re.search(r'"[^"]*"', sentence) or re.search(r"'[^']*'", sentence):
        score += 3

    return score


def extractive_summary(text: str, target_length: int) -> str:
    """Pick the highest-scoring sentences up to `target_length`, in original order."""
    sentences = SENTENCE_PATTERN.findall(text) or [text]

    scored = [
        (_score_sentence(sentence, index), index, sentence.strip())
        for index, sentence in enumerate(sentences)
    ]
    # Stable sort keeps earlier sentences first among equal scores.
    scored.sort(key=lambda item: -item[0])

    selected = []
    current_length = 0
    for score, index, sentence in scored:
        if current_length >= target_length:
            break
        selected.append((index, sentence))
        current_length += len(sentence)
        if len(selected) >= MAX_SUMMARY_SENTENCES:
            break

    selected.sort()
    return clean_summary(" ".join(sentence for _, sentence in selected))


def summary_lengths(text_length: int, min_length: int | None = None) -> tuple[int, int]:
    """Return (target, max) lengths for a text of `text_length` characters."""
    target = max(int(text_length * SUMMARY_RATIO), min_length or MIN_TARGET_LENGTH)
    return target, min(target + 100, MAX_SUMMARY_LENGTH)


def summary_quality(summary: str, original_text: str) -> int:
    """Score a summary from 0 to 100 on length ratio, structure and overlap."""
    if not summary or not original_text:
        return 0

    score = 0
    ratio = len(summary) / len(original_text)
    if 0.05 <= ratio <= 0.25:
        score += 30

    sentence_count = len(re.findall(r"[.!?]+", summary))
    if 2 <= sentence_count <= 5:
        score += 25

    original_words = set(re.findall(r"\b[a-z]{4,}\b", original_text.lower()))
    summary_words = set(re.findall(r"\b[a-z]{4,}\b", summary.lower()))
    if summary_words and len(summary_words & original_words) / len(summary_words) >= 0.5:
        score += 25

    if re.search(r"[.!?]$", summary):
        score += 10
    if re.match(r"[A-Z]", summary):
        score += 10

    return min(score, 100)


class SummaryService:
    """Summarizes text with an external service, falling back to extraction."""

    def __init__(
        self,
        summarizer: Summarizer | None = None,
        fallback: Callable[[str, int], str] = extractive_summary,
    ):
        self.summarizer = summarizer
        self.fallback = fallback

    def summarize(self, text: str, min_length: int | None = None) -> str:
        target, max_length = summary_lengths(len(text), min_length)
        prepared = prepare_text(text)

        if self.summarizer is not None:
            try:
                summary = clean_summary(self.summarizer.summarize(prepared, target, max_length))
                if len(summary) >= target * ACCEPTANCE_RATIO:
                    return summary
                logger.warning(
                    "AI summary too short (%d chars, target %d), using extractive summary",
                    len(summary),
                    target,
                )
            except ServiceUnavailableError as e:
                logger.warning("AI summarization unavailable, using extractive summary: %s", e)

        return self.fallback(prepared, target)

    def summarize_variants(self, text: str) -> SummaryVariants:
        """Short, medium and long summaries for different display contexts."""
        return SummaryVariants(
            short=self.summarize(text, 100),
            medium=self.summarize(text, 200),
            long=self.summarize(text, 300),
        )
