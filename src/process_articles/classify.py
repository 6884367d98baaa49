"""Category assignment: zero-shot classification with keyword-rule fallback."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from common.errors import ServiceUnavailableError
from process_articles.models import ClassificationLabel

logger = logging.getLogger(__name__)

CLASSIFICATION_PREFIX_CHARS = 500

CATEGORY_LABELS = [
    "politics",
    "world news",
    "business",
    "technology",
    "sports",
    "entertainment",
    "science",
    "health",
    "lifestyle",
    "opinion",
]

LABEL_TO_SLUG = {
    "politics": "politics",
    "world news": "world",
    "business": "business",
    "technology": "technology",
    "sports": "sports",
    "entertainment": "entertainment",
    "science": "science",
    "health": "health",
    "lifestyle": "lifestyle",
    "opinion": "opinion",
}

CATEGORY_KEYWORDS = {
    "top": [
        "breaking", "top story", "headline", "feature", "lead", "spotlight", "trending", "exclusive",
    ],
    "politics": [
        "political", "election", "government", "parliament", "congress", "senate", "policy",
        "minister", "campaign", "vote", "bill",
    ],
    "world": [
        "world", "international", "global", "foreign", "country", "abroad", "nation",
        "diplomacy", "overseas",
    ],
    "business": [
        "business", "economy", "market", "financial", "stock", "trade", "company", "industry",
        "corporate", "startup", "investment",
    ],
    "technology": [
        "technology", "tech", "software", "hardware", "ai", "digital", "computer", "internet",
        "cyber", "innovation", "gadget", "app", "mobile",
    ],
    "sports": [
        "sport", "football", "basketball", "soccer", "cricket", "tennis", "game", "player",
        "tournament", "league", "match", "athlete", "score", "champion",
    ],
    "entertainment": [
        "entertainment", "movie", "music", "celebrity", "film", "actor", "hollywood", "show",
        "tv", "concert", "series", "theater",
    ],
    "science": [
        "science", "research", "study", "scientist", "discovery", "experiment", "space",
        "astronomy", "biology", "physics", "chemistry",
    ],
    "health": [
        "health", "medical", "medicine", "doctor", "disease", "treatment", "patient", "hospital",
        "wellness", "fitness", "nutrition", "mental",
    ],
    "lifestyle": [
        "lifestyle", "fashion", "food", "travel", "culture", "art", "design", "home", "living",
        "wellbeing",
    ],
    "opinion": [
        "opinion", "editorial", "commentary", "viewpoint", "column", "analysis", "perspective",
        "think piece",
    ],
    "local": [
        "local", "city", "town", "community", "district", "neighborhood", "nearby", "regional",
        "area", "municipal",
    ],
}

MIN_KEYWORD_MATCHES = 2


class Classifier(Protocol):
    """External zero-shot classification capability."""

    def classify(self, text: str, labels: list[str]) -> list[ClassificationLabel]:
        """Return labels sorted by descending score or raise ServiceUnavailableError."""
        ...


def _parse_zero_shot(data) -> list[ClassificationLabel]:
    # The inference API answers either {"labels": [...], "scores": [...]}
    # or [{"label": ..., "score": ...}, ...].
    if isinstance(data, dict) and "labels" in data:
        results = [
            ClassificationLabel(label=label, score=float(score))
            for label, score in zip(data["labels"], data.get("scores", []))
        ]
    elif isinstance(data, list):
        results = [
            ClassificationLabel(label=item["label"], score=float(item["score"]))
            for item in data
            if isinstance(item, dict) and "label" in item
        ]
    else:
        raise ServiceUnavailableError(f"Unexpected classification response: {data!r}")
    return sorted(results, key=lambda result: result.score, reverse=True)


class HuggingFaceClassifier:
    """Zero-shot classifier backed by the Hugging Face Inference API."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None,
        model: str = "facebook/bart-large-mnli",
        timeout: int = 30,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def classify(self, text: str, labels: list[str]) -> list[ClassificationLabel]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            response = requests.post(
                f"{self.api_url}/{self.model}",
                json={"inputs": text, "parameters": {"candidate_labels": labels}},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return _parse_zero_shot(response.json())
        except (requests.RequestException, ValueError) as e:
            raise ServiceUnavailableError(f"Classification failed: {e}") from e


class TransformersClassifier:
    """Zero-shot classifier running a local transformers pipeline."""

    def __init__(self, model: str = "facebook/bart-large-mnli"):
        self.model = model
        self._pipeline = None

    def classify(self, text: str, labels: list[str]) -> list[ClassificationLabel]:
        if self._pipeline is None:
            from transformers import pipeline as hf_pipeline

            logger.info("Loading model: %s", self.model)
            self._pipeline = hf_pipeline("zero-shot-classification", model=self.model)
        try:
            return _parse_zero_shot(self._pipeline(text, candidate_labels=labels))
        except (RuntimeError, ValueError) as e:
            raise ServiceUnavailableError(f"Local classification failed: {e}") from e


def build_classification_text(title: str, content: str) -> str:
    return f"{title}. {content[:CLASSIFICATION_PREFIX_CHARS]}"


def keyword_category_candidates(keywords: list[str], source_name: str | None) -> list[str]:
    """Category slugs suggested by the rule table, strongest first.

    Source-name hints come before keyword overlaps; a keyword overlap needs
    at least MIN_KEYWORD_MATCHES rule words contained in the keywords.
    """
    candidates: list[str] = []

    source_lower = (source_name or "").lower()
    if source_lower:
        for category, rule_words in CATEGORY_KEYWORDS.items():
            if any(word in source_lower for word in rule_words):
                candidates.append(category)

    keywords_lower = [keyword.lower() for keyword in keywords]
    for category, rule_words in CATEGORY_KEYWORDS.items():
        matches = sum(1 for word in rule_words if any(word in keyword for keyword in keywords_lower))
        if matches >= MIN_KEYWORD_MATCHES and category not in candidates:
            candidates.append(category)

    return candidates


class CategoryAssigner:
    """Resolves an article to a category id.

    Order: classifier top label, keyword/source-name rules, default category.
    """

    def __init__(self, categories, classifier: Classifier | None = None):
        self.categories = categories
        self.classifier = classifier

    def classify_slug(self, title: str, content: str) -> Optional[str]:
        if self.classifier is None:
            return None
        try:
            results = self.classifier.classify(
                build_classification_text(title, content), CATEGORY_LABELS
            )
        except ServiceUnavailableError as e:
            logger.warning("AI classification unavailable, using keyword rules: %s", e)
            return None

        if not results:
            logger.warning("No classification result for %r", title)
            return None

        top = results[0]
        logger.info("Classified %r as %s (%.3f)", title, top.label, top.score)
        return LABEL_TO_SLUG.get(top.label)

    def assign(
        self,
        title: str,
        content: str,
        keywords: list[str],
        source_name: str | None,
    ) -> tuple[Optional[str], Optional[str]]:
        """Return (category slug, category id); both may be None."""
        slug = self.classify_slug(title, content)
        if slug:
            category_id = self.categories.id_for_slug(slug)
            if category_id:
                return slug, category_id

        for slug in keyword_category_candidates(keywords, source_name):
            category_id = self.categories.id_for_slug(slug)
            if category_id:
                logger.info("Assigned %r to %s by keyword rules", title, slug)
                return slug, category_id

        logger.info("Assigning %r to the default category", title)
        return None, self.categories.default_id()
