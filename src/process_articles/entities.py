"""Named entity extraction into people, places and organizations."""

from __future__ import annotations

import logging
import re

import spacy

from process_articles.models import ExtractedEntities

logger = logging.getLogger(__name__)

MAX_PER_BUCKET = 10
MAX_TEXT_CHARS = 100_000

LABEL_BUCKETS = {
    "PERSON": "people",
    "GPE": "places",
    "LOC": "places",
    "ORG": "organizations",
}


def _normalize_entity_name(text: str) -> str:
    name = re.sub(r"\s+", " ", text).strip()
    if name.endswith("'s") or name.endswith("’s"):
        name = name[:-2]
    return re.sub(r"[^\w]+$", "", name).strip()


class EntityExtractor:
    """spaCy-backed extractor. The model loads on first use."""

    def __init__(self, model: str = "en_core_web_sm"):
        self.model = model
        self._nlp = None
        self._unavailable = False

    def _load(self):
        if self._nlp is None and not self._unavailable:
            try:
                logger.info("Loading spaCy model: %s", self.model)
                self._nlp = spacy.load(self.model, disable=["parser", "lemmatizer"])
            except OSError as e:
                logger.warning("spaCy model %s unavailable, entities disabled: %s", self.model, e)
                self._unavailable = True
        return self._nlp

    def extract(self, text: str) -> ExtractedEntities:
        nlp = self._load()
        if nlp is None or not text:
            return ExtractedEntities()

        buckets: dict[str, list[str]] = {"people": [], "places": [], "organizations": []}
        seen: dict[str, set[str]] = {bucket: set() for bucket in buckets}

        doc = nlp(text[:MAX_TEXT_CHARS])
        for ent in doc.ents:
            bucket = LABEL_BUCKETS.get(ent.label_)
            if bucket is None:
                continue
            name = _normalize_entity_name(ent.text)
            key = name.lower()
            if not name or key in seen[bucket] or len(buckets[bucket]) >= MAX_PER_BUCKET:
                continue
            seen[bucket].add(key)
            buckets[bucket].append(name)

        return ExtractedEntities(**buckets)
