"""Keyword extraction and reading time."""

import math
import re
from collections import Counter

from common.utils import count_words

WORDS_PER_MINUTE = 200
MIN_TERM_LENGTH = 4

STOP_WORDS = frozenset(
    """
    about above after again against also among because been before being below
    between both could does doing down during each either else even ever every
    from further have having here hers herself himself into itself just like
    made make many more most much must myself never once only other ought ours
    ourselves over same shall should since some such than that their theirs
    them themselves then there these they this those though through under until
    upon very want were what when where whether which while whom whose will
    with within without would your yours yourself yourselves said says year
    years told according
    """.split()
)

TOKEN_PATTERN = re.compile(r"[a-z][a-z0-9'-]*[a-z0-9]|\d+")


def tokenize(text: str) -> list[str]:
    return TOKEN_PATTERN.findall(text.lower())


def extract_keywords(text: str, limit: int = 10) -> list[str]:
    """Top terms of a single document by term frequency.

    Terms must be longer than three characters, not purely numeric and not
    stop words. Ties keep first-occurrence order.
    """
    terms = [
        token
        for token in tokenize(text)
        if len(token) >= MIN_TERM_LENGTH and not token.isdigit() and token not in STOP_WORDS
    ]
    if not terms:
        return []

    counts = Counter(terms)
    total = len(terms)
    first_seen = {}
    for position, term in enumerate(terms):
        first_seen.setdefault(term, position)

    ranked = sorted(counts, key=lambda term: (-counts[term] / total, first_seen[term]))
    return ranked[:limit]


def reading_time_minutes(text: str) -> int:
    """Minutes to read `text` at WORDS_PER_MINUTE, at least one."""
    return max(1, math.ceil(count_words(text) / WORDS_PER_MINUTE))
