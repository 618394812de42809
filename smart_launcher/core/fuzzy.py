"""Fuzzy text matching in the spirit of match-sorter ranking tiers.

Exact, prefix, word and acronym matches are decided on the text itself;
scattered and misspelled matches are scored with rapidfuzz.
"""

import re
from typing import Callable, Iterable, List, Sequence, Tuple, TypeVar

from rapidfuzz import fuzz, process
from rapidfuzz.distance import LCSseq

T = TypeVar("T")

CASE_SENSITIVE_EQUAL = 8
EQUAL = 7
STARTS_WITH = 6
WORD_STARTS_WITH = 5
CONTAINS = 4
ACRONYM = 3
# In-order subsequence, scored between MATCHES and MATCHES + 1
MATCHES = 2
NEAR_MISS = 1
NO_MATCH = 0

NEAR_MISS_CUTOFF = 80
WORD_SEPARATORS = re.compile(r"[\s\-_./]+")


def _acronym(text: str) -> str:
    return "".join(word[0] for word in WORD_SEPARATORS.split(text) if word)


def _subsequence_rank(text: str, query: str) -> float:
    """Query characters appear in order; tighter texts score higher."""
    if LCSseq.similarity(query, text) < len(query):
        return NO_MATCH
    return MATCHES + LCSseq.normalized_similarity(query, text)


def _near_miss(text: str, query: str) -> bool:
    """Typo tolerance against the whole text and each of its words."""
    choices = [text] + [word for word in WORD_SEPARATORS.split(text) if word]
    match = process.extractOne(
        query, choices, scorer=fuzz.ratio, score_cutoff=NEAR_MISS_CUTOFF
    )
    return match is not None


def rank_item(text: str, query: str) -> float:
    """Rank how well ``text`` matches ``query``; 0 means no match."""
    if not query:
        return STARTS_WITH
    if not text:
        return NO_MATCH
    if text == query:
        return CASE_SENSITIVE_EQUAL

    text_lower = text.lower()
    query_lower = query.lower()
    if text_lower == query_lower:
        return EQUAL
    if text_lower.startswith(query_lower):
        return STARTS_WITH
    if any(word.startswith(query_lower) for word in WORD_SEPARATORS.split(text_lower)):
        return WORD_STARTS_WITH
    if query_lower in text_lower:
        return CONTAINS
    if len(query_lower) > 1 and query_lower in _acronym(text_lower):
        return ACRONYM

    subsequence = _subsequence_rank(text_lower, query_lower)
    if subsequence:
        return subsequence
    if _near_miss(text_lower, query_lower):
        return NEAR_MISS
    return NO_MATCH


def best_rank(values: Iterable[str], query: str) -> Tuple[float, int]:
    """Best rank over several keys and the index of the key that produced it."""
    best, best_index = NO_MATCH, -1
    for index, value in enumerate(values):
        rank = rank_item(value, query)
        if rank > best:
            best, best_index = rank, index
    return best, best_index


def fuzzy_filter(
    items: Sequence[T], query: str, keys: Callable[[T], Iterable[str]]
) -> List[T]:
    """Keep items matching the query, best matches first.

    Ties keep the input order, so the result is deterministic.
    """
    ranked = []
    for position, item in enumerate(items):
        rank, key_index = best_rank(keys(item), query)
        if rank > NO_MATCH:
            ranked.append((-rank, key_index, position, item))
    ranked.sort(key=lambda entry: entry[:3])
    return [entry[3] for entry in ranked]
