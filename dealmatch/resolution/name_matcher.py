"""Pluggable person-name similarity used by the contact resolver."""

from __future__ import annotations

import re
from typing import Protocol

from rapidfuzz import fuzz
from rapidfuzz.utils import default_process

DEFAULT_THRESHOLD = 0.8


class NameMatcher(Protocol):
    """Scores two free-text names in [0.0, 1.0]."""

    def similarity(self, a: str, b: str) -> float: ...


class TokenSortNameMatcher:
    """Normalized indel similarity over case-folded, token-sorted names.

    Word order and punctuation are ignored, so "Smith, John" equals "John Smith".
    """

    def similarity(self, a: str, b: str) -> float:
        if not a or not b:
            return 0.0
        return fuzz.token_sort_ratio(a, b, processor=default_process) / 100.0


class TrigramNameMatcher:
    """Port of PostgreSQL pg_trgm ``similarity()``: Jaccard over padded word trigrams.

    Stricter than ``TokenSortNameMatcher`` on short names ("Jon Smith" vs
    "John Smith" scores 0.62 here).
    """

    _word_pattern = re.compile(r"[a-z0-9]+")

    def _trigrams(self, value: str) -> set[str]:
        grams: set[str] = set()
        for word in self._word_pattern.findall(value.lower()):
            padded = f"  {word} "
            grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
        return grams

    def similarity(self, a: str, b: str) -> float:
        left = self._trigrams(a or "")
        right = self._trigrams(b or "")
        if not left or not right:
            return 0.0
        return len(left & right) / len(left | right)


def get_default_matcher() -> NameMatcher:
    return TokenSortNameMatcher()
