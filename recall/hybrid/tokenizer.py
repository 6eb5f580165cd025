from __future__ import annotations

import re
from typing import Callable, FrozenSet, List

TokenizeFn = Callable[[str], List[str]]

STOP_WORDS: FrozenSet[str] = frozenset(
    {"the", "and", "a", "an", "in", "on", "at", "to", "for", "with", "by", "of", "is", "was", "are"}
)

# Apostrophes and hyphens survive so that "don't" and "one-two" stay whole.
_PUNCTUATION = re.compile(r"[^\w\s'-]")


def tokenize(text: str | None, *, stopwords: FrozenSet[str] = STOP_WORDS) -> List[str]:
    """Split ``text`` into lowercase index terms.

    Punctuation other than apostrophes and hyphens becomes whitespace, tokens of
    a single character are discarded, and so are members of ``stopwords``.
    """

    if not text:
        return []

    tokens = _PUNCTUATION.sub(" ", text.lower()).split()
    return [token for token in tokens if len(token) > 1 and token not in stopwords]


__all__ = ["STOP_WORDS", "TokenizeFn", "tokenize"]
