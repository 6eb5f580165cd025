from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from recall.exceptions import IndexFinalizedError

from .tokenizer import TokenizeFn, tokenize

logger = logging.getLogger(__name__)

LexicalHit = Tuple[int, float]


@dataclass
class _OpenCorpus:
    """Mutable builder state: accepts documents, scored on demand."""

    term_freqs: List[Counter[str]] = field(default_factory=list)
    doc_lengths: List[int] = field(default_factory=list)
    doc_freqs: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    total_doc_len: int = 0

    def add(self, tokens: List[str]) -> int:
        doc_id = len(self.term_freqs)
        term_freq = Counter(tokens)
        self.term_freqs.append(term_freq)
        self.doc_lengths.append(len(tokens))
        self.total_doc_len += len(tokens)
        for token in term_freq:
            self.doc_freqs[token] += 1
        return doc_id

    def freeze(self, *, k1: float, b: float) -> "_FinalizedCorpus":
        doc_count = len(self.term_freqs)
        avg_doc_len = self.total_doc_len / doc_count if self.total_doc_len else 1.0

        postings: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
        for doc_id, term_freq in enumerate(self.term_freqs):
            for token, tf in term_freq.items():
                postings[token].append((doc_id, tf))

        idf = {
            token: math.log(1 + (doc_count - df + 0.5) / (df + 0.5))
            for token, df in self.doc_freqs.items()
        }
        length_norms = tuple(
            k1 * (1 - b + b * doc_len / avg_doc_len) for doc_len in self.doc_lengths
        )
        return _FinalizedCorpus(
            postings={token: tuple(entries) for token, entries in postings.items()},
            idf=idf,
            length_norms=length_norms,
            k1=k1,
        )


@dataclass(frozen=True)
class _FinalizedCorpus:
    """Read-only inverted index with precomputed idf and length norms."""

    postings: Dict[str, Tuple[Tuple[int, int], ...]]
    idf: Dict[str, float]
    length_norms: Tuple[float, ...]
    k1: float

    @property
    def document_count(self) -> int:
        return len(self.length_norms)

    def score(self, query_tokens: List[str]) -> Dict[int, float]:
        scores: Dict[int, float] = defaultdict(float)
        for token in dict.fromkeys(query_tokens):
            entries = self.postings.get(token)
            if not entries:
                continue
            idf = self.idf[token]
            for doc_id, tf in entries:
                scores[doc_id] += idf * (tf * (self.k1 + 1)) / (tf + self.length_norms[doc_id])
        return scores


class BM25Index:
    """BM25 index with an explicit, one-way finalize step.

    Documents are accepted while the index is open. :meth:`finalize` freezes
    the corpus into an inverted index; after that :meth:`add_document` raises
    :class:`~recall.exceptions.IndexFinalizedError` and the only way to grow
    the index is to build a new one.
    """

    def __init__(
        self,
        *,
        tokenizer: TokenizeFn | None = None,
        k1: float = 1.2,
        b: float = 0.75,
        min_documents: int = 3,
    ) -> None:
        self.tokenizer: TokenizeFn = tokenizer or tokenize
        self.k1 = k1
        self.b = b
        self.min_documents = min_documents
        self._state: _OpenCorpus | _FinalizedCorpus = _OpenCorpus()

    @property
    def is_finalized(self) -> bool:
        return isinstance(self._state, _FinalizedCorpus)

    def __len__(self) -> int:
        if isinstance(self._state, _FinalizedCorpus):
            return self._state.document_count
        return len(self._state.term_freqs)

    def add_document(self, text: str) -> int:
        """Index ``text`` and return its internal document id."""

        if isinstance(self._state, _FinalizedCorpus):
            raise IndexFinalizedError(
                "Cannot add documents after finalize; rebuild the index instead"
            )
        return self._state.add(self.tokenizer(text))

    def finalize(self) -> bool:
        """Freeze the corpus. Returns ``False`` when there are too few documents."""

        if isinstance(self._state, _FinalizedCorpus):
            return True

        doc_count = len(self._state.term_freqs)
        if doc_count < self.min_documents:
            logger.info(
                "Not finalizing lexical index: %d document(s), %d required",
                doc_count,
                self.min_documents,
            )
            return False

        self._state = self._state.freeze(k1=self.k1, b=self.b)
        logger.info("Lexical index finalized with %d documents", doc_count)
        return True

    def search(self, query: str, *, k: int = 10) -> List[LexicalHit]:
        """Return up to ``k`` ``(doc_id, score)`` pairs, best first."""

        if not query or k <= 0 or len(self) == 0:
            return []

        try:
            corpus = self._state
            if isinstance(corpus, _OpenCorpus):
                corpus = corpus.freeze(k1=self.k1, b=self.b)
            scores = corpus.score(self.tokenizer(query))
        except Exception as exc:
            logger.warning("Lexical search failed: %s", exc)
            return []

        ranked = sorted(
            ((doc_id, score) for doc_id, score in scores.items() if score > 0),
            key=lambda item: (-item[1], item[0]),
        )
        return ranked[:k]

    def stats(self) -> Dict[str, int]:
        if isinstance(self._state, _FinalizedCorpus):
            vocabulary_size = len(self._state.postings)
        else:
            vocabulary_size = len(self._state.doc_freqs)
        return {"document_count": len(self), "vocabulary_size": vocabulary_size}


__all__ = ["BM25Index", "LexicalHit"]
