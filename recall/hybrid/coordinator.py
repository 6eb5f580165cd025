"""Keeps the lexical and vector indexes consistent with the snippet store."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from recall.exceptions import DimensionMismatchError, IndexFinalizedError
from recall.storage.models import Snippet
from recall.storage.store import SnippetStore

from .bm25_index import BM25Index
from .vector_index import EMBEDDING_DIMENSION, FaissVectorIndex

logger = logging.getLogger(__name__)


class IdMapping:
    """Internal index id -> snippet id table for one index generation."""

    def __init__(self) -> None:
        self._snippet_ids: Dict[int, str] = {}
        self._members: set[str] = set()

    def __len__(self) -> int:
        return len(self._snippet_ids)

    def __contains__(self, snippet_id: object) -> bool:
        return snippet_id in self._members

    def bind(self, internal_id: int, snippet_id: str) -> None:
        self._snippet_ids[internal_id] = snippet_id
        self._members.add(snippet_id)

    def resolve(self, hits: Iterable[Tuple[int, float]]) -> List[Tuple[str, float]]:
        """Translate ``(internal_id, value)`` hits, keeping the first hit per snippet."""

        resolved: List[Tuple[str, float]] = []
        seen: set[str] = set()
        for internal_id, value in hits:
            snippet_id = self._snippet_ids.get(internal_id)
            if snippet_id is None or snippet_id in seen:
                continue
            seen.add(snippet_id)
            resolved.append((snippet_id, value))
        return resolved


@dataclass
class IndexGeneration:
    """Both indexes plus the mappings that describe them.

    A generation is replaced as a whole; ids from one generation are never
    resolved against another. ``guard`` is held only for the duration of a
    single append or search on the published generation, since neither
    index tolerates a search running alongside an in-place append.
    """

    lexical: BM25Index
    vector: FaissVectorIndex
    lexical_ids: IdMapping = field(default_factory=IdMapping)
    vector_ids: IdMapping = field(default_factory=IdMapping)
    guard: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


def coerce_embedding(raw: Any, dimension: int = EMBEDDING_DIMENSION) -> List[float]:
    """Parse a stored embedding into a float list of length ``dimension``.

    Serialized JSON text is accepted. Raises ``ValueError`` (or
    :class:`~recall.exceptions.DimensionMismatchError`) for anything unusable.
    """

    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    vector = np.asarray(raw, dtype="float64")
    if vector.ndim != 1:
        raise ValueError(f"Embedding must be a flat vector, got shape {vector.shape}")
    if vector.shape[0] != dimension:
        raise DimensionMismatchError(dimension, vector.shape[0])
    if not np.all(np.isfinite(vector)):
        raise ValueError("Embedding contains non-finite values")
    return vector.tolist()


class IndexCoordinator:
    """Owns the current :class:`IndexGeneration` and rebuilds it from the store.

    Writers are serialized by a lock, so at most one rebuild is in flight.
    Readers never take that lock once a generation exists: they search whatever
    generation is current, which during a rebuild is the previous one. Appends
    to the current generation and searches on it share the generation's
    ``guard``, which a rebuild never holds.
    """

    def __init__(
        self,
        store: SnippetStore,
        *,
        dimension: int = EMBEDDING_DIMENSION,
        bm25_k1: float = 1.2,
        bm25_b: float = 0.75,
        bm25_min_documents: int = 3,
    ) -> None:
        self.store = store
        self.dimension = dimension
        self._bm25_options = {"k1": bm25_k1, "b": bm25_b, "min_documents": bm25_min_documents}
        self._generation: Optional[IndexGeneration] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_initialized(self) -> bool:
        return self._generation is not None

    def initialize(self) -> None:
        """Bulk load both indexes from the store if not done already."""

        with self._lock:
            self._ensure_generation()

    def reset(self) -> None:
        """Discard both indexes and mappings and reload from the store."""

        with self._lock:
            self._generation = self._load_generation()
        logger.info("Search indexes reset")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_document(self, snippet_id: str, text: str) -> bool:
        """Index the text of a snippet that has already been persisted.

        A finalized lexical index cannot grow, so the whole generation is
        rebuilt from the store, which by now contains the new snippet.
        """

        if not text or not text.strip():
            logger.warning("Skipping empty text for snippet %s", snippet_id)
            return False

        try:
            with self._lock:
                generation = self._ensure_generation()
                if snippet_id in generation.lexical_ids:
                    return True

                with generation.guard:
                    try:
                        internal_id = generation.lexical.add_document(text)
                    except IndexFinalizedError:
                        internal_id = None
                    else:
                        generation.lexical_ids.bind(internal_id, snippet_id)
                        generation.lexical.finalize()

                if internal_id is None:
                    return self._rebuild_including(snippet_id, text)
                return True
        except Exception:
            logger.exception("Error adding document for snippet %s", snippet_id)
            return False

    def add_embedding(self, snippet_id: str, embedding: Sequence[float]) -> bool:
        """Persist ``embedding`` on the snippet and append it to the vector index.

        Raises :class:`~recall.exceptions.DimensionMismatchError` before
        touching the store or the index. Vectors that a rebuild would skip
        (non-finite values, nested shapes) are rejected with ``False``.
        """

        try:
            vector = coerce_embedding(embedding, self.dimension)
        except DimensionMismatchError:
            raise
        except (TypeError, ValueError) as exc:
            logger.warning("Rejecting embedding for snippet %s: %s", snippet_id, exc)
            return False

        try:
            with self._lock:
                generation = self._ensure_generation()
                self.store.set_snippet_embedding(snippet_id, vector)
                with generation.guard:
                    position = generation.vector.append(vector)
                    generation.vector_ids.bind(position, snippet_id)
        except Exception as exc:
            logger.warning("Error adding embedding for snippet %s: %s", snippet_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def search_lexical(self, query: str, k: int) -> List[Tuple[str, float]]:
        """Return ``(snippet_id, bm25_score)`` pairs, best first."""

        try:
            generation = self._current()
            with generation.guard:
                return generation.lexical_ids.resolve(generation.lexical.search(query, k=k))
        except Exception as exc:
            logger.warning("Lexical search failed: %s", exc)
            return []

    def search_vector(self, query: Sequence[float], k: int) -> List[Tuple[str, float]]:
        """Return ``(snippet_id, squared_l2_distance)`` pairs, nearest first."""

        try:
            generation = self._current()
            with generation.guard:
                return generation.vector_ids.resolve(generation.vector.search(query, k=k))
        except Exception as exc:
            logger.warning("Vector search failed: %s", exc)
            return []

    def stats(self) -> Dict[str, Dict[str, int]]:
        generation = self._current()
        with generation.guard:
            return {
                "lexical": generation.lexical.stats(),
                "vector": generation.vector.stats(),
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _current(self) -> IndexGeneration:
        generation = self._generation
        if generation is None:
            with self._lock:
                generation = self._ensure_generation()
        return generation

    def _ensure_generation(self) -> IndexGeneration:
        # Caller holds self._lock.
        if self._generation is None:
            self._generation = self._load_generation()
        return self._generation

    def _rebuild_including(self, snippet_id: str, text: str) -> bool:
        # Caller holds self._lock.
        previous = self._generation
        previous_count = len(previous.lexical_ids) if previous is not None else 0
        logger.info("Lexical index is finalized; rebuilding to add snippet %s", snippet_id)

        try:
            generation = self._build_generation()
        except Exception as exc:
            logger.warning(
                "Rebuild for snippet %s failed, keeping the current indexes: %s", snippet_id, exc
            )
            return False
        self._generation = generation

        if self._retrievable(generation, snippet_id, text):
            logger.info(
                "Snippet %s included in rebuilt index (%d -> %d documents)",
                snippet_id,
                previous_count,
                len(generation.lexical_ids),
            )
            return True

        logger.warning("Snippet %s may not be included in the search index", snippet_id)
        return False

    @staticmethod
    def _retrievable(generation: IndexGeneration, snippet_id: str, text: str) -> bool:
        if snippet_id not in generation.lexical_ids:
            return False
        # Text made only of stop words is indexed but can never match a query.
        if not generation.lexical.tokenizer(text):
            return True
        hits = generation.lexical.search(text, k=len(generation.lexical))
        return any(found == snippet_id for found, _ in generation.lexical_ids.resolve(hits))

    def _new_generation(self) -> IndexGeneration:
        return IndexGeneration(
            lexical=BM25Index(**self._bm25_options),
            vector=FaissVectorIndex(self.dimension),
        )

    def _load_generation(self) -> IndexGeneration:
        try:
            return self._build_generation()
        except Exception as exc:
            logger.warning("Could not load snippets from the store, starting empty: %s", exc)
            return self._new_generation()

    def _build_generation(self) -> IndexGeneration:
        """Load both indexes from the store. Store errors propagate."""

        snippets: List[Snippet] = list(self.store.list_all_snippets())
        embedded: List[Snippet] = list(self.store.list_snippets_with_embedding())
        generation = self._new_generation()

        for snippet in snippets:
            if not snippet.text or not snippet.text.strip():
                continue
            internal_id = generation.lexical.add_document(snippet.text)
            generation.lexical_ids.bind(internal_id, snippet.id)

        for snippet in embedded:
            if snippet.embedding is None:
                continue
            try:
                vector = coerce_embedding(snippet.embedding, self.dimension)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping embedding for snippet %s: %s", snippet.id, exc)
                continue
            position = generation.vector.append(vector)
            generation.vector_ids.bind(position, snippet.id)

        if len(generation.lexical):
            generation.lexical.finalize()

        logger.info(
            "Search indexes loaded with %d documents and %d vectors",
            len(generation.lexical),
            len(generation.vector),
        )
        return generation


__all__ = ["IdMapping", "IndexCoordinator", "IndexGeneration", "coerce_embedding"]
