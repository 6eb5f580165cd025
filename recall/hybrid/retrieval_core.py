from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from recall.config import RecallConfig
from recall.storage.store import SnippetStore

from .coordinator import IndexCoordinator
from .fusion import FusionConfig, fuse_results
from .models import SearchResult
from .vector_index import EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)


class RetrievalCore:
    """Single entry point for indexing snippets and hybrid search.

    Create one per process and share it; the indexes are built lazily from
    the store on first use.
    """

    def __init__(
        self,
        store: SnippetStore,
        *,
        coordinator: Optional[IndexCoordinator] = None,
        fusion: Optional[FusionConfig] = None,
    ) -> None:
        self.store = store
        self.coordinator = coordinator or IndexCoordinator(store)
        self.fusion = fusion or FusionConfig()

    @classmethod
    def from_config(cls, config: RecallConfig, store: SnippetStore) -> "RetrievalCore":
        coordinator = IndexCoordinator(
            store,
            bm25_k1=config.bm25_k1,
            bm25_b=config.bm25_b,
            bm25_min_documents=config.bm25_min_documents,
        )
        fusion = FusionConfig(
            lexical_weight=config.lexical_weight,
            vector_weight=config.vector_weight,
        )
        return cls(store, coordinator=coordinator, fusion=fusion)

    @property
    def dimension(self) -> int:
        return self.coordinator.dimension

    def add_snippet_text(self, snippet_id: str, text: str) -> bool:
        return self.coordinator.add_document(snippet_id, text)

    def add_snippet_embedding(self, snippet_id: str, embedding: Sequence[float]) -> bool:
        """Raises :class:`~recall.exceptions.DimensionMismatchError` on a bad vector."""

        return self.coordinator.add_embedding(snippet_id, embedding)

    def search(
        self,
        query_text: str,
        query_embedding: Optional[Sequence[float]] = None,
        k: int = 5,
    ) -> List[SearchResult]:
        """Hybrid search; without an embedding this is lexical-only.

        Never raises: failures are logged and yield an empty list.
        """

        if k <= 0:
            return []

        try:
            lexical_hits = []
            if query_text and query_text.strip():
                lexical_hits = self.coordinator.search_lexical(query_text, k)

            vector_hits = []
            if query_embedding is not None:
                if len(query_embedding) == self.dimension:
                    vector_hits = self.coordinator.search_vector(query_embedding, k)
                else:
                    logger.warning(
                        "Ignoring query embedding of dimension %d (expected %d)",
                        len(query_embedding),
                        self.dimension,
                    )

            return fuse_results(lexical_hits, vector_hits, self.store, k=k, config=self.fusion)
        except Exception as exc:
            logger.warning("Hybrid search failed: %s", exc)
            return []

    def reset(self) -> None:
        """Delete every snippet from the store and rebuild empty indexes."""

        try:
            self.store.delete_all_snippets()
        finally:
            self.coordinator.reset()

    def stats(self) -> Dict[str, Dict[str, int]]:
        return self.coordinator.stats()


__all__ = ["EMBEDDING_DIMENSION", "RetrievalCore"]
