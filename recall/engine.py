"""Primary entrypoint for logging snippets and asking about them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from recall.clients.huggingface import HuggingFaceEmbedder
from recall.clients.openrouter import OpenRouterClient
from recall.config import RecallConfig
from recall.exceptions import DimensionMismatchError, EmbeddingError
from recall.hybrid.models import SearchResult
from recall.hybrid.retrieval_core import RetrievalCore
from recall.services.answer_service import Answer, AnswerService
from recall.services.tagging_service import TaggingService
from recall.storage.store import PostgresSnippetStore

logger = logging.getLogger(__name__)


@dataclass
class LoggedSnippet:
    id: str
    text: str
    timestamp: datetime
    indexed: bool
    embedded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "indexed": self.indexed,
            "embedded": self.embedded,
        }


class RecallEngine:
    """Coordinates snippet logging, retrieval and answer generation.

    ``store`` must provide ``record_snippet`` in addition to the
    :class:`~recall.storage.store.SnippetStore` methods. Without an embedder
    every search is lexical-only.
    """

    def __init__(
        self,
        config: Optional[RecallConfig] = None,
        *,
        store: Optional[PostgresSnippetStore] = None,
        core: Optional[RetrievalCore] = None,
        embedder: Optional[HuggingFaceEmbedder] = None,
        answer_service: Optional[AnswerService] = None,
        tagging_service: Optional[TaggingService] = None,
    ) -> None:
        self.config = config or RecallConfig()
        self.store = store or PostgresSnippetStore(self.config.db_dsn)
        self.core = core or RetrievalCore.from_config(self.config, self.store)

        if embedder is None and self.config.hf_api_token:
            embedder = HuggingFaceEmbedder.from_config(self.config)
        self.embedder = embedder

        if answer_service is None or tagging_service is None:
            client = OpenRouterClient.from_config(self.config)
            answer_service = answer_service or AnswerService(client)
            tagging_service = tagging_service or TaggingService(client)
        self.answer_service = answer_service
        self.tagging_service = tagging_service

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def log_snippet(self, text: str, timestamp: Optional[datetime] = None) -> LoggedSnippet:
        """Persist ``text`` in the active session and index it.

        Indexing and embedding problems are logged; the snippet stays stored
        and is picked up by the next index rebuild.
        """

        if not text or not text.strip():
            raise ValueError("Text is required")
        text = text.strip()
        timestamp = timestamp or datetime.now(timezone.utc)

        snippet = self.store.record_snippet(text, start_time=timestamp, end_time=timestamp)
        indexed = self.core.add_snippet_text(snippet.id, snippet.text)
        if not indexed:
            logger.warning("Snippet %s stored but not indexed", snippet.id)

        embedded = False
        embedding = self._embed(text)
        if embedding is not None:
            try:
                embedded = self.core.add_snippet_embedding(snippet.id, embedding)
            except DimensionMismatchError as exc:
                logger.warning("Not indexing embedding for snippet %s: %s", snippet.id, exc)

        return LoggedSnippet(
            id=snippet.id,
            text=snippet.text,
            timestamp=timestamp,
            indexed=indexed,
            embedded=embedded,
        )

    def end_session(self) -> None:
        """Delete all sessions, transcripts and snippets and clear the indexes."""

        self.core.reset()
        logger.info("Session data cleared")

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------
    def search(self, query: str, k: Optional[int] = None) -> List[SearchResult]:
        return self.core.search(query, self._embed(query), k=k or self.config.default_k)

    def ask(self, question: str) -> Answer:
        if not question or not question.strip():
            raise ValueError("Question is required")

        embedding = self._embed(question)
        results = self.core.search(question, embedding, k=self.config.default_k)
        return self.answer_service.answer(question, results, keyword_only=embedding is None)

    def tag(self, text: str) -> List[str]:
        return self.tagging_service.tag(text)

    def stats(self) -> Dict[str, Dict[str, int]]:
        return self.core.stats()

    def _embed(self, text: str) -> Optional[List[float]]:
        if self.embedder is None:
            return None
        try:
            embedding = self.embedder.embed(text)
        except EmbeddingError as exc:
            logger.warning("Embedding failed, falling back to keyword search: %s", exc)
            return None
        if len(embedding) != self.core.dimension:
            logger.warning(
                "Embedding service returned %d dimensions (expected %d); ignoring it",
                len(embedding),
                self.core.dimension,
            )
            return None
        return embedding


__all__ = ["LoggedSnippet", "RecallEngine"]
