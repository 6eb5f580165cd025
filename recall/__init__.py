"""Session-scoped snippet logging with hybrid lexical and vector recall."""

from __future__ import annotations

from typing import List, Optional

from .config import RecallConfig
from .engine import LoggedSnippet, RecallEngine
from .hybrid.models import SearchResult
from .hybrid.retrieval_core import RetrievalCore
from .services.answer_service import Answer
from .storage.store import PostgresSnippetStore

_default_core: Optional[RetrievalCore] = None
_default_engine: Optional[RecallEngine] = None


def get_default_core() -> RetrievalCore:
    """Return the process-wide ``RetrievalCore`` backed by the configured Postgres store."""

    global _default_core
    if _default_core is None:
        config = RecallConfig()
        _default_core = RetrievalCore.from_config(config, PostgresSnippetStore(config.db_dsn))
    return _default_core


def get_default_engine() -> RecallEngine:
    """Return the process-wide ``RecallEngine``, creating it lazily from the environment."""

    global _default_engine
    if _default_engine is None:
        core = get_default_core()
        _default_engine = RecallEngine(RecallConfig(), store=core.store, core=core)
    return _default_engine


def log_snippet(text: str) -> LoggedSnippet:
    """Store and index a snippet in the active session."""

    return get_default_engine().log_snippet(text)


def search_snippets(query: str, k: Optional[int] = None) -> List[SearchResult]:
    """Hybrid search over everything logged so far."""

    return get_default_engine().search(query, k=k)


def ask(question: str) -> Answer:
    """Answer a question from the logged snippets."""

    return get_default_engine().ask(question)


def end_session() -> None:
    """Delete all logged data and clear the search indexes."""

    get_default_engine().end_session()


__all__ = [
    "Answer",
    "LoggedSnippet",
    "RecallConfig",
    "RecallEngine",
    "RetrievalCore",
    "SearchResult",
    "ask",
    "end_session",
    "get_default_core",
    "get_default_engine",
    "log_snippet",
    "search_snippets",
]
