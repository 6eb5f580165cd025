"""Snippet store boundary consumed by the retrieval core."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence

from psycopg import Connection

from recall.exceptions import DatabaseError
from recall.storage import dao
from recall.storage.db import get_connection
from recall.storage.models import Session, Snippet, Transcript

logger = logging.getLogger(__name__)


class SnippetStore(Protocol):
    """Document collection of snippets keyed by snippet id."""

    def list_all_snippets(self) -> List[Snippet]:
        """Return every snippet ordered by ascending start time."""

    def list_snippets_with_embedding(self) -> List[Snippet]:
        """Return snippets whose embedding column is populated."""

    def get_snippets_by_ids(self, ids: Iterable[str]) -> List[Snippet]:
        """Return the snippets that still exist among ``ids``."""

    def set_snippet_embedding(self, snippet_id: str, embedding: Sequence[float]) -> None:
        """Persist ``embedding`` on the snippet record."""

    def delete_all_snippets(self) -> None:
        """Remove every snippet (and the session data around it)."""


class PostgresSnippetStore:
    """:class:`SnippetStore` backed by PostgreSQL.

    A short-lived connection is opened per call; driver errors surface as
    :class:`~recall.exceptions.DatabaseError`.
    """

    def __init__(self, dsn: str | None = None) -> None:
        self.dsn = dsn

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        conn = get_connection(self.dsn)
        try:
            yield conn
            conn.commit()
        except DatabaseError:
            conn.rollback()
            raise
        except Exception as exc:
            conn.rollback()
            raise DatabaseError(f"Snippet store operation failed: {exc}") from exc
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Retrieval core boundary
    # ------------------------------------------------------------------
    def list_all_snippets(self) -> List[Snippet]:
        with self._connection() as conn:
            return dao.list_snippets(conn)

    def list_snippets_with_embedding(self) -> List[Snippet]:
        with self._connection() as conn:
            return dao.list_snippets_with_embedding(conn)

    def get_snippets_by_ids(self, ids: Iterable[str]) -> List[Snippet]:
        with self._connection() as conn:
            return dao.get_snippets_by_ids(conn, list(ids))

    def set_snippet_embedding(self, snippet_id: str, embedding: Sequence[float]) -> None:
        with self._connection() as conn:
            if not dao.update_snippet_embedding(conn, snippet_id, embedding):
                raise DatabaseError(f"Snippet {snippet_id} does not exist")

    def delete_all_snippets(self) -> None:
        with self._connection() as conn:
            removed = dao.delete_all(conn)
        logger.info("Deleted session data: %s", removed)

    # ------------------------------------------------------------------
    # Logging-side writes
    # ------------------------------------------------------------------
    def record_snippet(
        self,
        text: str,
        *,
        start_time: datetime,
        end_time: Optional[datetime] = None,
    ) -> Snippet:
        """Persist a transcript and its snippet in the active session."""

        with self._connection() as conn:
            session = self._active_session(conn, now=start_time)
            transcript = dao.insert_transcript(
                conn,
                Transcript(
                    id=dao.generate_id(),
                    session_id=session.id,
                    text=text,
                    timestamp=start_time,
                ),
            )
            return dao.insert_snippet(
                conn,
                Snippet(
                    id=dao.generate_id(),
                    session_id=session.id,
                    transcript_id=transcript.id,
                    text=text,
                    start_time=start_time,
                    end_time=end_time or start_time,
                ),
            )

    def _active_session(self, conn: Connection, *, now: datetime) -> Session:
        session = dao.get_active_session(conn)
        if session is not None:
            return session
        return dao.insert_session(
            conn,
            Session(id=dao.generate_id(), title=f"Session {now.date().isoformat()}"),
        )


__all__ = ["PostgresSnippetStore", "SnippetStore"]
