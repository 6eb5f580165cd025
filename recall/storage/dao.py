"""Data-access layer for sessions, transcripts and snippets."""

from __future__ import annotations

import uuid
from typing import Dict, Sequence

from psycopg import Connection
from psycopg.rows import dict_row
from psycopg.types.json import Json

from recall.storage.db import fetch_existing_tables
from recall.storage.models import Session, Snippet, Transcript

SNIPPET_TABLES = ("snippets", "transcripts", "sessions")

_SNIPPET_COLUMNS = """
    id, session_id, transcript_id, text, start_time, end_time, embedding
"""


def generate_id() -> str:
    """Return a new opaque record identifier."""

    return uuid.uuid4().hex


def get_active_session(conn: Connection) -> Session | None:
    """Return the most recently created session that has not ended."""

    sql = """
        SELECT id, title, created_at, ended_at
        FROM sessions
        WHERE ended_at IS NULL
        ORDER BY created_at DESC
        LIMIT 1
    """
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql)
        row = cur.fetchone()
    return Session.model_validate(row) if row else None


def insert_session(conn: Connection, session: Session) -> Session:
    sql = """
        INSERT INTO sessions (id, title)
        VALUES (%s, %s)
        RETURNING id, title, created_at, ended_at
    """
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql, (session.id, session.title))
        row = cur.fetchone()
    return Session.model_validate(row)


def insert_transcript(conn: Connection, transcript: Transcript) -> Transcript:
    sql = """
        INSERT INTO transcripts (id, session_id, text, timestamp, audio_path)
        VALUES (%s, %s, %s, %s, %s)
        RETURNING id, session_id, text, timestamp, audio_path
    """
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            sql,
            (
                transcript.id,
                transcript.session_id,
                transcript.text,
                transcript.timestamp,
                transcript.audio_path,
            ),
        )
        row = cur.fetchone()
    return Transcript.model_validate(row)


def insert_snippet(conn: Connection, snippet: Snippet) -> Snippet:
    sql = f"""
        INSERT INTO snippets (id, session_id, transcript_id, text, start_time, end_time, embedding)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING {_SNIPPET_COLUMNS}
    """
    embedding = Json(snippet.embedding) if snippet.embedding is not None else None
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(
            sql,
            (
                snippet.id,
                snippet.session_id,
                snippet.transcript_id,
                snippet.text,
                snippet.start_time,
                snippet.end_time,
                embedding,
            ),
        )
        row = cur.fetchone()
    return Snippet.model_validate(row)


def list_snippets(conn: Connection) -> list[Snippet]:
    """Fetch every snippet ordered by start time."""

    sql = f"SELECT {_SNIPPET_COLUMNS} FROM snippets ORDER BY start_time ASC, id ASC"
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql)
        rows = cur.fetchall()
    return [Snippet.model_validate(row) for row in rows]


def list_snippets_with_embedding(conn: Connection) -> list[Snippet]:
    """Fetch snippets that carry a stored embedding, ordered by start time."""

    sql = f"""
        SELECT {_SNIPPET_COLUMNS}
        FROM snippets
        WHERE embedding IS NOT NULL
        ORDER BY start_time ASC, id ASC
    """
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql)
        rows = cur.fetchall()
    return [Snippet.model_validate(row) for row in rows]


def get_snippets_by_ids(conn: Connection, snippet_ids: Sequence[str]) -> list[Snippet]:
    """Fetch snippets by identifier; unknown identifiers are ignored."""

    if not snippet_ids:
        return []

    sql = f"SELECT {_SNIPPET_COLUMNS} FROM snippets WHERE id = ANY(%s)"
    with conn.cursor(row_factory=dict_row) as cur:
        cur.execute(sql, (list(snippet_ids),))
        rows = cur.fetchall()
    return [Snippet.model_validate(row) for row in rows]


def update_snippet_embedding(
    conn: Connection, snippet_id: str, embedding: Sequence[float]
) -> bool:
    """Store ``embedding`` on a snippet. Returns ``False`` if no row matched."""

    sql = "UPDATE snippets SET embedding = %s WHERE id = %s"
    with conn.cursor() as cur:
        cur.execute(sql, (Json([float(value) for value in embedding]), snippet_id))
        return cur.rowcount > 0


def delete_all(conn: Connection) -> Dict[str, int]:
    """Delete snippets, transcripts and sessions in dependency order.

    Tables that do not exist yet (fresh database) are skipped.
    """

    existing = fetch_existing_tables(conn, SNIPPET_TABLES)
    removed: Dict[str, int] = {}
    with conn.transaction():
        with conn.cursor() as cur:
            for table in SNIPPET_TABLES:
                if table not in existing:
                    continue
                cur.execute(f"DELETE FROM {table}")
                removed[table] = cur.rowcount
    return removed
