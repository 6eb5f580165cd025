"""PostgreSQL connection helpers for the snippet store."""

from __future__ import annotations

import os
from typing import Iterable, Set

import psycopg
from psycopg import Connection

from recall.exceptions import ConfigError, DatabaseError

DSN_ENV_VAR = "RECALL_DB_DSN"
_SQLALCHEMY_SCHEME = "postgresql+psycopg://"
_LIBPQ_SCHEMES = ("postgresql://", "postgres://")


def resolve_dsn(dsn: str | None = None) -> str:
    """Return ``dsn`` (or ``$RECALL_DB_DSN``) in the form psycopg accepts.

    A SQLAlchemy-style ``postgresql+psycopg://`` URL is accepted as well.
    """

    resolved = dsn or os.getenv(DSN_ENV_VAR)
    if not resolved:
        raise ConfigError(
            f"Database DSN is not configured. Set {DSN_ENV_VAR} or pass dsn explicitly."
        )
    if resolved.startswith(_SQLALCHEMY_SCHEME):
        resolved = "postgresql://" + resolved[len(_SQLALCHEMY_SCHEME):]
    return resolved


def sqlalchemy_url(dsn: str | None = None) -> str:
    """Return the DSN as a SQLAlchemy URL using the psycopg 3 driver."""

    resolved = resolve_dsn(dsn)
    for scheme in _LIBPQ_SCHEMES:
        if resolved.startswith(scheme):
            return _SQLALCHEMY_SCHEME + resolved[len(scheme):]
    raise ConfigError("Migrations need a URL-style DSN (postgresql://...)")


def get_connection(dsn: str | None = None) -> Connection:
    """Open a new connection; the caller commits and closes it."""

    resolved = resolve_dsn(dsn)
    try:
        return psycopg.connect(resolved)
    except psycopg.Error as exc:
        raise DatabaseError(f"Failed to connect to database: {exc}") from exc


def fetch_existing_tables(conn: Connection, table_names: Iterable[str]) -> Set[str]:
    """Return which of ``table_names`` exist in the current schema."""

    wanted = list(table_names)
    if not wanted:
        return set()

    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = current_schema()
              AND table_name = ANY(%s)
            """,
            (wanted,),
        )
        return {name for (name,) in cur.fetchall()}
