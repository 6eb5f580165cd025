"""Run the Alembic schema migrations from code (used by ``recall migrate``)."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic import command
from alembic.config import Config

from recall.storage.db import DSN_ENV_VAR, sqlalchemy_url

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
ALEMBIC_INI = PROJECT_ROOT / "alembic.ini"


def get_alembic_config(dsn: str | None = None) -> Config:
    """Alembic config pointing at this repository's ``alembic/`` scripts.

    Without a DSN (argument or environment) the URL from ``alembic.ini`` is used.
    """

    config = Config(str(ALEMBIC_INI))
    config.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    if dsn or os.getenv(DSN_ENV_VAR):
        # set_main_option interpolates, so a literal % (e.g. in a password) must be doubled.
        config.set_main_option("sqlalchemy.url", sqlalchemy_url(dsn).replace("%", "%%"))
    return config


def run_migrations(dsn: str | None = None, revision: str = "head") -> None:
    """Upgrade the sessions/transcripts/snippets schema to ``revision``."""

    command.upgrade(get_alembic_config(dsn), revision)
    logger.info("Database schema upgraded to %s", revision)
