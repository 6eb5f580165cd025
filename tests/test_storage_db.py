import pytest

from recall.exceptions import ConfigError
from recall.storage.db import get_connection, resolve_dsn, sqlalchemy_url
from recall.storage.migrations import get_alembic_config


def test_resolve_dsn_prefers_argument(monkeypatch):
    monkeypatch.setenv("RECALL_DB_DSN", "postgresql://env/recall")

    assert resolve_dsn("postgresql://arg/recall") == "postgresql://arg/recall"
    assert resolve_dsn() == "postgresql://env/recall"


def test_resolve_dsn_accepts_sqlalchemy_urls():
    assert resolve_dsn("postgresql+psycopg://u@h/db") == "postgresql://u@h/db"


def test_missing_dsn_is_a_config_error(monkeypatch):
    monkeypatch.delenv("RECALL_DB_DSN", raising=False)

    with pytest.raises(ConfigError):
        resolve_dsn()
    with pytest.raises(ConfigError):
        get_connection()


def test_sqlalchemy_url_uses_psycopg_driver():
    assert sqlalchemy_url("postgres://u@h/db") == "postgresql+psycopg://u@h/db"
    assert sqlalchemy_url("postgresql+psycopg://u@h/db") == "postgresql+psycopg://u@h/db"

    with pytest.raises(ConfigError):
        sqlalchemy_url("host=localhost dbname=recall")


def test_alembic_config_escapes_percent_signs():
    config = get_alembic_config("postgresql://u:p%40ss@h/db")

    assert config.get_main_option("sqlalchemy.url") == "postgresql+psycopg://u:p%40ss@h/db"
