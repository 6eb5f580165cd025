from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from recall import cli
from recall.clients.base import UpstreamError
from recall.engine import LoggedSnippet
from recall.exceptions import DatabaseError
from recall.hybrid.models import Provenance, SearchResult
from recall.services.answer_service import Answer

KICKOFF = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)
RESULT = SearchResult("s1", "Red card", 1.0, Provenance.LEXICAL, "session-1", KICKOFF)


class FakeEngine:
    instances: list["FakeEngine"] = []

    def __init__(self, config):
        self.config = config
        self.calls: list[tuple] = []
        FakeEngine.instances.append(self)

    def log_snippet(self, text, timestamp=None):
        self.calls.append(("log", text, timestamp))
        return LoggedSnippet(id="s1", text=text, timestamp=timestamp or KICKOFF, indexed=True)

    def ask(self, question):
        self.calls.append(("ask", question))
        return Answer("A red card.", [RESULT], keyword_only=True)

    def search(self, query, k=None):
        self.calls.append(("search", query, k))
        return [RESULT]

    def tag(self, text):
        return ["red card"]

    def stats(self):
        return {"lexical": {"document_count": 1, "vocabulary_size": 2}}

    def end_session(self):
        self.calls.append(("end-session",))


@pytest.fixture(autouse=True)
def fake_engine(monkeypatch):
    FakeEngine.instances = []
    monkeypatch.setattr(cli, "RecallEngine", FakeEngine)
    return FakeEngine


def _run(capsys, *argv) -> tuple[int, object]:
    code = cli.main(list(argv))
    out = capsys.readouterr().out
    return code, json.loads(out) if out else None


def test_log_with_timestamp(capsys):
    code, payload = _run(capsys, "log", "Red card", "--timestamp", "2026-10-19T15:00:00+00:00")

    assert code == 0
    assert payload == {
        "id": "s1",
        "text": "Red card",
        "timestamp": "2026-10-19T15:00:00+00:00",
        "indexed": True,
        "embedded": False,
    }
    assert FakeEngine.instances[0].calls == [("log", "Red card", KICKOFF)]


def test_ask_prints_answer_and_sources(capsys):
    code, payload = _run(capsys, "ask", "Who was sent off?")

    assert code == 0
    assert payload["answer"] == "A red card."
    assert payload["keyword_only"] is True
    assert payload["sources"][0]["id"] == "s1"


def test_search_passes_k(capsys):
    code, payload = _run(capsys, "search", "red card", "-k", "2")

    assert code == 0
    assert payload == [RESULT.to_dict()]
    assert FakeEngine.instances[0].calls == [("search", "red card", 2)]


def test_tag_stats_and_end_session(capsys):
    assert _run(capsys, "tag", "Straight red") == (0, {"tags": ["red card"]})
    assert _run(capsys, "stats")[1]["lexical"]["document_count"] == 1
    assert _run(capsys, "end-session") == (0, {"cleared": True})


def test_migrate_runs_alembic(monkeypatch, capsys):
    seen = []
    monkeypatch.setattr(cli, "run_migrations", lambda dsn: seen.append(dsn))
    monkeypatch.setenv("RECALL_DB_DSN", "postgresql://localhost/recall")

    assert _run(capsys, "migrate") == (0, {"migrated": True})
    assert seen == ["postgresql://localhost/recall"]


def test_errors_return_non_zero(monkeypatch, capsys):
    def broken(self, question):
        raise DatabaseError("connection refused")

    monkeypatch.setattr(FakeEngine, "ask", broken)

    assert cli.main(["ask", "anything"]) == 1
    assert "connection refused" in capsys.readouterr().err


def test_command_is_required():
    with pytest.raises(SystemExit):
        cli.main([])


def test_client_errors_return_non_zero(monkeypatch, capsys):
    def broken(self, text):
        raise UpstreamError("OpenRouter request failed: connection reset")

    monkeypatch.setattr(FakeEngine, "tag", broken)

    assert cli.main(["tag", "Straight red"]) == 1
    assert "connection reset" in capsys.readouterr().err
