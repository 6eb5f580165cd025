from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from recall.clients.huggingface import HuggingFaceEmbedder
from recall.clients.openrouter import OpenRouterClient
from recall.config import RecallConfig
from recall.engine import RecallEngine
from recall.exceptions import EmbeddingError
from recall.hybrid.coordinator import IndexCoordinator
from recall.hybrid.models import Provenance
from recall.hybrid.retrieval_core import RetrievalCore
from recall.services.answer_service import AnswerService
from recall.services.tagging_service import TaggingService

DIM = 4
KICKOFF = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class KeywordEmbedder:
    """Maps a few football words onto axes of a tiny embedding space."""

    axes = ("card", "save", "goal", "pass")

    def __init__(self, fail: bool = False, dimension: int = DIM):
        self.fail = fail
        self.dimension = dimension
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("service down")
        vector = [0.0] * self.dimension
        for position, word in enumerate(self.axes):
            if word in text.lower() and position < self.dimension:
                vector[position] = 1.0
        return vector


class StubChatClient:
    app_title = "VAR Vendetta"

    def __init__(self, reply: str):
        self.reply = reply
        self.calls: list[list[dict]] = []

    def chat(self, messages, *, temperature, max_tokens, title=None):
        self.calls.append(messages)
        return self.reply


def _config(**overrides) -> RecallConfig:
    values = {"db_dsn": None, "hf_api_token": None, "openrouter_api_key": None, "default_k": 3}
    values.update(overrides)
    return RecallConfig(**values)


def _engine(store, *, embedder=None, reply: str = "An answer.") -> RecallEngine:
    chat = StubChatClient(reply)
    return RecallEngine(
        _config(),
        store=store,
        core=RetrievalCore(store, coordinator=IndexCoordinator(store, dimension=DIM)),
        embedder=embedder,
        answer_service=AnswerService(chat),
        tagging_service=TaggingService(chat),
    )


def test_log_snippet_stores_indexes_and_embeds(store):
    engine = _engine(store, embedder=KeywordEmbedder())

    logged = engine.log_snippet("  Yellow card for dissent  ", KICKOFF)

    assert logged.text == "Yellow card for dissent"
    assert logged.timestamp == KICKOFF
    assert logged.indexed is True
    assert logged.embedded is True
    stored = store.snippets[logged.id]
    assert stored.start_time == KICKOFF == stored.end_time
    assert stored.embedding == [1.0, 0.0, 0.0, 0.0]

    results = engine.search("yellow card")
    assert results[0].snippet_id == logged.id
    assert results[0].source is Provenance.HYBRID


def test_log_snippet_defaults_timestamp_to_now(store):
    logged = _engine(store).log_snippet("Great save")

    assert logged.timestamp.tzinfo is not None
    assert logged.to_dict()["timestamp"] == logged.timestamp.isoformat()


def test_log_snippet_rejects_empty_text(store):
    with pytest.raises(ValueError):
        _engine(store).log_snippet("   ")
    assert store.snippets == {}


def test_embedding_failure_is_not_fatal(store, caplog):
    engine = _engine(store, embedder=KeywordEmbedder(fail=True))

    with caplog.at_level(logging.WARNING):
        logged = engine.log_snippet("Own goal from a back pass", KICKOFF)

    assert logged.indexed is True
    assert logged.embedded is False
    assert "falling back to keyword search" in caplog.text
    assert engine.stats()["vector"]["count"] == 0


def test_wrong_dimension_embedding_is_ignored(store, caplog):
    engine = _engine(store, embedder=KeywordEmbedder(dimension=DIM + 2))

    with caplog.at_level(logging.WARNING):
        logged = engine.log_snippet("Clutch goal", KICKOFF)

    assert logged.embedded is False
    assert "returned 6 dimensions" in caplog.text


def test_many_snippets_stay_searchable_across_rebuilds(store):
    engine = _engine(store, embedder=KeywordEmbedder())
    texts = ["Bad pass in midfield", "Red card for the tackle", "Great save low down", "Late goal"]
    logged = [engine.log_snippet(text, KICKOFF) for text in texts]

    assert all(item.indexed for item in logged)
    assert engine.stats()["lexical"]["document_count"] == 4
    assert engine.stats()["vector"]["count"] == 4
    assert engine.search("late goal", k=1)[0].snippet_id == logged[3].id


def test_ask_with_embeddings(store):
    engine = _engine(store, embedder=KeywordEmbedder(), reply="It was a red card.")
    engine.log_snippet("Red card for the tackle", KICKOFF)

    answer = engine.ask("Who got the card?")

    assert answer.answer == "It was a red card."
    assert answer.keyword_only is False
    assert [source.text for source in answer.sources] == ["Red card for the tackle"]


def test_ask_without_embedder_is_keyword_only(store):
    engine = _engine(store)
    engine.log_snippet("Red card for the tackle", KICKOFF)

    answer = engine.ask("red card?")

    assert answer.keyword_only is True
    assert len(answer.sources) == 1


def test_ask_rejects_empty_question(store):
    with pytest.raises(ValueError):
        _engine(store).ask("")


def test_ask_with_nothing_logged(store):
    answer = _engine(store).ask("What happened?")

    assert answer.sources == []
    assert "no supporting context" in answer.answer


def test_search_uses_default_k(store):
    engine = _engine(store)
    for minute in range(5):
        engine.log_snippet(f"goal number {minute}", KICKOFF)

    assert len(engine.search("goal")) == 3
    assert len(engine.search("goal", k=5)) == 5


def test_tag_delegates_to_tagging_service(store):
    engine = _engine(store, reply='["save", "clutch"]')

    assert engine.tag("Clutch save in the last minute") == ["save", "clutch"]


def test_end_session_clears_everything(store):
    engine = _engine(store, embedder=KeywordEmbedder())
    engine.log_snippet("Red card for the tackle", KICKOFF)

    engine.end_session()

    assert store.snippets == {}
    assert engine.stats()["lexical"]["document_count"] == 0
    assert engine.stats()["vector"]["count"] == 0
    assert engine.search("card") == []


def test_default_collaborators_come_from_config(store):
    engine = RecallEngine(
        _config(openrouter_api_key="or-key", openrouter_model="test/model"), store=store
    )

    assert engine.embedder is None
    assert isinstance(engine.answer_service.client, OpenRouterClient)
    assert engine.answer_service.client is engine.tagging_service.client
    assert engine.answer_service.client.model == "test/model"
    assert engine.core.store is store

    engine = RecallEngine(_config(hf_api_token="hf-token"), store=store)
    assert isinstance(engine.embedder, HuggingFaceEmbedder)
