import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pytest

# Ensure repository root is on the import path for local package imports during tests.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from recall.exceptions import DatabaseError  # noqa: E402
from recall.storage.models import Snippet  # noqa: E402

BASE_TIME = datetime(2026, 10, 19, 15, 0, tzinfo=timezone.utc)


class InMemorySnippetStore:
    """Dict-backed store; flip ``available`` to simulate an outage."""

    def __init__(self) -> None:
        self.snippets: Dict[str, Snippet] = {}
        self.available = True
        self.calls: List[str] = []
        self._logged = 0

    def add(self, snippet_id: str, text: str, *, embedding: Any = None) -> Snippet:
        snippet = Snippet(
            id=snippet_id,
            session_id="session-1",
            text=text,
            start_time=BASE_TIME + timedelta(minutes=len(self.snippets)),
            embedding=embedding,
        )
        self.snippets[snippet_id] = snippet
        return snippet

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if not self.available:
            raise DatabaseError("store unavailable")

    def list_all_snippets(self) -> List[Snippet]:
        self._check("list_all_snippets")
        return sorted(self.snippets.values(), key=lambda snippet: snippet.start_time)

    def list_snippets_with_embedding(self) -> List[Snippet]:
        self._check("list_snippets_with_embedding")
        return [
            snippet
            for snippet in sorted(self.snippets.values(), key=lambda snippet: snippet.start_time)
            if snippet.embedding is not None
        ]

    def get_snippets_by_ids(self, ids: Iterable[str]) -> List[Snippet]:
        self._check("get_snippets_by_ids")
        return [self.snippets[snippet_id] for snippet_id in ids if snippet_id in self.snippets]

    def set_snippet_embedding(self, snippet_id: str, embedding: Sequence[float]) -> None:
        self._check("set_snippet_embedding")
        if snippet_id not in self.snippets:
            raise DatabaseError(f"Snippet {snippet_id} does not exist")
        self.snippets[snippet_id] = self.snippets[snippet_id].model_copy(
            update={"embedding": list(embedding)}
        )

    def delete_all_snippets(self) -> None:
        self._check("delete_all_snippets")
        self.snippets.clear()

    def record_snippet(
        self, text: str, *, start_time: datetime, end_time: Optional[datetime] = None
    ) -> Snippet:
        self._check("record_snippet")
        self._logged += 1
        snippet = Snippet(
            id=f"logged-{self._logged}",
            session_id="session-1",
            transcript_id=f"transcript-{self._logged}",
            text=text,
            start_time=start_time,
            end_time=end_time or start_time,
        )
        self.snippets[snippet.id] = snippet
        return snippet


@pytest.fixture
def store() -> InMemorySnippetStore:
    return InMemorySnippetStore()
