from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class Provenance(str, Enum):
    """Which index (or both) produced a search result."""

    LEXICAL = "lexical"
    VECTOR = "vector"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class SearchResult:
    """A ranked snippet with its fused score and provenance."""

    snippet_id: str
    text: str
    score: float
    source: Provenance
    session_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.snippet_id,
            "text": self.text,
            "score": self.score,
            "source": self.source.value,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


__all__ = ["Provenance", "SearchResult"]
