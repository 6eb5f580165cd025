"""Merge lexical and vector hits into a single calibrated ranking.

BM25 scores and L2 distances live on unrelated scales, so each list is first
normalized onto ``[0, 1]`` within the current result set:

* lexical: ``score / max_score``
* vector: ``(max_distance - distance) / (max_distance - min_distance)``, or
  ``1.0`` for every hit when all distances are equal

A snippet found by both indexes scores ``lexical_weight * lexical +
vector_weight * vector``; a snippet found by only one keeps that index's
normalized score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from recall.storage.store import SnippetStore

from .models import Provenance, SearchResult


@dataclass
class FusionConfig:
    lexical_weight: float = 0.6
    vector_weight: float = 0.4


def _first_per_id(hits: Sequence[Tuple[str, float]]) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for snippet_id, value in hits:
        if snippet_id:
            values.setdefault(snippet_id, float(value))
    return values


def fuse_results(
    lexical_hits: Sequence[Tuple[str, float]],
    vector_hits: Sequence[Tuple[str, float]],
    store: SnippetStore,
    *,
    k: int = 5,
    config: FusionConfig | None = None,
) -> List[SearchResult]:
    """Fuse ``(snippet_id, bm25_score)`` and ``(snippet_id, distance)`` hits.

    Snippets are resolved with a single store lookup; ids that no longer
    resolve are dropped. Ties keep the order in which ids were first seen
    (lexical hits before vector hits).
    """

    config = config or FusionConfig()
    if k <= 0:
        return []

    lexical = _first_per_id(lexical_hits)
    vector = _first_per_id(vector_hits)

    order = list(dict.fromkeys([*lexical, *vector]))
    if not order:
        return []

    snippets = {snippet.id: snippet for snippet in store.get_snippets_by_ids(set(order))}
    order = [snippet_id for snippet_id in order if snippet_id in snippets]
    lexical = {key: value for key, value in lexical.items() if key in snippets}
    vector = {key: value for key, value in vector.items() if key in snippets}

    max_score = max(lexical.values(), default=0.0)
    if max_score <= 0:
        max_score = 1.0

    distances = list(vector.values())
    min_distance = min(distances, default=0.0)
    distance_range = max(distances, default=0.0) - min_distance

    def vector_goodness(distance: float) -> float:
        if distance_range == 0:
            return 1.0
        return 1.0 - (distance - min_distance) / distance_range

    results: List[SearchResult] = []
    for snippet_id in order:
        in_lexical = snippet_id in lexical
        in_vector = snippet_id in vector

        if in_lexical and in_vector:
            score = (
                config.lexical_weight * (lexical[snippet_id] / max_score)
                + config.vector_weight * vector_goodness(vector[snippet_id])
            )
            source = Provenance.HYBRID
        elif in_lexical:
            score = lexical[snippet_id] / max_score
            source = Provenance.LEXICAL
        else:
            score = vector_goodness(vector[snippet_id])
            source = Provenance.VECTOR

        snippet = snippets[snippet_id]
        results.append(
            SearchResult(
                snippet_id=snippet_id,
                text=snippet.text,
                score=score,
                source=source,
                session_id=snippet.session_id,
                timestamp=snippet.start_time,
            )
        )

    results.sort(key=lambda item: item.score, reverse=True)
    return results[:k]


__all__ = ["FusionConfig", "fuse_results"]
