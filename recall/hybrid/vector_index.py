from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from recall.exceptions import DimensionMismatchError

# all-MiniLM-L6-v2 produces 384-dimensional embeddings.
EMBEDDING_DIMENSION = 384

VectorHit = Tuple[int, float]


class FaissVectorIndex:
    """Append-only exact L2 index over fixed-dimension vectors.

    Positions are assigned sequentially from zero. Vectors are never removed
    individually; discard the whole index to start over.
    """

    def __init__(self, dimension: int = EMBEDDING_DIMENSION) -> None:
        self.dimension = dimension
        self._faiss = _load_faiss()
        self._index: Any = self._faiss.IndexFlatL2(dimension)
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def append(self, vector: Sequence[float]) -> int:
        """Store ``vector`` and return its position."""

        matrix = self._as_matrix(vector)
        position = self._count
        self._index.add(matrix)
        self._count += 1
        return position

    def search(self, query: Sequence[float], *, k: int = 10) -> List[VectorHit]:
        """Return up to ``k`` ``(position, squared_distance)`` pairs, nearest first."""

        matrix = self._as_matrix(query)
        search_k = min(k, self._count)
        if search_k <= 0:
            return []

        distances, indices = self._index.search(matrix, search_k)

        results: List[VectorHit] = []
        for distance, idx in zip(distances[0], indices[0]):
            if idx == -1:
                continue
            results.append((int(idx), float(distance)))
        return results

    def stats(self) -> Dict[str, int]:
        return {"count": self._count, "dimension": self.dimension}

    def _as_matrix(self, vector: Sequence[float]) -> np.ndarray:
        matrix = np.asarray(vector, dtype="float32").reshape(1, -1)
        if matrix.shape[1] != self.dimension:
            raise DimensionMismatchError(self.dimension, matrix.shape[1])
        return np.ascontiguousarray(matrix)


__all__ = ["EMBEDDING_DIMENSION", "FaissVectorIndex", "VectorHit"]


def _load_faiss():
    try:
        import faiss
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ImportError(
            "Vector search requires the dependency 'faiss-cpu'. "
            "Install it with `pip install faiss-cpu`."
        ) from exc
    return faiss
