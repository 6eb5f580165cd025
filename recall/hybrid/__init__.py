"""Hybrid lexical + vector retrieval components."""

from .bm25_index import BM25Index
from .coordinator import IndexCoordinator, IndexGeneration
from .fusion import FusionConfig, fuse_results
from .models import Provenance, SearchResult
from .retrieval_core import RetrievalCore
from .tokenizer import STOP_WORDS, tokenize
from .vector_index import EMBEDDING_DIMENSION, FaissVectorIndex

__all__ = [
    "BM25Index",
    "EMBEDDING_DIMENSION",
    "FaissVectorIndex",
    "FusionConfig",
    "IndexCoordinator",
    "IndexGeneration",
    "Provenance",
    "RetrievalCore",
    "STOP_WORDS",
    "SearchResult",
    "fuse_results",
    "tokenize",
]
