"""Custom exception hierarchy for session recall."""


class RecallError(Exception):
    """Base exception for session recall errors."""


class ConfigError(RecallError):
    """Raised when configuration is invalid or incomplete."""


class DatabaseError(RecallError):
    """Raised when snippet store operations fail."""


class SearchIndexError(RecallError):
    """Raised when indexing or search operations fail."""


class IndexFinalizedError(SearchIndexError):
    """Raised when adding to a lexical index that has already been finalized.

    The only way to add more documents is to rebuild the index from the store.
    """


class DimensionMismatchError(SearchIndexError, ValueError):
    """Raised when a vector does not match the index dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class EmbeddingError(RecallError):
    """Raised when an embedding cannot be produced for a text."""


class AnswerError(RecallError):
    """Raised when the language model response cannot be used."""
