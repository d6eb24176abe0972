"""Exceptions raised by the docs index (store, search, indexing)."""

from typing import Any


class DocsIndexError(Exception):
    """Base class for docs index errors.

    details carries the collection / file_path / operation the failure happened in,
    so the caller can report it without a traceback.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = {k: v for k, v in (details or {}).items() if v is not None}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            context = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({context})"
        return self.message


class EmbeddingDimensionError(DocsIndexError, ValueError):
    """Embedding length does not match the store's dimensionality."""


class StoreError(DocsIndexError):
    """The vector store failed to read or write."""


class StoreClosedError(StoreError):
    """Operation attempted after VectorStore.close()."""


class IndexingError(DocsIndexError):
    """An indexing pass aborted (store write failed)."""
