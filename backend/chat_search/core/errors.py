"""Exception hierarchy shared across ingestion and search."""

from __future__ import annotations


class ChatSearchError(Exception):
    """Base class for all Chat Search failures."""


class EmbeddingServiceError(ChatSearchError):
    """Embedding call returned a non-success status or an unusable body."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (status={self.status}): {self.body or ''}"


class StoreWriteError(ChatSearchError):
    """Vector store rejected or failed an upsert."""


class StoreQueryError(ChatSearchError):
    """Vector store failed to answer a query."""


class ChatFetchError(ChatSearchError):
    """Chat platform API call failed."""


class LedgerIOError(ChatSearchError):
    """Local ledger could not be read or written.

    Never caught inside the pipeline: continuing without a working ledger
    risks duplicate indexing or lost cursors.
    """


__all__ = [
    "ChatSearchError",
    "EmbeddingServiceError",
    "StoreWriteError",
    "StoreQueryError",
    "ChatFetchError",
    "LedgerIOError",
]
