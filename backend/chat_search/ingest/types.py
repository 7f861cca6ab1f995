"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(slots=True, frozen=True)
class MessageRef:
    """Where a message lives. ``(channel_id, message_id)`` alone is unique."""

    guild_id: int
    channel_id: int
    message_id: int


@dataclass(slots=True)
class SparseVector:
    indices: list[int]
    values: list[float]

    def __post_init__(self) -> None:
        if len(self.indices) != len(self.values):
            raise ValueError("Sparse vector indices and values differ in length")


@dataclass(slots=True)
class Embeddings:
    """Dense and/or sparse representation of one text."""

    dense: list[float] | None = None
    sparse: SparseVector | None = None

    @property
    def is_empty(self) -> bool:
        return self.dense is None and self.sparse is None


@dataclass(slots=True)
class IndexedDocument:
    """Point written to the vector store for one message."""

    id: str
    vector: Embeddings
    payload: dict[str, Any]

    @classmethod
    def for_message(
        cls,
        point_id: str,
        ref: MessageRef,
        text: str,
        author: str,
        vector: Embeddings,
    ) -> "IndexedDocument":
        payload = {
            "message": {"id": str(ref.message_id), "text": text},
            "channel": {"id": str(ref.channel_id)},
            "guild": {"id": str(ref.guild_id)},
            "author": {"username": author},
        }
        return cls(id=point_id, vector=vector, payload=payload)


class IndexOutcome(str, Enum):
    INDEXED = "indexed"
    SKIPPED = "skipped"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class BackfillStats:
    """Aggregated backfill statistics."""

    channels: int = 0
    failed_channels: int = 0
    pages: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)

    def record(self, outcome: IndexOutcome) -> None:
        self.outcomes[outcome.value] = self.outcomes.get(outcome.value, 0) + 1

    def merge(self, other: "BackfillStats") -> None:
        self.channels += other.channels
        self.failed_channels += other.failed_channels
        self.pages += other.pages
        for key, count in other.outcomes.items():
            self.outcomes[key] = self.outcomes.get(key, 0) + count

    def to_dict(self) -> dict[str, Any]:
        return {
            "channels": self.channels,
            "failed_channels": self.failed_channels,
            "pages": self.pages,
            "outcomes": dict(self.outcomes),
        }


__all__ = [
    "MessageRef",
    "SparseVector",
    "Embeddings",
    "IndexedDocument",
    "IndexOutcome",
    "BackfillStats",
]
