"""In-process vector store with the same contract as the Qdrant gateway."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Sequence

from chat_search.core.errors import StoreQueryError, StoreWriteError
from chat_search.ingest.types import Embeddings, IndexedDocument, SparseVector
from chat_search.retrieval.hybrid import reciprocal_rank_fusion
from chat_search.retrieval.vector_store import DENSE_VECTOR, QueryOptions, StoreHit, query_branches

_TOKEN_RE = re.compile(r"\w+")


@dataclass(slots=True)
class _StoredPoint:
    dense: list[float] | None
    sparse: dict[int, float]
    payload: dict[str, Any]


class InMemoryVectorStore:
    """Simple in-memory index; cosine for dense, dot product for sparse.

    Upserting an existing id overwrites it, like the real backend.
    """

    def __init__(self, dim: int = 384, branch_limit: int = 20) -> None:
        self.dim = dim
        self.branch_limit = branch_limit
        self._points: dict[str, _StoredPoint] = {}

    @property
    def size(self) -> int:
        return len(self._points)

    def get(self, point_id: str) -> dict[str, Any] | None:
        point = self._points.get(point_id)
        return point.payload if point else None

    async def ensure_collection(self) -> None:
        return None

    async def upsert(self, document: IndexedDocument) -> None:
        dense = document.vector.dense
        if dense is not None and len(dense) != self.dim:
            raise StoreWriteError(f"Point {document.id} has {len(dense)} dimensions, collection expects {self.dim}")
        sparse = document.vector.sparse
        self._points[document.id] = _StoredPoint(
            dense=list(dense) if dense is not None else None,
            sparse=dict(zip(sparse.indices, sparse.values)) if sparse is not None else {},
            payload=document.payload,
        )

    async def query(self, embeddings: Embeddings, options: QueryOptions) -> list[StoreHit]:
        candidates = {
            point_id: point
            for point_id, point in self._points.items()
            if _matches(point.payload, options.text_filter)
        }
        rankings = []
        for using, vector in query_branches(embeddings, options):
            if using == DENSE_VECTOR:
                rankings.append(self._rank_dense(vector, candidates))
            else:
                rankings.append(self._rank_sparse(vector, candidates))
        fused = reciprocal_rank_fusion(rankings)
        window = fused[options.offset : options.offset + options.limit]
        return [
            StoreHit(id=item.identifier, score=item.score, payload=self._points[item.identifier].payload)
            for item in window
        ]

    async def close(self) -> None:
        return None

    def _rank_dense(self, vector: Sequence[float], candidates: dict[str, _StoredPoint]) -> list[tuple[str, float]]:
        if len(vector) != self.dim:
            raise StoreQueryError(f"Query vector has {len(vector)} dimensions, collection expects {self.dim}")
        scores = [
            (point_id, _cosine(point.dense, vector))
            for point_id, point in candidates.items()
            if point.dense is not None
        ]
        scores.sort(key=lambda item: (-item[1], item[0]))
        return scores[: self.branch_limit]

    def _rank_sparse(self, vector: SparseVector, candidates: dict[str, _StoredPoint]) -> list[tuple[str, float]]:
        scores = []
        for point_id, point in candidates.items():
            score = sum(point.sparse.get(idx, 0.0) * value for idx, value in zip(vector.indices, vector.values))
            # Sparse search only returns points sharing at least one term.
            if score > 0:
                scores.append((point_id, score))
        scores.sort(key=lambda item: (-item[1], item[0]))
        return scores[: self.branch_limit]


def _matches(payload: dict[str, Any], text_filter: str | None) -> bool:
    if not text_filter:
        return True
    text = str(payload.get("message", {}).get("text", ""))
    wanted = set(_TOKEN_RE.findall(text_filter.lower()))
    return wanted.issubset(_TOKEN_RE.findall(text.lower()))


def _cosine(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = sum(x * x for x in a) ** 0.5
    norm_b = sum(y * y for y in b) ** 0.5
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)


__all__ = ["InMemoryVectorStore"]
