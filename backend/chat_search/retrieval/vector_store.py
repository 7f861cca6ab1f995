"""Vector store gateway backed by Qdrant."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from qdrant_client import AsyncQdrantClient, models

from chat_search.core.config import Settings
from chat_search.core.errors import StoreQueryError, StoreWriteError
from chat_search.ingest.types import Embeddings, IndexedDocument
from chat_search.retrieval.hybrid import reciprocal_rank_fusion

logger = logging.getLogger(__name__)

DENSE_VECTOR = "dense"
SPARSE_VECTOR = "bm25"
TEXT_FIELD = "message.text"


@dataclass(slots=True)
class QueryOptions:
    use_dense: bool = True
    use_sparse: bool = True
    text_filter: str | None = None
    offset: int = 0
    limit: int = 10


@dataclass(slots=True)
class StoreHit:
    id: str
    score: float
    payload: dict[str, Any]


class VectorStore(Protocol):
    async def ensure_collection(self) -> None: ...

    async def upsert(self, document: IndexedDocument) -> None: ...

    async def query(self, embeddings: Embeddings, options: QueryOptions) -> list[StoreHit]: ...

    async def close(self) -> None: ...


def query_branches(embeddings: Embeddings, options: QueryOptions) -> list[tuple[str, Any]]:
    """Return ``(vector name, query vector)`` pairs for the enabled branches."""
    branches: list[tuple[str, Any]] = []
    if options.use_sparse and embeddings.sparse is not None:
        branches.append((SPARSE_VECTOR, embeddings.sparse))
    if options.use_dense and embeddings.dense is not None:
        branches.append((DENSE_VECTOR, embeddings.dense))
    if not branches:
        raise ValueError("Query needs at least one of the dense or sparse branches")
    return branches


class QdrantVectorStore:
    """Upserts message points and runs dense + sparse queries fused by RRF.

    ``fusion_mode="client"`` runs one query per branch and fuses locally with
    ``1/rank`` scoring, which gives deterministic tie-breaking by point id.
    ``fusion_mode="server"`` sends a single prefetch query and lets Qdrant
    apply its own RRF constants.
    """

    def __init__(
        self,
        client: AsyncQdrantClient,
        collection: str,
        dense_dim: int = 384,
        branch_limit: int = 20,
        fusion_mode: Literal["client", "server"] = "client",
    ) -> None:
        self.client = client
        self.collection = collection
        self.dense_dim = dense_dim
        self.branch_limit = branch_limit
        self.fusion_mode = fusion_mode

    @classmethod
    def from_settings(cls, settings: Settings) -> "QdrantVectorStore":
        client = AsyncQdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout=math.ceil(settings.qdrant_timeout_s),
            check_compatibility=False,
        )
        return cls(
            client,
            settings.qdrant_collection,
            dense_dim=settings.dense_dim,
            branch_limit=settings.branch_limit,
            fusion_mode=settings.fusion_mode,
        )

    async def ensure_collection(self) -> None:
        try:
            if await self.client.collection_exists(self.collection):
                return
            logger.info("Creating collection %s (dense=%sd + sparse)", self.collection, self.dense_dim)
            await self.client.create_collection(
                collection_name=self.collection,
                vectors_config={
                    DENSE_VECTOR: models.VectorParams(
                        size=self.dense_dim,
                        distance=models.Distance.COSINE,
                        on_disk=True,
                    ),
                },
                sparse_vectors_config={
                    SPARSE_VECTOR: models.SparseVectorParams(index=models.SparseIndexParams(on_disk=True)),
                },
                hnsw_config=models.HnswConfigDiff(on_disk=True),
            )
            await self.client.create_payload_index(
                collection_name=self.collection,
                field_name=TEXT_FIELD,
                field_schema=models.TextIndexParams(
                    type=models.TextIndexType.TEXT,
                    tokenizer=models.TokenizerType.WORD,
                    lowercase=True,
                ),
            )
        except Exception as exc:
            raise StoreWriteError(f"Could not bootstrap collection {self.collection}: {exc}") from exc

    async def upsert(self, document: IndexedDocument) -> None:
        vector: dict[str, Any] = {}
        if document.vector.dense is not None:
            vector[DENSE_VECTOR] = document.vector.dense
        if document.vector.sparse is not None:
            vector[SPARSE_VECTOR] = models.SparseVector(
                indices=document.vector.sparse.indices,
                values=document.vector.sparse.values,
            )
        point = models.PointStruct(id=document.id, vector=vector, payload=document.payload)
        try:
            result = await self.client.upsert(collection_name=self.collection, points=[point], wait=True)
        except Exception as exc:
            raise StoreWriteError(f"Upsert of point {document.id} failed: {exc}") from exc
        if result.status != models.UpdateStatus.COMPLETED:
            raise StoreWriteError(f"Upsert of point {document.id} finished with status {result.status}")

    async def query(self, embeddings: Embeddings, options: QueryOptions) -> list[StoreHit]:
        branches = query_branches(embeddings, options)
        query_filter = _text_filter(options.text_filter)
        try:
            if self.fusion_mode == "server":
                return await self._query_server_fused(branches, query_filter, options)
            return await self._query_client_fused(branches, query_filter, options)
        except StoreQueryError:
            raise
        except Exception as exc:
            raise StoreQueryError(f"Hybrid query on {self.collection} failed: {exc}") from exc

    async def close(self) -> None:
        await self.client.close()

    # ------------------------------------------------------------------

    async def _query_client_fused(
        self,
        branches: list[tuple[str, Any]],
        query_filter: models.Filter | None,
        options: QueryOptions,
    ) -> list[StoreHit]:
        rankings: list[list[tuple[str, float]]] = []
        payloads: dict[str, dict[str, Any]] = {}
        for using, vector in branches:
            response = await self.client.query_points(
                collection_name=self.collection,
                query=_as_query(vector),
                using=using,
                query_filter=query_filter,
                limit=self.branch_limit,
                with_payload=True,
            )
            ranking: list[tuple[str, float]] = []
            for point in response.points:
                identifier = str(point.id)
                payloads[identifier] = point.payload or {}
                ranking.append((identifier, point.score))
            rankings.append(ranking)
        fused = reciprocal_rank_fusion(rankings)
        window = fused[options.offset : options.offset + options.limit]
        return [StoreHit(id=item.identifier, score=item.score, payload=payloads[item.identifier]) for item in window]

    async def _query_server_fused(
        self,
        branches: list[tuple[str, Any]],
        query_filter: models.Filter | None,
        options: QueryOptions,
    ) -> list[StoreHit]:
        response = await self.client.query_points(
            collection_name=self.collection,
            prefetch=[
                models.Prefetch(query=_as_query(vector), using=using, limit=self.branch_limit, filter=query_filter)
                for using, vector in branches
            ],
            query=models.FusionQuery(fusion=models.Fusion.RRF),
            query_filter=query_filter,
            limit=options.limit,
            offset=options.offset,
            with_payload=True,
        )
        return [StoreHit(id=str(point.id), score=point.score, payload=point.payload or {}) for point in response.points]


def _as_query(vector: Any) -> Any:
    if isinstance(vector, list):
        return vector
    return models.SparseVector(indices=vector.indices, values=vector.values)


def _text_filter(text: str | None) -> models.Filter | None:
    if not text:
        return None
    return models.Filter(must=[models.FieldCondition(key=TEXT_FIELD, match=models.MatchText(text=text))])


__all__ = [
    "DENSE_VECTOR",
    "SPARSE_VECTOR",
    "TEXT_FIELD",
    "QueryOptions",
    "StoreHit",
    "VectorStore",
    "QdrantVectorStore",
    "query_branches",
]
