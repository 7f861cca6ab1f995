"""Embedding clients."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from typing import Protocol

import httpx
from pydantic import BaseModel, ValidationError, model_validator

from chat_search.core.config import Settings
from chat_search.core.errors import EmbeddingServiceError
from chat_search.ingest.types import Embeddings, SparseVector

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")
_SPARSE_SLOTS = 2**31 - 1


class Embedder(Protocol):
    async def embed(self, text: str, dense: bool = True, bm25: bool = True) -> Embeddings: ...

    async def aclose(self) -> None: ...


class _SparseBody(BaseModel):
    indices: list[int]
    values: list[float]

    @model_validator(mode="after")
    def _same_length(self) -> "_SparseBody":
        if len(self.indices) != len(self.values):
            raise ValueError("bm25 indices and values differ in length")
        return self


class _EmbedResponse(BaseModel):
    dense: list[float] | None = None
    bm25: _SparseBody | None = None


class HttpEmbeddingClient:
    """Client for the remote ``/embed`` service.

    No retries here; a failed call raises :class:`EmbeddingServiceError` and
    the caller decides what to do with the message.
    """

    def __init__(
        self,
        base_url: str,
        avgdl: float = 1000.0,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.avgdl = avgdl
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_s),
        )

    async def embed(self, text: str, dense: bool = True, bm25: bool = True) -> Embeddings:
        body: dict[str, object] = {"text": text, "dense": dense}
        if bm25:
            body["bm25"] = {"avgdl": self.avgdl}
        try:
            resp = await self._client.post("/embed", json=body)
        except httpx.HTTPError as exc:
            raise EmbeddingServiceError(f"Embedding request failed: {exc!r}") from exc
        if not resp.is_success:
            raise EmbeddingServiceError(
                f"Embedding service returned {resp.status_code} {resp.reason_phrase}",
                status=resp.status_code,
                body=resp.text,
            )
        try:
            parsed = _EmbedResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            raise EmbeddingServiceError(
                "Could not parse embedding response",
                status=resp.status_code,
                body=resp.text,
            ) from exc
        embeddings = Embeddings(
            dense=parsed.dense if dense else None,
            sparse=SparseVector(parsed.bm25.indices, parsed.bm25.values) if bm25 and parsed.bm25 else None,
        )
        if embeddings.is_empty:
            raise EmbeddingServiceError(
                "Embedding response carried no usable vector",
                status=resp.status_code,
                body=resp.text,
            )
        return embeddings

    async def aclose(self) -> None:
        await self._client.aclose()


class HashedEmbedder:
    """Deterministic offline embedder for development and tests.

    Dense vectors are L2-normalised hashed bags of words; sparse vectors are
    hashed term frequencies with unique, ascending indices.
    """

    def __init__(self, dim: int = 384) -> None:
        self.dim = dim

    async def embed(self, text: str, dense: bool = True, bm25: bool = True) -> Embeddings:
        tokens = _tokenize(text)
        dense_vector = None
        sparse_vector = None
        if dense:
            dense_vector = [0.0] * self.dim
            for token in tokens:
                dense_vector[_hash_token(token, self.dim)] += 1.0
            _normalize(dense_vector)
        if bm25:
            weights: dict[int, float] = {}
            for token in tokens:
                slot = _hash_token(token, _SPARSE_SLOTS)
                weights[slot] = weights.get(slot, 0.0) + 1.0
            indices = sorted(weights)
            sparse_vector = SparseVector(indices=indices, values=[weights[idx] for idx in indices])
        return Embeddings(dense=dense_vector, sparse=sparse_vector)

    async def aclose(self) -> None:
        return None


def build_embedder(settings: Settings) -> Embedder:
    if settings.embedding_backend == "hashed":
        logger.warning("Using hashed embedder; search quality is lexical only")
        return HashedEmbedder(dim=settings.dense_dim)
    return HttpEmbeddingClient(
        settings.embedding_url,
        avgdl=settings.bm25_avgdl,
        timeout_s=settings.embedding_timeout_s,
    )


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, modulus: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % modulus


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = ["Embedder", "HttpEmbeddingClient", "HashedEmbedder", "build_embedder"]
