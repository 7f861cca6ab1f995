"""Tests for embedding clients."""

from __future__ import annotations

import json
import math

import httpx
import pytest

from chat_search.core.config import Settings
from chat_search.core.errors import EmbeddingServiceError
from chat_search.ingest.embeddings import HashedEmbedder, HttpEmbeddingClient, build_embedder


def _client(handler) -> HttpEmbeddingClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(base_url="http://embed.local", transport=transport)
    return HttpEmbeddingClient("http://embed.local", avgdl=1000.0, client=http)


@pytest.mark.asyncio
async def test_embed_request_and_response() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/embed"
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"dense": [0.6, 0.8], "bm25": {"indices": [3, 9], "values": [1.0, 0.5]}})

    client = _client(handler)
    result = await client.embed("hello")
    await client.aclose()

    assert seen == [{"text": "hello", "dense": True, "bm25": {"avgdl": 1000.0}}]
    assert result.dense == [0.6, 0.8]
    assert result.sparse is not None
    assert result.sparse.indices == [3, 9]
    assert result.sparse.values == [1.0, 0.5]


@pytest.mark.asyncio
async def test_embed_without_bm25_omits_sparse_request() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"dense": [1.0, 0.0]})

    client = _client(handler)
    result = await client.embed("hello", bm25=False)
    await client.aclose()

    assert "bm25" not in seen[0]
    assert result.sparse is None


@pytest.mark.asyncio
async def test_non_success_status_raises_with_status_and_body() -> None:
    client = _client(lambda request: httpx.Response(503, text="model loading"))
    with pytest.raises(EmbeddingServiceError) as excinfo:
        await client.embed("hello")
    await client.aclose()
    assert excinfo.value.status == 503
    assert excinfo.value.body == "model loading"
    assert "503" in str(excinfo.value)


@pytest.mark.asyncio
async def test_unparseable_body_raises() -> None:
    client = _client(lambda request: httpx.Response(200, text="not json"))
    with pytest.raises(EmbeddingServiceError):
        await client.embed("hello")
    await client.aclose()


@pytest.mark.asyncio
async def test_empty_body_raises() -> None:
    client = _client(lambda request: httpx.Response(200, json={}))
    with pytest.raises(EmbeddingServiceError):
        await client.embed("hello")
    await client.aclose()


@pytest.mark.asyncio
async def test_mismatched_sparse_lengths_raise() -> None:
    client = _client(
        lambda request: httpx.Response(200, json={"dense": [1.0], "bm25": {"indices": [1, 2], "values": [0.5]}})
    )
    with pytest.raises(EmbeddingServiceError) as excinfo:
        await client.embed("hello")
    await client.aclose()
    assert excinfo.value.status == 200


@pytest.mark.asyncio
async def test_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(EmbeddingServiceError):
        await client.embed("hello")
    await client.aclose()


@pytest.mark.asyncio
async def test_hashed_embedder_shapes() -> None:
    embedder = HashedEmbedder(dim=32)
    first = await embedder.embed("Hello hello world")
    second = await embedder.embed("Hello hello world")

    assert first.dense == second.dense
    assert len(first.dense) == 32
    assert math.isclose(sum(value * value for value in first.dense), 1.0, rel_tol=1e-9)
    assert first.sparse.indices == sorted(set(first.sparse.indices))
    assert sorted(first.sparse.values) == [1.0, 2.0]


@pytest.mark.asyncio
async def test_hashed_embedder_respects_branches() -> None:
    embedder = HashedEmbedder(dim=8)
    result = await embedder.embed("hello", dense=False)
    assert result.dense is None
    assert result.sparse is not None


def test_build_embedder_selects_backend() -> None:
    assert isinstance(build_embedder(Settings(embedding_backend="hashed", dense_dim=16)), HashedEmbedder)
    assert isinstance(build_embedder(Settings(embedding_backend="http")), HttpEmbeddingClient)
