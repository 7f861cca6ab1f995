"""Tests for the in-memory vector store."""

import pytest

from chat_search.core.errors import StoreQueryError, StoreWriteError
from chat_search.ingest.embeddings import HashedEmbedder
from chat_search.ingest.types import IndexedDocument, MessageRef
from chat_search.retrieval.memory_store import InMemoryVectorStore
from chat_search.retrieval.vector_store import QueryOptions


async def _add(store: InMemoryVectorStore, embedder: HashedEmbedder, message_id: int, text: str) -> str:
    identifier = f"p{message_id}"
    vector = await embedder.embed(text)
    await store.upsert(IndexedDocument.for_message(identifier, MessageRef(1, 7, message_id), text, "bob", vector))
    return identifier


@pytest.mark.asyncio
async def test_upsert_overwrites_same_id() -> None:
    embedder = HashedEmbedder(dim=16)
    store = InMemoryVectorStore(dim=16)
    await _add(store, embedder, 1, "first")
    await _add(store, embedder, 1, "second")
    assert store.size == 1
    assert store.get("p1")["message"]["text"] == "second"


@pytest.mark.asyncio
async def test_sparse_branch_only_returns_overlapping_terms() -> None:
    embedder = HashedEmbedder(dim=16)
    store = InMemoryVectorStore(dim=16)
    await _add(store, embedder, 1, "deploy the service")
    await _add(store, embedder, 2, "lunch plans")

    hits = await store.query(await embedder.embed("deploy"), QueryOptions(use_dense=False))
    assert [hit.id for hit in hits] == ["p1"]


@pytest.mark.asyncio
async def test_text_filter_requires_every_word() -> None:
    embedder = HashedEmbedder(dim=16)
    store = InMemoryVectorStore(dim=16)
    await _add(store, embedder, 1, "Deploy the service today")
    await _add(store, embedder, 2, "deploy tomorrow")

    hits = await store.query(await embedder.embed("deploy"), QueryOptions(text_filter="service deploy"))
    assert [hit.id for hit in hits] == ["p1"]


@pytest.mark.asyncio
async def test_dimension_mismatch_rejected() -> None:
    store = InMemoryVectorStore(dim=16)
    vector = await HashedEmbedder(dim=8).embed("hello")
    with pytest.raises(StoreWriteError):
        await store.upsert(IndexedDocument.for_message("p1", MessageRef(1, 7, 1), "hello", "bob", vector))
    with pytest.raises(StoreQueryError):
        await store.query(vector, QueryOptions(use_sparse=False))
