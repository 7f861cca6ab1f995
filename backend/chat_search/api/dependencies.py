"""Service container and FastAPI dependencies."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from chat_search.core.config import Settings
from chat_search.db.ledger import Ledger
from chat_search.db.sqlite import SQLiteDatabase
from chat_search.ingest.embeddings import Embedder, build_embedder
from chat_search.ingest.indexer import Indexer
from chat_search.ingest.lifecycle import IngestionLifecycle
from chat_search.platform.base import ChatPlatform
from chat_search.retrieval import InMemoryVectorStore, QdrantVectorStore, SearchService, VectorStore


@dataclass
class Services:
    """Process-wide handles, built once and passed to every component."""

    settings: Settings
    ledger: Ledger
    embedder: Embedder
    store: VectorStore
    indexer: Indexer
    search: SearchService
    lifecycle: IngestionLifecycle
    platform: ChatPlatform | None = None

    async def aclose(self) -> None:
        await self.embedder.aclose()
        await self.store.close()
        self.ledger.close()


def build_store(settings: Settings) -> VectorStore:
    if settings.vector_backend == "memory":
        return InMemoryVectorStore(dim=settings.dense_dim, branch_limit=settings.branch_limit)
    return QdrantVectorStore.from_settings(settings)


def build_services(
    settings: Settings,
    platform: ChatPlatform | None = None,
    embedder: Embedder | None = None,
    store: VectorStore | None = None,
) -> Services:
    ledger = Ledger.open(SQLiteDatabase(settings.ledger_path))
    embedder = embedder or build_embedder(settings)
    store = store or build_store(settings)
    return Services(
        settings=settings,
        ledger=ledger,
        embedder=embedder,
        store=store,
        indexer=Indexer(ledger, embedder, store),
        search=SearchService(embedder, store, ledger=ledger, limit=settings.search_limit),
        lifecycle=IngestionLifecycle(),
        platform=platform,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_ledger(request: Request) -> Ledger:
    return get_services(request).ledger


__all__ = [
    "Services",
    "build_services",
    "build_store",
    "get_services",
    "get_ledger",
]
