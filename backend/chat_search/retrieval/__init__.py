"""Retrieval orchestration components."""

from .hybrid import reciprocal_rank_fusion
from .memory_store import InMemoryVectorStore
from .search import SearchOptions, SearchResult, SearchService
from .vector_store import QdrantVectorStore, QueryOptions, StoreHit, VectorStore

__all__ = [
    "reciprocal_rank_fusion",
    "InMemoryVectorStore",
    "QdrantVectorStore",
    "QueryOptions",
    "StoreHit",
    "VectorStore",
    "SearchOptions",
    "SearchResult",
    "SearchService",
]
