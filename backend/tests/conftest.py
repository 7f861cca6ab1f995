"""Test fixtures for Chat Search."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from chat_search.core.errors import ChatFetchError, EmbeddingServiceError, StoreWriteError  # noqa: E402
from chat_search.db.ledger import Ledger  # noqa: E402
from chat_search.db.sqlite import SQLiteDatabase  # noqa: E402
from chat_search.ingest.embeddings import HashedEmbedder  # noqa: E402
from chat_search.ingest.indexer import Indexer  # noqa: E402
from chat_search.ingest.lifecycle import IngestionLifecycle  # noqa: E402
from chat_search.platform.base import ChannelKind, ChatChannel, ChatMessage  # noqa: E402
from chat_search.retrieval.memory_store import InMemoryVectorStore  # noqa: E402

DIM = 64


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset cached settings and environment between tests."""
    from chat_search.core.config import get_settings

    monkeypatch.setenv("CHSR_LEDGER_PATH", str(tmp_path / "ledger.db"))
    monkeypatch.delenv("CHSR_CONFIG", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakePlatform:
    """In-memory chat platform honouring ``after`` like the real history API."""

    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.newest_first = False
        self.guilds: dict[int, list[ChatChannel]] = {}
        self.messages: dict[int, list[ChatMessage]] = {}
        self.failing_guilds: set[int] = set()
        # channel id -> number of successful page fetches before failing
        self.fail_after_pages: dict[int, int] = {}
        self.fetch_calls: list[tuple[int, int]] = []
        self.ready_callbacks: list = []
        self.message_callbacks: list = []

    def add_channel(self, guild_id: int, channel_id: int, kind: ChannelKind = ChannelKind.TEXT) -> ChatChannel:
        channel = ChatChannel(id=channel_id, guild_id=guild_id, name=f"channel-{channel_id}", kind=kind)
        self.guilds.setdefault(guild_id, []).append(channel)
        self.messages.setdefault(channel_id, [])
        return channel

    def add_message(self, channel_id: int, message_id: int, content: str, author: str = "alice") -> ChatMessage:
        guild_id = next(
            channel.guild_id
            for channels in self.guilds.values()
            for channel in channels
            if channel.id == channel_id
        )
        message = ChatMessage(
            id=message_id,
            channel_id=channel_id,
            guild_id=guild_id,
            content=content,
            author_username=author,
        )
        self.messages[channel_id].append(message)
        return message

    def subscribe_ready(self, callback) -> None:
        self.ready_callbacks.append(callback)

    def subscribe_message_create(self, callback) -> None:
        self.message_callbacks.append(callback)

    async def fetch_channels(self, guild_id: int) -> list[ChatChannel]:
        if guild_id in self.failing_guilds:
            raise ChatFetchError(f"guild {guild_id} unavailable")
        return list(self.guilds.get(guild_id, []))

    async def fetch_messages(self, channel_id: int, after: int) -> list[ChatMessage]:
        budget = self.fail_after_pages.get(channel_id)
        if budget is not None:
            if budget <= 0:
                raise ChatFetchError(f"channel {channel_id} unavailable")
            self.fail_after_pages[channel_id] = budget - 1
        self.fetch_calls.append((channel_id, after))
        newer = sorted(
            (message for message in self.messages.get(channel_id, []) if message.id > after),
            key=lambda message: message.id,
        )[: self.page_size]
        if self.newest_first:
            newer.reverse()
        return newer

    async def fetch_message(self, channel_id: int, message_id: int) -> ChatMessage:
        for message in self.messages.get(channel_id, []):
            if message.id == message_id:
                return message
        raise ChatFetchError(f"message {message_id} not found")

    async def start(self) -> None:
        return None

    async def close(self) -> None:
        return None


class CountingEmbedder(HashedEmbedder):
    """Hashed embedder that records calls and can fail on chosen texts."""

    def __init__(self, dim: int = DIM) -> None:
        super().__init__(dim=dim)
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    async def embed(self, text: str, dense: bool = True, bm25: bool = True):
        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingServiceError("embedding backend down", status=503, body="unavailable")
        return await super().embed(text, dense=dense, bm25=bm25)


class FlakyStore(InMemoryVectorStore):
    """In-memory store whose next ``fail_writes`` upserts raise."""

    def __init__(self, dim: int = DIM) -> None:
        super().__init__(dim=dim)
        self.fail_writes = 0
        self.upserts: list[str] = []

    async def upsert(self, document) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise StoreWriteError(f"upsert of {document.id} rejected")
        self.upserts.append(document.id)
        await super().upsert(document)


@pytest.fixture
def ledger(tmp_path: Path) -> Ledger:
    handle = Ledger.open(SQLiteDatabase(tmp_path / "ledger.db"))
    yield handle
    handle.close()


@pytest.fixture
def embedder() -> CountingEmbedder:
    return CountingEmbedder()


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def indexer(ledger: Ledger, embedder: CountingEmbedder, store: FlakyStore) -> Indexer:
    return Indexer(ledger, embedder, store)


@pytest.fixture
def lifecycle() -> IngestionLifecycle:
    return IngestionLifecycle()


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()
