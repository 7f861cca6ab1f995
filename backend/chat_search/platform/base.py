"""Capability interface the ingestion core needs from a chat platform."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Protocol, Sequence


class ChannelKind(str, Enum):
    TEXT = "text"
    PUBLIC_THREAD = "public_thread"
    OTHER = "other"


BACKFILL_CHANNEL_KINDS = frozenset({ChannelKind.TEXT, ChannelKind.PUBLIC_THREAD})


@dataclass(slots=True, frozen=True)
class ChatChannel:
    id: int
    guild_id: int
    name: str
    kind: ChannelKind


@dataclass(slots=True, frozen=True)
class ChatMessage:
    id: int
    channel_id: int
    guild_id: int | None
    content: str
    author_username: str


ReadyCallback = Callable[[Sequence[int]], Awaitable[None]]
MessageCallback = Callable[[ChatMessage], Awaitable[None]]


class ChatPlatform(Protocol):
    """Everything the crawler, live handler and API use from the platform.

    Fetch methods raise :class:`chat_search.core.errors.ChatFetchError` on
    any platform API failure.
    """

    def subscribe_ready(self, callback: ReadyCallback) -> None:
        """Call ``callback`` with the accessible guild ids once connected."""

    def subscribe_message_create(self, callback: MessageCallback) -> None: ...

    async def fetch_channels(self, guild_id: int) -> list[ChatChannel]: ...

    async def fetch_messages(self, channel_id: int, after: int) -> list[ChatMessage]:
        """One page of messages with ids strictly greater than ``after``.

        Page order is transport-defined; callers sort.
        """

    async def fetch_message(self, channel_id: int, message_id: int) -> ChatMessage: ...

    async def start(self) -> None: ...

    async def close(self) -> None: ...


__all__ = [
    "ChannelKind",
    "BACKFILL_CHANNEL_KINDS",
    "ChatChannel",
    "ChatMessage",
    "ChatPlatform",
    "ReadyCallback",
    "MessageCallback",
]
