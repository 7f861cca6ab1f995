"""Discord implementation of the chat platform interface (discord.py)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
import discord

from chat_search.core.errors import ChatFetchError
from chat_search.platform.base import (
    ChannelKind,
    ChatChannel,
    ChatMessage,
    MessageCallback,
    ReadyCallback,
)

logger = logging.getLogger(__name__)

# discord.py lets some transport failures through unwrapped.
_FETCH_ERRORS = (discord.DiscordException, aiohttp.ClientError, asyncio.TimeoutError, OSError)

_CHANNEL_KINDS = {
    discord.ChannelType.text: ChannelKind.TEXT,
    discord.ChannelType.public_thread: ChannelKind.PUBLIC_THREAD,
}


def default_intents() -> discord.Intents:
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.message_content = True
    return intents


class _GatewayClient(discord.Client):
    """Forwards gateway events to the platform's subscribers."""

    def __init__(self, platform: "DiscordPlatform", **options: Any) -> None:
        super().__init__(**options)
        self._platform = platform

    async def on_ready(self) -> None:
        await self._platform._dispatch_ready([guild.id for guild in self.guilds])

    async def on_message(self, message: discord.Message) -> None:
        await self._platform._dispatch_message(to_chat_message(message))


class DiscordPlatform:
    """Chat platform backed by a discord.py client.

    ``ready`` can fire again after a gateway reconnect; subscribers are told
    every time and decide themselves whether to act on it.
    """

    def __init__(self, token: str, page_size: int = 100, intents: discord.Intents | None = None) -> None:
        self._token = token
        self.page_size = page_size
        self._ready_callbacks: list[ReadyCallback] = []
        self._message_callbacks: list[MessageCallback] = []
        self.client = _GatewayClient(self, intents=intents or default_intents())

    def subscribe_ready(self, callback: ReadyCallback) -> None:
        self._ready_callbacks.append(callback)

    def subscribe_message_create(self, callback: MessageCallback) -> None:
        self._message_callbacks.append(callback)

    async def fetch_channels(self, guild_id: int) -> list[ChatChannel]:
        try:
            guild = self.client.get_guild(guild_id) or await self.client.fetch_guild(guild_id)
            channels = list(await guild.fetch_channels())
            threads = await guild.active_threads()
        except _FETCH_ERRORS as exc:
            raise ChatFetchError(f"Could not list channels of guild {guild_id}: {exc}") from exc
        return [
            ChatChannel(
                id=channel.id,
                guild_id=guild_id,
                name=channel.name,
                kind=_CHANNEL_KINDS.get(channel.type, ChannelKind.OTHER),
            )
            for channel in [*channels, *threads]
        ]

    async def fetch_messages(self, channel_id: int, after: int) -> list[ChatMessage]:
        try:
            channel = await self._messageable(channel_id)
            return [
                to_chat_message(message)
                async for message in channel.history(limit=self.page_size, after=discord.Object(id=after))
            ]
        except _FETCH_ERRORS as exc:
            raise ChatFetchError(f"Could not fetch messages of channel {channel_id} after {after}: {exc}") from exc

    async def fetch_message(self, channel_id: int, message_id: int) -> ChatMessage:
        try:
            channel = await self._messageable(channel_id)
            message = await channel.fetch_message(message_id)
        except _FETCH_ERRORS as exc:
            raise ChatFetchError(f"Could not fetch message {message_id} of channel {channel_id}: {exc}") from exc
        return to_chat_message(message)

    async def start(self) -> None:
        await self.client.start(self._token)

    async def close(self) -> None:
        await self.client.close()

    async def _messageable(self, channel_id: int) -> Any:
        channel = self.client.get_channel(channel_id) or await self.client.fetch_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise ChatFetchError(f"Channel {channel_id} has no message history")
        return channel

    async def _dispatch_ready(self, guild_ids: list[int]) -> None:
        logger.info("Connected to %s guilds", len(guild_ids))
        for callback in self._ready_callbacks:
            await callback(guild_ids)

    async def _dispatch_message(self, message: ChatMessage) -> None:
        for callback in self._message_callbacks:
            await callback(message)


def to_chat_message(message: discord.Message) -> ChatMessage:
    return ChatMessage(
        id=message.id,
        channel_id=message.channel.id,
        guild_id=message.guild.id if message.guild is not None else None,
        content=message.content,
        author_username=message.author.name,
    )


__all__ = ["DiscordPlatform", "default_intents", "to_chat_message"]
