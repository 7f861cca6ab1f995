"""Tests for the Discord adapter's error mapping."""

from __future__ import annotations

import asyncio

import aiohttp
import pytest

from chat_search.core.errors import ChatFetchError
from chat_search.platform.discord_client import DiscordPlatform


class _ResetChannel:
    def history(self, **kwargs):
        return self._pages()

    async def _pages(self):
        raise aiohttp.ClientOSError(104, "Connection reset by peer")
        yield

    async def fetch_message(self, message_id: int):
        raise asyncio.TimeoutError()


class _UnreachableGuild:
    async def fetch_channels(self):
        raise OSError("network is unreachable")


@pytest.fixture
def discord_platform(monkeypatch: pytest.MonkeyPatch) -> DiscordPlatform:
    platform = DiscordPlatform("token", page_size=10)

    async def messageable(channel_id: int) -> _ResetChannel:
        return _ResetChannel()

    monkeypatch.setattr(platform, "_messageable", messageable)
    monkeypatch.setattr(platform.client, "get_guild", lambda guild_id: _UnreachableGuild())
    return platform


@pytest.mark.asyncio
async def test_connection_reset_during_history_is_a_fetch_error(discord_platform: DiscordPlatform) -> None:
    with pytest.raises(ChatFetchError):
        await discord_platform.fetch_messages(7, after=0)


@pytest.mark.asyncio
async def test_timeout_fetching_message_is_a_fetch_error(discord_platform: DiscordPlatform) -> None:
    with pytest.raises(ChatFetchError):
        await discord_platform.fetch_message(7, 42)


@pytest.mark.asyncio
async def test_os_error_listing_channels_is_a_fetch_error(discord_platform: DiscordPlatform) -> None:
    with pytest.raises(ChatFetchError):
        await discord_platform.fetch_channels(1)
