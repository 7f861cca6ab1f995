"""ID helpers."""

from __future__ import annotations

import uuid

POINT_NAMESPACE = uuid.UUID("da0ac261-2851-4934-a405-a1df024749cb")


def message_key(channel_id: int, message_id: int) -> str:
    """Compose the ``channel:message`` key used by the ledger."""
    return f"{channel_id}:{message_id}"


def parse_message_key(key: str) -> tuple[int, int]:
    """Split a ``channel:message`` key, rejecting anything malformed."""
    parts = key.split(":")
    if len(parts) != 2:
        raise ValueError(f"Malformed message key: {key!r}")
    try:
        channel_id, message_id = (int(part) for part in parts)
    except ValueError as exc:
        raise ValueError(f"Malformed message key: {key!r}") from exc
    return channel_id, message_id


def point_id(channel_id: int, message_id: int) -> str:
    """Deterministic vector-store id for a message; stable across restarts."""
    return str(uuid.uuid5(POINT_NAMESPACE, message_key(channel_id, message_id)))


def message_link(guild_id: int, channel_id: int, message_id: int) -> str:
    return f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"


__all__ = ["POINT_NAMESPACE", "message_key", "parse_message_key", "point_id", "message_link"]
