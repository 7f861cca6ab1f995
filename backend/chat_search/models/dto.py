"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchHit(_CamelModel):
    score: float
    channel_id: str
    message_id: str
    guild_id: str | None
    content: str
    author: str
    link: str | None


class CursorEntry(_CamelModel):
    channel_id: str
    message_id: str


class StatusResponse(_CamelModel):
    phase: str
    indexed_messages: int
    channels_with_cursor: int


class ResetCursorResponse(_CamelModel):
    channel_id: str
    reset: bool


class IndexedMessageResponse(_CamelModel):
    channel_id: str
    message_id: str
    indexed: bool
    guild_id: str | None


__all__ = ["SearchHit", "CursorEntry", "StatusResponse", "ResetCursorResponse", "IndexedMessageResponse"]
