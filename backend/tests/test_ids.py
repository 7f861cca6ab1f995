"""Tests for id helpers."""

import uuid

import pytest

from chat_search.utils.ids import POINT_NAMESPACE, message_key, message_link, parse_message_key, point_id


def test_point_id_is_deterministic_uuid5() -> None:
    assert point_id(7, 42) == point_id(7, 42)
    assert point_id(7, 42) == str(uuid.uuid5(POINT_NAMESPACE, "7:42"))
    assert point_id(7, 42) != point_id(42, 7)


def test_message_key_round_trip() -> None:
    assert message_key(7, 42) == "7:42"
    assert parse_message_key("7:42") == (7, 42)


@pytest.mark.parametrize("key", ["7", "7:42:1", "a:b", "7:", ""])
def test_parse_message_key_rejects_malformed(key: str) -> None:
    with pytest.raises(ValueError):
        parse_message_key(key)


def test_message_link() -> None:
    assert message_link(1, 7, 42) == "https://discord.com/channels/1/7/42"
