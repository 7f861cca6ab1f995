"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from chat_search.core.config import Settings, get_settings


def test_yaml_sections_and_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(
        "embeddings:\n"
        "  url: http://embed:3000\n"
        "  bm25_avgdl: 250\n"
        "qdrant:\n"
        "  collection: chat\n"
        "search:\n"
        "  fusion_mode: server\n"
        "discord:\n"
        "  page_size: 50\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CHSR_QDRANT_COLLECTION", "override")

    settings = Settings.from_yaml(config)

    assert settings.embedding_url == "http://embed:3000"
    assert settings.bm25_avgdl == 250
    assert settings.fusion_mode == "server"
    assert settings.page_size == 50
    assert settings.qdrant_collection == "override"
    assert settings.ledger_path == tmp_path / "ledger.db"


def test_defaults() -> None:
    settings = get_settings()
    assert settings.bm25_avgdl == 1000.0
    assert settings.branch_limit == 20
    assert settings.fusion_mode == "client"
    assert settings.page_size == 100
    assert get_settings() is settings


def test_page_size_is_capped() -> None:
    with pytest.raises(ValidationError):
        Settings(page_size=101)


def test_timeouts_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(embedding_timeout_s=0)
