"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CHSR_"
DEFAULT_CONFIG_PATH = Path("~/.config/chat-search/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "ledger_path"): "ledger_path",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "url"): "embedding_url",
    ("embeddings", "timeout_s"): "embedding_timeout_s",
    ("embeddings", "bm25_avgdl"): "bm25_avgdl",
    ("embeddings", "dense_dim"): "dense_dim",
    ("qdrant", "backend"): "vector_backend",
    ("qdrant", "url"): "qdrant_url",
    ("qdrant", "api_key"): "qdrant_api_key",
    ("qdrant", "collection"): "qdrant_collection",
    ("qdrant", "timeout_s"): "qdrant_timeout_s",
    ("search", "fusion_mode"): "fusion_mode",
    ("search", "branch_limit"): "branch_limit",
    ("search", "limit"): "search_limit",
    ("discord", "token"): "discord_token",
    ("discord", "page_size"): "page_size",
    ("server", "host"): "host",
    ("server", "port"): "port",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    ledger_path: Path = Field(default=Path.home() / ".chat-search" / "ledger.db")
    embedding_backend: Literal["http", "hashed"] = "http"
    embedding_url: str = "http://localhost:3000"
    embedding_timeout_s: float = 30.0
    bm25_avgdl: float = 1000.0
    dense_dim: int = 384
    vector_backend: Literal["qdrant", "memory"] = "qdrant"
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    qdrant_collection: str = "messages"
    qdrant_timeout_s: float = 10.0
    fusion_mode: Literal["client", "server"] = "client"
    branch_limit: int = Field(default=20, ge=1)
    search_limit: int = Field(default=10, ge=1)
    discord_token: str | None = None
    page_size: int = Field(default=100, ge=1, le=100)
    host: str = "127.0.0.1"
    port: int = 3001

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("ledger_path", mode="before")
    @classmethod
    def _expand_ledger_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("ledger_path must be a path or string")

    @field_validator("embedding_timeout_s", "qdrant_timeout_s")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be > 0")
        return value

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with CHSR_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
