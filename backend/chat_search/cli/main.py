"""CLI entrypoint for Chat Search."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="chsr", help="Chat Search command-line interface")
cursors_app = typer.Typer(name="cursors")
app.add_typer(cursors_app, name="cursors")

DEFAULT_HOST = "http://127.0.0.1:3001"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("CHSR_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def serve(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
    discord: bool = typer.Option(True, "--discord/--no-discord", help="Connect to Discord and ingest messages"),
) -> None:
    """Run the search API and, unless disabled, the Discord ingester."""
    from chat_search.core.config import Settings
    from chat_search.core.logging import configure_logging
    from chat_search.server import serve as run_server

    configure_logging()
    settings = Settings.from_yaml(config)
    platform = None
    if discord:
        if not settings.discord_token:
            raise typer.BadParameter("Set CHSR_DISCORD_TOKEN or discord.token, or pass --no-discord")
        from chat_search.platform.discord_client import DiscordPlatform

        platform = DiscordPlatform(settings.discord_token, page_size=settings.page_size)
    asyncio.run(run_server(settings, platform=platform))


@app.command()
def search(
    q: str = typer.Argument(..., help="Query text"),
    dense: bool = typer.Option(True, "--dense/--no-dense", help="Use the dense branch"),
    bm25: bool = typer.Option(True, "--bm25/--no-bm25", help="Use the sparse branch"),
    filter: Optional[str] = typer.Option(None, "--filter", help="Only match messages containing this text"),
    offset: int = typer.Option(0, "--offset", min=0, help="Skip this many fused results"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search indexed messages."""
    params: dict[str, object] = {"dense": dense, "bm25": bm25, "offset": offset}
    if filter:
        params["filter"] = filter
    resp = _request(
        "POST",
        "/search",
        host=host,
        params=params,
        data=q.encode("utf-8"),
        headers={"content-type": "text/plain; charset=utf-8"},
    )
    typer.echo(json.dumps(resp.json(), indent=2))


@cursors_app.command("list")
def list_cursors(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List per-channel backfill cursors."""
    resp = _request("GET", "/cursors", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


@cursors_app.command("reset")
def reset_cursor(
    channel_id: int = typer.Argument(..., help="Channel identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Forget a channel cursor so the next start replays its history."""
    resp = _request("DELETE", f"/cursors/{channel_id}", host=host)
    typer.echo(json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    app()
