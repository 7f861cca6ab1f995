"""Process entrypoint: HTTP API plus chat ingestion in one event loop."""

from __future__ import annotations

import asyncio

import uvicorn

from chat_search.api.dependencies import Services, build_services
from chat_search.app import create_app
from chat_search.core.config import Settings
from chat_search.core.logging import get_logger
from chat_search.ingest.crawler import BackfillCrawler
from chat_search.ingest.live import LiveIngestionHandler
from chat_search.ingest.runtime import IngestionRuntime
from chat_search.platform.base import ChatPlatform

logger = get_logger(__name__)


def build_runtime(services: Services, platform: ChatPlatform) -> IngestionRuntime:
    crawler = BackfillCrawler(platform, services.ledger, services.indexer, services.lifecycle)
    live = LiveIngestionHandler(services.indexer, services.ledger, services.lifecycle)
    runtime = IngestionRuntime(platform, crawler, live)
    runtime.attach()
    return runtime


async def serve(settings: Settings, platform: ChatPlatform | None = None) -> None:
    """Run until the HTTP server stops, the platform disconnects, or ingestion hits a ledger failure."""
    services = build_services(settings, platform=platform)
    try:
        await services.store.ensure_collection()
        config = uvicorn.Config(
            create_app(services),
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
        tasks = [asyncio.create_task(uvicorn.Server(config).serve(), name="http")]
        if platform is not None:
            runtime = build_runtime(services, platform)
            tasks.append(asyncio.create_task(platform.start(), name="platform"))
            tasks.append(asyncio.create_task(runtime.wait_fatal(), name="ingestion"))
        else:
            logger.info("No chat platform configured; serving search only")
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()
    finally:
        if platform is not None:
            await platform.close()
        await services.aclose()


__all__ = ["build_runtime", "serve"]
