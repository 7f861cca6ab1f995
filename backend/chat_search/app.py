"""FastAPI application setup for Chat Search."""

from __future__ import annotations

from fastapi import FastAPI

from chat_search.api.dependencies import Services
from chat_search.api.routes_admin import router as admin_router
from chat_search.api.routes_search import router as search_router


def create_app(services: Services) -> FastAPI:
    """Build the HTTP app around an already constructed service container."""
    app = FastAPI(
        title="Chat Search",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.services = services

    app.include_router(search_router, prefix="", tags=["search"])
    app.include_router(admin_router, prefix="", tags=["admin"])

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, bool]:
        """Simple liveness check."""
        return {"ok": True}

    return app


__all__ = ["create_app"]
