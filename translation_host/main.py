"""Translation host application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException

from translation_host.config import Settings, get_settings
from translation_host.lifecycle import get_services, init_host, shutdown_host

logger = structlog.get_logger()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_host(settings)
        try:
            yield
        finally:
            await shutdown_host()

    app = FastAPI(title="translation-host", lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/stats")
    async def stats() -> dict[str, Any]:
        services = get_services()
        if services is None:
            raise HTTPException(status_code=503, detail="Host not initialized")

        pool = services.surface_pool
        registry = services.keepalive
        return {
            "surface_pool": {
                "capacity": pool.capacity,
                "outstanding": pool.outstanding,
                "parked": len(pool),
                **asdict(pool.stats),
            },
            "keepalive": {
                "pending": len(registry),
                **asdict(registry.stats),
            },
        }

    return app


def main() -> None:
    settings = get_settings()
    logger.info(
        "server.start",
        host=settings.server.host,
        port=settings.server.port,
    )
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
    )


if __name__ == "__main__":
    main()
