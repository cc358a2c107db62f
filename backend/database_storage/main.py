"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from database_storage.api.storage import router as storage_router
from database_storage.config import get_config
from database_storage.database import init_db
from database_storage.logging_config import setup_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    config = get_config()
    setup_logging(level=config.log_level, log_file=config.log_file, json_console=config.log_json)
    init_db(config)
    logger.info(
        "server_starting",
        host=config.host,
        port=config.port,
        resource_base_url=config.resource_base_url,
    )
    yield
    logger.info("server_shutting_down")


def create_app() -> FastAPI:
    """Application factory: create and configure the FastAPI app."""
    config = get_config()

    app = FastAPI(
        title="Database Storage",
        description="List, clear and export stored form entries",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(storage_router)

    @app.get("/api/health", tags=["health"])
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "database_storage.main:app",
        host=config.host,
        port=config.port,
        reload=True,
    )
