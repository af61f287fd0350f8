"""Serves the FastAPI app with uvicorn."""

from __future__ import annotations

import uvicorn

from .config.settings import get_settings
from .http_app import app
from .observability.logger import get_logger

logger = get_logger(__name__)


async def run_http_server() -> None:
    settings = get_settings()
    server = uvicorn.Server(
        uvicorn.Config(
            app=app,
            host=settings.http_host,
            port=settings.http_port,
            lifespan="on",
            access_log=settings.debug,
            log_level="debug" if settings.debug else "warning",
            loop="asyncio",
        )
    )

    logger.info(
        "http_server_starting",
        address=f"http://{settings.http_host}:{settings.http_port}",
        api_prefix=settings.api_prefix,
    )
    await server.serve()
    logger.info("http_server_stopped")
