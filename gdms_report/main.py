"""
FastAPI application entrypoint for the GDMS report service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from gdms_report.api.routes import router as api_router
from gdms_report.core.config import get_settings
from gdms_report.core.logging import configure_logging
from gdms_report.dependencies import get_gdms_client, get_status_enrichment_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the background token refresh while the app is up and close the shared client after."""
    gdms = get_settings().gdms
    if gdms.refresh_loop_enabled:
        get_gdms_client().tokens.start_refresh_loop(
            gdms.refresh_min_sleep_seconds,
            gdms.refresh_max_sleep_seconds,
        )
    try:
        yield
    finally:
        if get_gdms_client.cache_info().currsize:
            await get_gdms_client().aclose()
            get_status_enrichment_service.cache_clear()
            get_gdms_client.cache_clear()
            logger.info("GDMS client closed")


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="GDMS Device Report",
        version="0.1.0",
        description="Organization, device and SIP account reports built from the GDMS cloud API.",
        lifespan=lifespan,
    )
    app.include_router(api_router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
