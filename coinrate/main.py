# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coinrate import __version__
from coinrate.api.v1.router import api_router
from coinrate.config import Settings, get_settings
from coinrate.schemas.common import HealthResponse
from coinrate.services.rate_service import RateService, build_rate_service

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    rate_service: RateService | None = None,
) -> FastAPI:
    """Create the application.

    Args:
        settings: Settings to use, defaults to the environment.
        rate_service: Pre-built service, mainly for tests.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup and shutdown events."""
        service = rate_service or build_rate_service(settings)
        app.state.rate_service = service
        logger.info(
            f"Tracking {service.base_asset} in {', '.join(service.quote_currencies)}"
        )
        await service.start()

        yield

        logger.info("Shutting down rate service...")
        await service.close()

    app = FastAPI(
        title="coinrate",
        description="Cached crypto exchange rates, history and conversion",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__)

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
