"""
Main application entry point for the Nordpool Price API service.
Initializes FastAPI app, logging and the polling service.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from nordpool_api import __version__
from nordpool_api.api.routes import router as api_router
from nordpool_api.config import settings
from nordpool_api.logging_config import setup_logging
from nordpool_api.services.polling_service import polling_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown procedures.
    """
    # Startup
    setup_logging()
    await polling_service.start()

    yield

    # Shutdown
    await polling_service.stop()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    app = FastAPI(
        title="Nordpool Price API",
        description="Day-ahead electricity prices for Norwegian price zones (NO1-NO5) with subsidy",
        version=__version__,
        docs_url="/docs" if settings.api_debug else None,
        redoc_url="/redoc" if settings.api_debug else None,
        lifespan=lifespan,
    )

    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "nordpool_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
