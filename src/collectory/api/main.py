"""FastAPI application."""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from collectory import __version__
from collectory.api.routes import health, modules, providers
from collectory.modules import ModuleService
from collectory.observability import get_logger, setup_logging
from collectory.storage import init_db

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging, create tables and load modules before serving."""
    setup_logging()
    init_db()
    # A bootstrap failure propagates and aborts startup
    outcomes = ModuleService().load_all_modules()
    logger.info("Startup complete", extra={"modules": len(outcomes)})
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Collectory",
        description="Module contracts and metadata provider aggregation",
        version=__version__,
        lifespan=lifespan,
    )

    # Include routers
    app.include_router(health.router, tags=["health"])
    app.include_router(modules.router, tags=["modules"])
    app.include_router(modules.admin_router, tags=["admin"])
    app.include_router(providers.router, tags=["providers"])

    @app.get("/")
    def root() -> dict:
        """Root endpoint."""
        return {
            "service": "collectory",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
