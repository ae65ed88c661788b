"""Callgate FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from callgate import __version__
from callgate.api.calls import router as calls_router
from callgate.api.health import router as health_router
from callgate.config import settings
from callgate.database import Database
from callgate.errors import register_error_handlers

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Callgate %s starting", __version__)
    yield
    await app.state.database.dispose()


def create_app(database: Database | None = None) -> FastAPI:
    """Build the application around an explicitly provided connection pool."""
    app = FastAPI(
        title="Callgate - Call Log Ingestion Gateway",
        description="Multi-tenant ingestion and retrieval of phone-call events",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.database = database or Database.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(health_router, tags=["Health"])
    app.include_router(calls_router, tags=["Calls"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"service": "Callgate", "version": __version__, "docs": "/docs"}

    return app


app = create_app()
