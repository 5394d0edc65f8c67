"""FastAPI application factory and lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cartograph import __version__
from cartograph.api.query_routes import query_router
from cartograph.api.routes import router
from cartograph.config import settings
from cartograph.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler; configures logging on startup.

    Args:
        app: The FastAPI application instance.
    """
    setup_logging(settings.log_level)
    yield


def create_app() -> FastAPI:
    """Build and return the configured FastAPI application.

    Returns:
        A fully wired :class:`FastAPI` instance.
    """
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description=(
            "Cartograph analysis & retrieval engine: chunks and analyzes a "
            "local repository with tree-sitter, builds its import/call graph "
            "and answers questions about it with hybrid retrieval."
        ),
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router, tags=["Analysis"])
    app.include_router(query_router, tags=["RAG"])
    return app


app = create_app()
