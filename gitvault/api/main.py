"""FastAPI application main entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..services.config import get_config
from ..services.database import init_database
from .middleware import register_error_handlers
from .routes import files, graph, index

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the index schema before serving requests."""
    db_path = init_database(get_config().database_path)
    logger.info("Index database ready at %s", db_path)
    yield


app = FastAPI(
    title="gitvault API",
    description="Index, backlinks and link graph for Markdown vaults stored in GitHub",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(index.router, tags=["index"])
app.include_router(graph.router, tags=["graph"])
app.include_router(files.router, tags=["files"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


__all__ = ["app"]
