"""
API Workspace - FastAPI Application Entry Point

A local-first manager for collections of HTTP requests, environments,
open tabs and request history.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import get_settings
from .database import SessionLocal, init_db
from .exceptions import register_exception_handlers
from .logging_config import configure_logging
from .routers import collections, environments, execute, history, requests, storage, tabs
from .services.persistence import SqlAlchemyStorageAdapter
from .services.workspace_store import WorkspaceStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)

    # Startup: initialize database and load the workspace
    init_db()
    app.state.store = WorkspaceStore.load(
        SqlAlchemyStorageAdapter(SessionLocal),
        storage_key=settings.storage_key,
        max_history_items=settings.max_history_items,
    )
    yield
    # Shutdown: write out pending changes
    app.state.store.close()
    logger.info("Workspace store closed")


app = FastAPI(
    title="API Workspace",
    description="A local-first manager for HTTP request collections",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Allow all origins for the local UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "API Workspace",
        "version": __version__,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Register routers
app.include_router(collections.router)
app.include_router(requests.router)
app.include_router(environments.router)
app.include_router(tabs.router)
app.include_router(history.router)
app.include_router(storage.router)
app.include_router(execute.router)
