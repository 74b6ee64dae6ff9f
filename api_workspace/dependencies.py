"""
FastAPI dependencies shared by the routers.
"""

from fastapi import Request

from .services.workspace_store import WorkspaceStore


def get_store(request: Request) -> WorkspaceStore:
    """Return the workspace store created by the application lifespan."""
    return request.app.state.store
