"""
Workspace storage API routes.

Provides full-workspace export and import (backup/restore) and the layout
preferences persisted alongside the workspace.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from ..dependencies import get_store
from ..schemas.storage import LayoutSettings, LayoutUpdate
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api/storage", tags=["storage"])


def _layout(store: WorkspaceStore) -> LayoutSettings:
    state = store.state
    return LayoutSettings(
        sidebar_width=state.sidebar_width,
        sidebar_collapsed=state.sidebar_collapsed,
        request_panel_width=state.request_panel_width,
        panel_layout=state.panel_layout,
    )


@router.get("/export")
async def export_storage(store: WorkspaceStore = Depends(get_store)):
    """
    Export collections and environments as a portable snapshot.

    Secret values (auth passwords, tokens, API keys and secret variables)
    are replaced with placeholders. History is not exported.
    """
    return store.export_full_storage().to_document()


@router.post("/import")
async def import_storage(payload: Any = Body(...), store: WorkspaceStore = Depends(get_store)):
    """
    Replace the workspace with an exported snapshot.

    The payload must contain at least one of ``collections``,
    ``environments`` or ``history``. An invalid payload is rejected with 422
    and leaves the workspace unchanged. All open tabs are closed.
    """
    store.import_full_storage(payload)
    state = store.state
    return {
        "message": "Workspace imported successfully",
        "collections": len(state.collections),
        "environments": len(state.environments),
        "history": len(state.history),
    }


@router.get("/layout", response_model=LayoutSettings)
async def get_layout(store: WorkspaceStore = Depends(get_store)):
    return _layout(store)


@router.put("/layout", response_model=LayoutSettings)
async def update_layout(layout_data: LayoutUpdate, store: WorkspaceStore = Depends(get_store)):
    """Update sidebar and panel layout preferences."""
    store.update_layout(layout_data)
    return _layout(store)
