"""
Open tab API routes.

Tabs are session state: they are kept in memory only and are not
persisted or exported.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_store
from ..exceptions import ResourceNotFoundError
from ..schemas.tab import TabListResponse, TabOpen, TabState, TabUpdate
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api/tabs", tags=["tabs"])


@router.get("", response_model=TabListResponse)
async def list_tabs(store: WorkspaceStore = Depends(get_store)):
    return TabListResponse(tabs=store.state.tabs, active_tab_id=store.state.active_tab_id)


@router.post("", response_model=TabState, status_code=status.HTTP_201_CREATED)
async def open_tab(descriptor: TabOpen, store: WorkspaceStore = Depends(get_store)):
    """
    Open a tab and make it active.

    If a tab for the same request is already open it is activated and
    returned instead of opening a second one.
    """
    return store.open_tab(descriptor)


@router.post("/prune")
async def prune_tabs(store: WorkspaceStore = Depends(get_store)):
    """Close tabs whose request, collection, folder or environment no longer exists."""
    return {"closed": store.prune_stale_tabs()}


@router.put("/{tab_id}", response_model=TabState)
async def update_tab(tab_id: str, tab_data: TabUpdate, store: WorkspaceStore = Depends(get_store)):
    if not store.update_tab(tab_id, tab_data):
        raise ResourceNotFoundError("Tab", tab_id)
    return store.get_tab(tab_id)


@router.post("/{tab_id}/activate", response_model=TabListResponse)
async def activate_tab(tab_id: str, store: WorkspaceStore = Depends(get_store)):
    if not store.set_active_tab(tab_id):
        raise ResourceNotFoundError("Tab", tab_id)
    return TabListResponse(tabs=store.state.tabs, active_tab_id=store.state.active_tab_id)


@router.delete("/{tab_id}", response_model=TabListResponse)
async def close_tab(tab_id: str, store: WorkspaceStore = Depends(get_store)):
    """
    Close a tab.

    When the active tab is closed, the tab that takes its position becomes
    active (or the last tab, if it was the last one).
    """
    if not store.close_tab(tab_id):
        raise ResourceNotFoundError("Tab", tab_id)
    return TabListResponse(tabs=store.state.tabs, active_tab_id=store.state.active_tab_id)
