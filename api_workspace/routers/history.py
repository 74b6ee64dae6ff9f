"""
History record API routes.

Provides endpoints for viewing and managing request execution history.
History records are created automatically when requests are executed and
the list is capped at the configured maximum, most recent first.
"""

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_store
from ..exceptions import ResourceNotFoundError
from ..schemas.history import HistoryEntryCreate, HistoryListResponse, RequestHistoryItem
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=HistoryListResponse)
async def list_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    store: WorkspaceStore = Depends(get_store),
):
    """
    Get history records, most recent first.

    Args:
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return
        store: Workspace store

    Returns:
        HistoryListResponse with items and total count
    """
    history = store.state.history
    return HistoryListResponse(items=history[skip:skip + limit], total=len(history))


@router.post("", response_model=RequestHistoryItem, status_code=status.HTTP_201_CREATED)
async def add_history(entry: HistoryEntryCreate, store: WorkspaceStore = Depends(get_store)):
    """Record a request/response pair; the oldest record is evicted when full."""
    return store.add_to_history(entry.request, entry.response)


@router.get("/{history_id}", response_model=RequestHistoryItem)
async def get_history(history_id: str, store: WorkspaceStore = Depends(get_store)):
    """
    Get a single history record by ID.

    Raises:
        ResourceNotFoundError: If the history record does not exist
    """
    item = store.get_history_item(history_id)
    if item is None:
        raise ResourceNotFoundError("History record", history_id)
    return item


@router.delete("/{history_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history(history_id: str, store: WorkspaceStore = Depends(get_store)):
    if not store.delete_history_item(history_id):
        raise ResourceNotFoundError("History record", history_id)
    return None


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_all_history(store: WorkspaceStore = Depends(get_store)):
    """Clear all history records."""
    store.clear_history()
    return None
