"""
Request management API routes.

Provides CRUD operations for saved HTTP requests inside collections,
plus duplicating, reordering and moving requests.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_store
from ..exceptions import BadRequestError, ResourceNotFoundError
from ..schemas.base import changed_fields
from ..schemas.collection import MoveRequestPayload, ReorderPayload
from ..schemas.request import ApiRequest, RequestCreate, RequestUpdate
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api", tags=["requests"])


def _require_collection(store: WorkspaceStore, collection_id: str) -> None:
    if store.get_collection(collection_id) is None:
        raise ResourceNotFoundError("Collection", collection_id)


def _require_folder(store: WorkspaceStore, collection_id: str, folder_id: str | None) -> None:
    if folder_id is not None and store.get_folder(collection_id, folder_id) is None:
        raise ResourceNotFoundError("Folder", folder_id)


@router.post(
    "/collections/{collection_id}/requests",
    response_model=ApiRequest,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    collection_id: str,
    request_data: RequestCreate,
    store: WorkspaceStore = Depends(get_store),
):
    """
    Create a new request.

    Args:
        collection_id: The owning collection
        request_data: Request fields; ``folder_id`` selects the parent folder
        store: Workspace store

    Returns:
        The created request with its generated ID

    Raises:
        ResourceNotFoundError: If the collection or folder does not exist
    """
    _require_collection(store, collection_id)
    _require_folder(store, collection_id, request_data.folder_id)

    fields = changed_fields(request_data)
    folder_id = fields.pop("folder_id", None)
    overrides = {field: value for field, value in fields.items() if value is not None}
    return store.add_request(collection_id, folder_id, **overrides)


@router.post("/collections/{collection_id}/requests/reorder")
async def reorder_requests(
    collection_id: str,
    reorder_data: ReorderPayload,
    store: WorkspaceStore = Depends(get_store),
):
    """Reorder the requests of one level (the root when ``parent_folder_id`` is omitted)."""
    _require_collection(store, collection_id)
    _require_folder(store, collection_id, reorder_data.parent_folder_id)

    if not store.reorder_requests(
        collection_id, reorder_data.parent_folder_id, reorder_data.from_index, reorder_data.to_index
    ):
        raise BadRequestError("Reorder indices are out of range")
    return {"message": "Requests reordered successfully"}


@router.get("/collections/{collection_id}/requests/{request_id}", response_model=ApiRequest)
async def get_request(collection_id: str, request_id: str, store: WorkspaceStore = Depends(get_store)):
    """
    Get a single request by ID.

    Raises:
        ResourceNotFoundError: If the collection or request does not exist
    """
    _require_collection(store, collection_id)
    request = store.get_request(collection_id, request_id)
    if request is None:
        raise ResourceNotFoundError("Request", request_id)
    return request


@router.put("/collections/{collection_id}/requests/{request_id}", response_model=ApiRequest)
async def update_request(
    collection_id: str,
    request_id: str,
    request_data: RequestUpdate,
    store: WorkspaceStore = Depends(get_store),
):
    """
    Update an existing request.

    Only provided fields are updated. Renaming a request also retitles its
    open tabs.
    """
    _require_collection(store, collection_id)
    if not store.update_request(collection_id, request_id, request_data):
        raise ResourceNotFoundError("Request", request_id)
    return store.get_request(collection_id, request_id)


@router.delete("/collections/{collection_id}/requests/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_request(collection_id: str, request_id: str, store: WorkspaceStore = Depends(get_store)):
    """Delete a request by ID and close its tabs."""
    _require_collection(store, collection_id)
    if not store.delete_request(collection_id, request_id):
        raise ResourceNotFoundError("Request", request_id)
    return None


@router.post(
    "/collections/{collection_id}/requests/{request_id}/duplicate",
    response_model=ApiRequest,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_request(collection_id: str, request_id: str, store: WorkspaceStore = Depends(get_store)):
    """Copy a request to the collection root as "<name> (Copy)"."""
    _require_collection(store, collection_id)
    duplicated = store.duplicate_request(collection_id, request_id)
    if duplicated is None:
        raise ResourceNotFoundError("Request", request_id)
    return duplicated


@router.post("/requests/move")
async def move_request(move_data: MoveRequestPayload, store: WorkspaceStore = Depends(get_store)):
    """Move a request within its collection or into another one."""
    _require_collection(store, move_data.source_collection_id)
    _require_collection(store, move_data.target_collection_id)
    _require_folder(store, move_data.target_collection_id, move_data.target_folder_id)
    if store.get_request(move_data.source_collection_id, move_data.request_id) is None:
        raise ResourceNotFoundError("Request", move_data.request_id)

    store.move_request(
        move_data.source_collection_id,
        move_data.target_collection_id,
        move_data.request_id,
        move_data.target_folder_id,
        move_data.target_index,
    )
    return {"message": "Request moved successfully"}
