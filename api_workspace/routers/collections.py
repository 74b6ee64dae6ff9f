"""
Collection and folder management API routes.

Provides CRUD operations for collections and the folders nested inside
them, plus reordering, moving, import and export of single collections.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Response, status

from ..dependencies import get_store
from ..exceptions import BadRequestError, ResourceNotFoundError
from ..schemas.collection import (
    Collection,
    CollectionCreate,
    CollectionUpdate,
    FolderCreate,
    FolderUpdate,
    MoveFolderPayload,
    ReorderPayload,
    RequestFolder,
)
from ..services.import_export import export_to_postman
from ..services.workspace_store import WorkspaceStore


router = APIRouter(prefix="/api", tags=["collections"])


def _get_collection_or_404(store: WorkspaceStore, collection_id: str) -> Collection:
    collection = store.get_collection(collection_id)
    if collection is None:
        raise ResourceNotFoundError("Collection", collection_id)
    return collection


def _get_folder_or_404(store: WorkspaceStore, collection_id: str, folder_id: str) -> RequestFolder:
    _get_collection_or_404(store, collection_id)
    folder = store.get_folder(collection_id, folder_id)
    if folder is None:
        raise ResourceNotFoundError("Folder", folder_id)
    return folder


# Collection endpoints

@router.get("/collections", response_model=list[Collection])
async def list_collections(store: WorkspaceStore = Depends(get_store)):
    """List all collections with their full folder/request trees."""
    return store.state.collections


@router.post("/collections", response_model=Collection, status_code=status.HTTP_201_CREATED)
async def create_collection(collection_data: CollectionCreate, store: WorkspaceStore = Depends(get_store)):
    """Create an empty collection."""
    return store.add_collection(collection_data.name, collection_data.description)


@router.post("/collections/reorder")
async def reorder_collections(reorder_data: ReorderPayload, store: WorkspaceStore = Depends(get_store)):
    """Move the collection at ``from_index`` to ``to_index``."""
    if not store.reorder_collections(reorder_data.from_index, reorder_data.to_index):
        raise BadRequestError("Reorder indices are out of range")
    return {"message": "Collections reordered successfully"}


@router.post("/collections/import", response_model=Collection, status_code=status.HTTP_201_CREATED)
async def import_collection(collection: Collection, store: WorkspaceStore = Depends(get_store)):
    """
    Import a single collection.

    Every ID in the imported tree is regenerated, so importing the same
    file twice creates two independent collections.
    """
    return store.import_collection(collection)


@router.get("/collections/{collection_id}", response_model=Collection)
async def get_collection(collection_id: str, store: WorkspaceStore = Depends(get_store)):
    return _get_collection_or_404(store, collection_id)


@router.put("/collections/{collection_id}", response_model=Collection)
async def update_collection(
    collection_id: str,
    collection_data: CollectionUpdate,
    store: WorkspaceStore = Depends(get_store),
):
    """Update collection fields. Only fields present in the body are changed."""
    if not store.update_collection(collection_id, collection_data):
        raise ResourceNotFoundError("Collection", collection_id)
    return store.get_collection(collection_id)


@router.delete("/collections/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(collection_id: str, store: WorkspaceStore = Depends(get_store)):
    """Delete a collection. Tabs pointing into it are closed."""
    if not store.delete_collection(collection_id):
        raise ResourceNotFoundError("Collection", collection_id)
    return None


@router.post("/collections/{collection_id}/toggle", response_model=Collection)
async def toggle_collection(collection_id: str, store: WorkspaceStore = Depends(get_store)):
    if not store.toggle_collection_expanded(collection_id):
        raise ResourceNotFoundError("Collection", collection_id)
    return store.get_collection(collection_id)


@router.get("/collections/{collection_id}/export")
async def export_collection(
    collection_id: str,
    format: Literal["native", "postman"] = "native",
    store: WorkspaceStore = Depends(get_store),
):
    """
    Export one collection.

    ``native`` returns the collection record as stored; ``postman`` returns a
    Postman v2.1 collection document.
    """
    collection = store.export_collection(collection_id)
    if collection is None:
        raise ResourceNotFoundError("Collection", collection_id)
    if format == "postman":
        return Response(content=export_to_postman(collection), media_type="application/json")
    return collection.to_json_dict()


# Folder endpoints

@router.post(
    "/collections/{collection_id}/folders",
    response_model=RequestFolder,
    status_code=status.HTTP_201_CREATED,
)
async def create_folder(
    collection_id: str,
    folder_data: FolderCreate,
    store: WorkspaceStore = Depends(get_store),
):
    """Create a folder at the collection root or under ``parent_folder_id``."""
    _get_collection_or_404(store, collection_id)
    folder = store.add_folder(collection_id, folder_data.parent_folder_id, folder_data.name)
    if folder is None:
        raise ResourceNotFoundError("Folder", folder_data.parent_folder_id)
    return folder


@router.post("/collections/{collection_id}/folders/reorder")
async def reorder_folders(
    collection_id: str,
    reorder_data: ReorderPayload,
    store: WorkspaceStore = Depends(get_store),
):
    """Reorder the folders of one level (the root when ``parent_folder_id`` is omitted)."""
    _get_collection_or_404(store, collection_id)
    if reorder_data.parent_folder_id is not None:
        _get_folder_or_404(store, collection_id, reorder_data.parent_folder_id)

    if not store.reorder_folders(
        collection_id, reorder_data.parent_folder_id, reorder_data.from_index, reorder_data.to_index
    ):
        raise BadRequestError("Reorder indices are out of range")
    return {"message": "Folders reordered successfully"}


@router.get("/collections/{collection_id}/folders/{folder_id}", response_model=RequestFolder)
async def get_folder(collection_id: str, folder_id: str, store: WorkspaceStore = Depends(get_store)):
    return _get_folder_or_404(store, collection_id, folder_id)


@router.put("/collections/{collection_id}/folders/{folder_id}", response_model=RequestFolder)
async def update_folder(
    collection_id: str,
    folder_id: str,
    folder_data: FolderUpdate,
    store: WorkspaceStore = Depends(get_store),
):
    _get_folder_or_404(store, collection_id, folder_id)
    store.update_folder(collection_id, folder_id, folder_data)
    return store.get_folder(collection_id, folder_id)


@router.delete("/collections/{collection_id}/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(collection_id: str, folder_id: str, store: WorkspaceStore = Depends(get_store)):
    """Delete a folder by ID. Cascades to all sub-folders and requests."""
    _get_folder_or_404(store, collection_id, folder_id)
    store.delete_folder(collection_id, folder_id)
    return None


@router.post("/collections/{collection_id}/folders/{folder_id}/toggle", response_model=RequestFolder)
async def toggle_folder(collection_id: str, folder_id: str, store: WorkspaceStore = Depends(get_store)):
    _get_folder_or_404(store, collection_id, folder_id)
    store.toggle_folder_expanded(collection_id, folder_id)
    return store.get_folder(collection_id, folder_id)


@router.post("/folders/move")
async def move_folder(move_data: MoveFolderPayload, store: WorkspaceStore = Depends(get_store)):
    """
    Move a folder with its whole subtree.

    The target may be another collection. Moving a folder into itself or
    one of its descendants is rejected.
    """
    _get_folder_or_404(store, move_data.source_collection_id, move_data.folder_id)
    _get_collection_or_404(store, move_data.target_collection_id)
    if move_data.target_folder_id is not None:
        _get_folder_or_404(store, move_data.target_collection_id, move_data.target_folder_id)

    if not store.move_folder(
        move_data.source_collection_id,
        move_data.target_collection_id,
        move_data.folder_id,
        move_data.target_folder_id,
        move_data.target_index,
    ):
        raise BadRequestError("A folder cannot be moved into itself or one of its descendants")
    return {"message": "Folder moved successfully"}
