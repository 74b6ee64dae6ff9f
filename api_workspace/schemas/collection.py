"""
Pydantic schemas for collections and folders.

A collection owns an ordered forest of folders and requests; folders nest
recursively with no depth limit.
"""

from pydantic import Field

from .base import CamelModel, new_id
from .request import ApiRequest, KeyValue, RequestAuth


class RequestFolder(CamelModel):
    """Recursive grouping node inside a collection."""
    id: str = Field(default_factory=new_id)
    name: str
    description: str | None = None
    requests: list[ApiRequest] = []
    folders: list["RequestFolder"] = []
    expanded: bool = True
    auth: RequestAuth | None = None


RequestFolder.model_rebuild()


class Collection(CamelModel):
    """Top-level owner of a folder/request tree."""
    id: str = Field(default_factory=new_id)
    name: str
    description: str | None = None
    folders: list[RequestFolder] = []
    requests: list[ApiRequest] = []
    variables: list[KeyValue] = []
    expanded: bool = True
    auth: RequestAuth | None = None


# Create/update schemas

class CollectionCreate(CamelModel):
    name: str
    description: str | None = None


class CollectionUpdate(CamelModel):
    """Schema for updating a collection. Child trees are edited through folder/request operations."""
    name: str | None = None
    description: str | None = None
    variables: list[KeyValue] | None = None
    expanded: bool | None = None
    auth: RequestAuth | None = None


class FolderCreate(CamelModel):
    name: str
    parent_folder_id: str | None = None


class FolderUpdate(CamelModel):
    """Schema for updating a folder. All fields are optional."""
    name: str | None = None
    description: str | None = None
    expanded: bool | None = None
    auth: RequestAuth | None = None


# Reorder/move schemas

class ReorderPayload(CamelModel):
    """Move the item at ``from_index`` to ``to_index`` within one list."""
    from_index: int
    to_index: int
    parent_folder_id: str | None = None


class MoveRequestPayload(CamelModel):
    source_collection_id: str
    target_collection_id: str
    request_id: str
    target_folder_id: str | None = None
    target_index: int | None = None


class MoveFolderPayload(CamelModel):
    source_collection_id: str
    target_collection_id: str
    folder_id: str
    target_folder_id: str | None = None
    target_index: int | None = None
