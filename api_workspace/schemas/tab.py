"""
Pydantic schemas for open editor tabs.

The ``*_id`` fields are weak lookup keys into the collection tree and the
environment list. They may dangle; the store closes or repairs tabs when
the referenced entity is deleted or moved.
"""

from typing import Literal

from pydantic import Field

from .base import CamelModel, new_id
from .history import RequestHistoryItem
from .request import ApiResponse

TabType = Literal["request", "collection", "environment"]


class TabOpen(CamelModel):
    """Descriptor for opening a tab (a tab without its ID)."""
    type: TabType
    title: str
    request_id: str | None = None
    collection_id: str | None = None
    folder_id: str | None = None
    environment_id: str | None = None
    is_modified: bool = False
    history_item: RequestHistoryItem | None = None


class TabState(TabOpen):
    id: str = Field(default_factory=new_id)
    response: ApiResponse | None = None


class TabUpdate(CamelModel):
    """Schema for updating a tab. All fields are optional."""
    title: str | None = None
    is_modified: bool | None = None
    collection_id: str | None = None
    folder_id: str | None = None
    response: ApiResponse | None = None


class TabListResponse(CamelModel):
    tabs: list[TabState]
    active_tab_id: str | None = None
