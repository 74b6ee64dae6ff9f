"""
Pydantic schemas for request execution history.
"""

from pydantic import Field

from .base import CamelModel, new_id
from .request import ApiRequest, ApiResponse


class RequestHistoryItem(CamelModel):
    """Immutable snapshot of an executed request and its response."""
    id: str = Field(default_factory=new_id)
    request: ApiRequest
    response: ApiResponse | None = None
    timestamp: int = 0


class HistoryEntryCreate(CamelModel):
    request: ApiRequest
    response: ApiResponse | None = None


class HistoryListResponse(CamelModel):
    """Schema for paginated history list response."""
    items: list[RequestHistoryItem]
    total: int
