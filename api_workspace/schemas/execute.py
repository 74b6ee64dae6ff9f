"""
Pydantic schemas for request execution.

Defines the payload for executing a saved or ad-hoc request and the error
record returned when the executor cannot produce a response.
"""

from typing import Literal

from .base import CamelModel
from .request import ApiRequest


class ExecutePayload(CamelModel):
    """
    Schema for executing a request.

    ``collection_id`` supplies collection variables and inherited auth;
    ``tab_id`` names the tab that receives the response.
    """
    request: ApiRequest
    collection_id: str | None = None
    tab_id: str | None = None


class ExecuteError(CamelModel):
    """Schema for execution error response."""
    error: str
    error_type: Literal["network_error", "timeout", "invalid_url", "unknown"]
    details: str | None = None
