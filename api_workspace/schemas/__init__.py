"""
Pydantic schemas package.

Exports all entity records and API payload schemas.
"""

from .base import CamelModel, changed_fields, new_id

from .request import (
    HttpMethod,
    BodyType,
    AuthType,
    KeyValue,
    BasicAuth,
    BearerAuth,
    ApiKeyAuth,
    RequestAuth,
    RequestBody,
    ApiRequest,
    RequestCreate,
    RequestUpdate,
    ApiResponse,
    new_request,
)

from .collection import (
    RequestFolder,
    Collection,
    CollectionCreate,
    CollectionUpdate,
    FolderCreate,
    FolderUpdate,
    ReorderPayload,
    MoveRequestPayload,
    MoveFolderPayload,
)

from .environment import (
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
    ActiveEnvironmentPayload,
)

from .history import (
    RequestHistoryItem,
    HistoryEntryCreate,
    HistoryListResponse,
)

from .tab import (
    TabType,
    TabOpen,
    TabState,
    TabUpdate,
    TabListResponse,
)

from .storage import (
    EXPORT_VERSION,
    PanelLayout,
    LayoutSettings,
    LayoutUpdate,
    PersistedState,
    WorkspaceState,
    AppStorageExport,
)

from .execute import (
    ExecutePayload,
    ExecuteError,
)

__all__ = [
    # Base helpers
    "CamelModel",
    "changed_fields",
    "new_id",
    # Request schemas
    "HttpMethod",
    "BodyType",
    "AuthType",
    "KeyValue",
    "BasicAuth",
    "BearerAuth",
    "ApiKeyAuth",
    "RequestAuth",
    "RequestBody",
    "ApiRequest",
    "RequestCreate",
    "RequestUpdate",
    "ApiResponse",
    "new_request",
    # Collection schemas
    "RequestFolder",
    "Collection",
    "CollectionCreate",
    "CollectionUpdate",
    "FolderCreate",
    "FolderUpdate",
    "ReorderPayload",
    "MoveRequestPayload",
    "MoveFolderPayload",
    # Environment schemas
    "Environment",
    "EnvironmentCreate",
    "EnvironmentUpdate",
    "ActiveEnvironmentPayload",
    # History schemas
    "RequestHistoryItem",
    "HistoryEntryCreate",
    "HistoryListResponse",
    # Tab schemas
    "TabType",
    "TabOpen",
    "TabState",
    "TabUpdate",
    "TabListResponse",
    # Storage schemas
    "EXPORT_VERSION",
    "PanelLayout",
    "LayoutSettings",
    "LayoutUpdate",
    "PersistedState",
    "WorkspaceState",
    "AppStorageExport",
    # Execute schemas
    "ExecutePayload",
    "ExecuteError",
]
