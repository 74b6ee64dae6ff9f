"""
Pydantic schemas for the persisted workspace document and export snapshots.
"""

from typing import Literal

from .base import CamelModel
from .collection import Collection
from .environment import Environment
from .history import RequestHistoryItem
from .request import ApiRequest
from .tab import TabState

PanelLayout = Literal["horizontal", "vertical"]

EXPORT_VERSION = "1.0"


class LayoutSettings(CamelModel):
    sidebar_width: int = 280
    sidebar_collapsed: bool = False
    request_panel_width: int = 50
    panel_layout: PanelLayout = "horizontal"


class LayoutUpdate(CamelModel):
    sidebar_width: int | None = None
    sidebar_collapsed: bool | None = None
    request_panel_width: int | None = None
    panel_layout: PanelLayout | None = None


class PersistedState(LayoutSettings):
    """The document written under the storage key after each mutation."""
    collections: list[Collection] = []
    environments: list[Environment] = []
    active_environment_id: str | None = None
    history: list[RequestHistoryItem] = []


class WorkspaceState(PersistedState):
    """
    Full in-memory snapshot of the workspace.

    Extends the persisted document with session-only state (tabs and the
    working request) that is never written to storage.
    """
    tabs: list[TabState] = []
    active_tab_id: str | None = None
    active_request: ApiRequest | None = None

    def to_persisted(self) -> PersistedState:
        return PersistedState.model_validate(
            {name: getattr(self, name) for name in PersistedState.model_fields}
        )


class AppStorageExport(CamelModel):
    """
    Portable snapshot of the workspace.

    Produced by export with every field set (``history`` omitted). Import
    payloads may carry any subset of the top-level fields.
    """
    version: str = EXPORT_VERSION
    exported_at: str | None = None
    collections: list[Collection] | None = None
    environments: list[Environment] | None = None
    active_environment_id: str | None = None
    history: list[RequestHistoryItem] | None = None

    def to_document(self) -> dict:
        """Dump to the export file layout (``activeEnvironmentId`` always present)."""
        document = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        document["activeEnvironmentId"] = self.active_environment_id
        return document
