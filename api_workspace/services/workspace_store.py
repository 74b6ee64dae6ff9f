"""
Workspace store: the single owner of collections, environments, tabs and history.

The store holds one immutable ``WorkspaceState`` snapshot. Every command
computes a new snapshot from the pure tree, tab, history and environment
services and swaps it in, so a reader holding an older snapshot never sees a
partial edit. After each effective mutation the store notifies subscribers
and hands the persisted part of the state to the background persistence
worker; the in-memory state never waits on storage.

Commands that target a missing ID are no-ops and report it by returning
False or None.
"""

import json
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from pydantic import BaseModel, ValidationError

from ..exceptions import ImportValidationError
from ..schemas.base import changed_fields
from ..schemas.collection import (
    Collection,
    CollectionUpdate,
    FolderUpdate,
    RequestFolder,
)
from ..schemas.environment import Environment, EnvironmentUpdate
from ..schemas.history import RequestHistoryItem
from ..schemas.request import ApiRequest, ApiResponse, RequestUpdate, new_request
from ..schemas.storage import (
    AppStorageExport,
    LayoutUpdate,
    PanelLayout,
    PersistedState,
    WorkspaceState,
)
from ..schemas.tab import TabOpen, TabState, TabUpdate
from . import environment_registry, history_service, tab_sync, tree_operations
from .import_export import IMPORT_FIELDS, build_export, validate_import_payload
from .persistence import PersistenceAdapter, PersistenceWorker
from .variable_substitution import resolve_request_variables

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "api-workspace-storage"

PERSISTED_FIELDS = frozenset(PersistedState.model_fields)

Listener = Callable[[WorkspaceState], None]
LevelEdit = Callable[[list[RequestFolder], list[ApiRequest]], tree_operations.TreeLevel]


def _as_patch(
    patch: BaseModel | dict[str, Any], schema: type[BaseModel], target: type[BaseModel]
) -> dict[str, Any]:
    """Normalize a partial update for a ``target`` record given as a schema instance or a plain dict."""
    if isinstance(patch, dict):
        patch = schema.model_validate(patch)
    return changed_fields(patch, target)


def load_persisted_state(adapter: PersistenceAdapter, key: str) -> PersistedState:
    """
    Read the persisted document.

    A missing, empty or malformed document yields an empty workspace; the
    problem is logged rather than raised.
    """
    try:
        raw = adapter.read(key)
    except Exception:
        logger.exception("Failed to read workspace from storage key %s", key)
        return PersistedState()

    if not raw:
        return PersistedState()

    try:
        state = PersistedState.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed workspace document under %s: %s", key, exc)
        return PersistedState()

    duplicates = tree_operations.find_duplicate_ids(state.collections)
    if duplicates:
        logger.warning("Workspace contains %d duplicate entity id(s)", len(duplicates))
    return state


class WorkspaceStore:
    """
    Command API over the workspace state.

    Args:
        adapter: Storage backend; None keeps the workspace in memory only
        storage_key: Key the workspace document is written under
        max_history_items: History capacity
        state: Initial state (defaults to an empty workspace)
    """

    def __init__(
        self,
        adapter: PersistenceAdapter | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        max_history_items: int = history_service.DEFAULT_MAX_HISTORY_ITEMS,
        state: WorkspaceState | None = None,
    ):
        self._state = state or WorkspaceState()
        self._listeners: list[Listener] = []
        self._batch_depth = 0
        self._batch_dirty = False
        self._batch_persist = False
        self.storage_key = storage_key
        self.max_history_items = max_history_items
        self._worker = PersistenceWorker(adapter, storage_key) if adapter is not None else None

    @classmethod
    def load(
        cls,
        adapter: PersistenceAdapter,
        storage_key: str = DEFAULT_STORAGE_KEY,
        max_history_items: int = history_service.DEFAULT_MAX_HISTORY_ITEMS,
    ) -> "WorkspaceStore":
        """Create a store initialized from the adapter's stored document."""
        persisted = load_persisted_state(adapter, storage_key)
        state = WorkspaceState(**{name: getattr(persisted, name) for name in PERSISTED_FIELDS})
        logger.info(
            "Loaded workspace: %d collection(s), %d environment(s), %d history item(s)",
            len(state.collections), len(state.environments), len(state.history),
        )
        return cls(adapter, storage_key, max_history_items, state)

    # ------------------------------------------------------------------
    # State, subscriptions and persistence
    # ------------------------------------------------------------------

    @property
    def state(self) -> WorkspaceState:
        """The current snapshot. Snapshots are never modified after publication."""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with each new state; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def batch(self) -> Iterator["WorkspaceStore"]:
        """Group several commands so listeners and storage see only the final state."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._batch_dirty:
                persist = self._batch_persist
                self._batch_dirty = self._batch_persist = False
                self._publish(persist)

    def serialize(self) -> str:
        """Serialize the persisted part of the current state."""
        persisted = self._state.to_persisted()
        document = persisted.model_dump(mode="json", by_alias=True, exclude_none=True)
        document["activeEnvironmentId"] = persisted.active_environment_id
        return json.dumps(document)

    def flush(self, timeout: float | None = 5.0) -> bool:
        """Wait for pending writes. Returns True when storage has caught up."""
        if self._worker is None:
            return True
        return self._worker.flush(timeout)

    def close(self) -> None:
        if self._worker is not None:
            self._worker.close()

    def _commit(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        persist = not PERSISTED_FIELDS.isdisjoint(changes)
        if self._batch_depth:
            self._batch_dirty = True
            self._batch_persist = self._batch_persist or persist
            return
        self._publish(persist)

    def _publish(self, persist: bool) -> None:
        if persist and self._worker is not None:
            self._worker.submit(self.serialize())
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Workspace listener %r failed", listener)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def _collection_index(self, collection_id: str) -> int:
        for index, collection in enumerate(self._state.collections):
            if collection.id == collection_id:
                return index
        return -1

    def get_collection(self, collection_id: str) -> Collection | None:
        index = self._collection_index(collection_id)
        return self._state.collections[index] if index != -1 else None

    def _edit_level(self, collection_id: str, edit: LevelEdit) -> list[Collection] | None:
        """Run a tree edit on one collection; None when the collection or target is missing."""
        index = self._collection_index(collection_id)
        if index == -1:
            return None
        collection = self._state.collections[index]
        result = edit(collection.folders, collection.requests)
        if not result.found:
            return None
        collections = list(self._state.collections)
        collections[index] = collection.model_copy(
            update={"folders": result.folders, "requests": result.requests}
        )
        return collections

    def add_collection(self, name: str, description: str | None = None) -> Collection:
        collection = Collection(name=name, description=description)
        self._commit(collections=self._state.collections + [collection])
        return collection

    def update_collection(self, collection_id: str, patch: CollectionUpdate | dict) -> bool:
        index = self._collection_index(collection_id)
        if index == -1:
            return False
        collections = list(self._state.collections)
        fields = _as_patch(patch, CollectionUpdate, Collection)
        collections[index] = collections[index].model_copy(update=fields)
        self._commit(collections=collections)
        return True

    def delete_collection(self, collection_id: str) -> bool:
        """Delete a collection and close every tab that points into it."""
        collection = self.get_collection(collection_id)
        if collection is None:
            return False

        request_ids = {
            request.id for request in tree_operations.iter_requests(collection.folders, collection.requests)
        }
        tabs, active_tab_id = tab_sync.close_tabs_where(
            self._state.tabs,
            self._state.active_tab_id,
            lambda tab: tab.collection_id == collection_id or tab.request_id in request_ids,
        )
        self._commit(
            collections=[c for c in self._state.collections if c.id != collection_id],
            tabs=tabs,
            active_tab_id=active_tab_id,
        )
        return True

    def reorder_collections(self, from_index: int, to_index: int) -> bool:
        reordered = tree_operations.reorder_list(self._state.collections, from_index, to_index)
        if reordered is None:
            return False
        self._commit(collections=reordered)
        return True

    def toggle_collection_expanded(self, collection_id: str) -> bool:
        collection = self.get_collection(collection_id)
        if collection is None:
            return False
        return self.update_collection(collection_id, {"expanded": not collection.expanded})

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def add_folder(self, collection_id: str, parent_folder_id: str | None, name: str) -> RequestFolder | None:
        folder = RequestFolder(name=name)
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.insert_folder(folders, requests, parent_folder_id, folder),
        )
        if collections is None:
            return None
        self._commit(collections=collections)
        return folder

    def get_folder(self, collection_id: str, folder_id: str) -> RequestFolder | None:
        collection = self.get_collection(collection_id)
        if collection is None:
            return None
        return tree_operations.find_folder(collection.folders, folder_id)

    def update_folder(self, collection_id: str, folder_id: str, patch: FolderUpdate | dict) -> bool:
        fields = _as_patch(patch, FolderUpdate, RequestFolder)
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.update_folder(folders, requests, folder_id, fields),
        )
        if collections is None:
            return False
        self._commit(collections=collections)
        return True

    def delete_folder(self, collection_id: str, folder_id: str) -> bool:
        """Delete a folder subtree and close tabs of every request nested in it."""
        folder = self.get_folder(collection_id, folder_id)
        if folder is None:
            return False

        request_ids = tree_operations.collect_request_ids(folder)
        folder_ids = tree_operations.collect_folder_ids(folder)
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.delete_folder(folders, requests, folder_id),
        )
        tabs, active_tab_id = tab_sync.close_tabs_where(
            self._state.tabs,
            self._state.active_tab_id,
            lambda tab: tab.request_id in request_ids
            or (tab.request_id is None and tab.folder_id in folder_ids),
        )
        self._commit(collections=collections, tabs=tabs, active_tab_id=active_tab_id)
        return True

    def toggle_folder_expanded(self, collection_id: str, folder_id: str) -> bool:
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.toggle_folder_expanded(folders, requests, folder_id),
        )
        if collections is None:
            return False
        self._commit(collections=collections)
        return True

    def reorder_folders(
        self,
        collection_id: str,
        parent_folder_id: str | None,
        from_index: int,
        to_index: int,
    ) -> bool:
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.reorder_folders(
                folders, requests, parent_folder_id, from_index, to_index
            ),
        )
        if collections is None:
            return False
        self._commit(collections=collections)
        return True

    def move_folder(
        self,
        source_collection_id: str,
        target_collection_id: str,
        folder_id: str,
        target_folder_id: str | None = None,
        target_index: int | None = None,
    ) -> bool:
        """Move a folder with its whole subtree and re-home tabs of everything inside it."""
        folder = self.get_folder(source_collection_id, folder_id)
        if folder is None:
            return False

        collections = tree_operations.move_folder(
            self._state.collections,
            source_collection_id,
            target_collection_id,
            folder_id,
            target_folder_id,
            target_index,
        )
        if collections is None:
            return False

        target = next(c for c in collections if c.id == target_collection_id)
        tabs = tab_sync.rehome_tabs(
            self._state.tabs,
            target,
            tree_operations.collect_request_ids(folder),
            tree_operations.collect_folder_ids(folder),
        )
        self._commit(collections=collections, tabs=tabs)
        return True

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def add_request(self, collection_id: str, folder_id: str | None = None, **overrides: Any) -> ApiRequest | None:
        request = new_request(**overrides)
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.insert_request(folders, requests, folder_id, request),
        )
        if collections is None:
            return None
        self._commit(collections=collections)
        return request

    def get_request(self, collection_id: str, request_id: str) -> ApiRequest | None:
        collection = self.get_collection(collection_id)
        if collection is None:
            return None
        return tree_operations.find_request(collection.folders, collection.requests, request_id)

    def update_request(self, collection_id: str, request_id: str, patch: RequestUpdate | dict) -> bool:
        """Update a request; a new name is propagated into its tab titles."""
        fields = _as_patch(patch, RequestUpdate, ApiRequest)
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.update_request(folders, requests, request_id, fields),
        )
        if collections is None:
            return False

        changes: dict[str, Any] = {"collections": collections}
        if "name" in fields:
            changes["tabs"] = tab_sync.rename_request_tabs(self._state.tabs, request_id, fields["name"])
        self._commit(**changes)
        return True

    def delete_request(self, collection_id: str, request_id: str) -> bool:
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.delete_request(folders, requests, request_id),
        )
        if collections is None:
            return False

        tabs, active_tab_id = tab_sync.close_tabs_where(
            self._state.tabs, self._state.active_tab_id, lambda tab: tab.request_id == request_id
        )
        self._commit(collections=collections, tabs=tabs, active_tab_id=active_tab_id)
        return True

    def duplicate_request(self, collection_id: str, request_id: str) -> ApiRequest | None:
        """Copy a request as "<name> (Copy)" to the collection root level."""
        original = self.get_request(collection_id, request_id)
        if original is None:
            return None

        duplicated = tree_operations.regenerate_request_ids(original)
        duplicated = duplicated.model_copy(update={"name": f"{original.name} (Copy)"})
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.insert_request(folders, requests, None, duplicated),
        )
        self._commit(collections=collections)
        return duplicated

    def reorder_requests(
        self,
        collection_id: str,
        folder_id: str | None,
        from_index: int,
        to_index: int,
    ) -> bool:
        collections = self._edit_level(
            collection_id,
            lambda folders, requests: tree_operations.reorder_requests(
                folders, requests, folder_id, from_index, to_index
            ),
        )
        if collections is None:
            return False
        self._commit(collections=collections)
        return True

    def move_request(
        self,
        source_collection_id: str,
        target_collection_id: str,
        request_id: str,
        target_folder_id: str | None = None,
        target_index: int | None = None,
    ) -> bool:
        """Move a request and point its open tabs at the new collection and folder."""
        collections = tree_operations.move_request(
            self._state.collections,
            source_collection_id,
            target_collection_id,
            request_id,
            target_folder_id,
            target_index,
        )
        if collections is None:
            return False

        target = next(c for c in collections if c.id == target_collection_id)
        tabs = tab_sync.rehome_tabs(self._state.tabs, target, [request_id])
        self._commit(collections=collections, tabs=tabs)
        return True

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    def get_environment(self, environment_id: str) -> Environment | None:
        return environment_registry.find_environment(self._state.environments, environment_id)

    def add_environment(self, name: str) -> Environment:
        environments, environment = environment_registry.add_environment(self._state.environments, name)
        self._commit(environments=environments)
        return environment

    def update_environment(self, environment_id: str, patch: EnvironmentUpdate | dict) -> bool:
        environments, found = environment_registry.update_environment(
            self._state.environments, environment_id, _as_patch(patch, EnvironmentUpdate, Environment)
        )
        if not found:
            return False
        self._commit(environments=environments)
        return True

    def delete_environment(self, environment_id: str) -> bool:
        """Delete an environment, clearing the active pointer and closing its tabs."""
        environments, active_environment_id, found = environment_registry.delete_environment(
            self._state.environments, self._state.active_environment_id, environment_id
        )
        if not found:
            return False

        tabs, active_tab_id = tab_sync.close_tabs_where(
            self._state.tabs, self._state.active_tab_id, lambda tab: tab.environment_id == environment_id
        )
        self._commit(
            environments=environments,
            active_environment_id=active_environment_id,
            tabs=tabs,
            active_tab_id=active_tab_id,
        )
        return True

    def set_active_environment(self, environment_id: str | None) -> bool:
        active_environment_id, ok = environment_registry.set_active_environment(
            self._state.environments, environment_id
        )
        if not ok:
            return False
        self._commit(active_environment_id=active_environment_id)
        return True

    def get_active_environment(self) -> Environment | None:
        return environment_registry.get_active_environment(
            self._state.environments, self._state.active_environment_id
        )

    def duplicate_environment(self, environment_id: str) -> Environment | None:
        environments, duplicated = environment_registry.duplicate_environment(
            self._state.environments, environment_id
        )
        if duplicated is None:
            return None
        self._commit(environments=environments)
        return duplicated

    def import_environment(self, environment: Environment) -> Environment:
        environments, imported = environment_registry.import_environment(
            self._state.environments, environment
        )
        self._commit(environments=environments)
        return imported

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------

    def get_tab(self, tab_id: str) -> TabState | None:
        return next((tab for tab in self._state.tabs if tab.id == tab_id), None)

    def open_tab(self, descriptor: TabOpen | dict) -> TabState:
        """Open a tab, or activate the existing tab for the same request."""
        if isinstance(descriptor, dict):
            descriptor = TabOpen.model_validate(descriptor)
        tabs, active_tab_id = tab_sync.open_tab(self._state.tabs, descriptor)
        self._commit(tabs=tabs, active_tab_id=active_tab_id)
        return self.get_tab(active_tab_id)

    def close_tab(self, tab_id: str) -> bool:
        tabs, active_tab_id, found = tab_sync.close_tab(self._state.tabs, self._state.active_tab_id, tab_id)
        if not found:
            return False
        self._commit(tabs=tabs, active_tab_id=active_tab_id)
        return True

    def set_active_tab(self, tab_id: str) -> bool:
        if self.get_tab(tab_id) is None:
            return False
        self._commit(active_tab_id=tab_id)
        return True

    def update_tab(self, tab_id: str, patch: TabUpdate | dict) -> bool:
        tabs, found = tab_sync.update_tab(self._state.tabs, tab_id, _as_patch(patch, TabUpdate, TabState))
        if not found:
            return False
        self._commit(tabs=tabs)
        return True

    def prune_stale_tabs(self) -> int:
        """Close tabs whose references no longer resolve; returns how many were closed."""
        tabs, active_tab_id = tab_sync.prune_stale_tabs(
            self._state.tabs,
            self._state.active_tab_id,
            self._state.collections,
            self._state.environments,
        )
        closed = len(self._state.tabs) - len(tabs)
        if closed:
            self._commit(tabs=tabs, active_tab_id=active_tab_id)
        return closed

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_to_history(self, request: ApiRequest, response: ApiResponse | None = None) -> RequestHistoryItem:
        history, item = history_service.add_history_item(
            self._state.history, request, response, self.max_history_items
        )
        self._commit(history=history)
        return item

    def clear_history(self) -> None:
        self._commit(history=[])

    def delete_history_item(self, history_id: str) -> bool:
        history, found = history_service.remove_history_item(self._state.history, history_id)
        if not found:
            return False
        self._commit(history=history)
        return True

    def get_history_item(self, history_id: str) -> RequestHistoryItem | None:
        return history_service.find_history_item(self._state.history, history_id)

    def record_execution(
        self,
        request: ApiRequest,
        response: ApiResponse,
        collection_id: str | None = None,
        tab_id: str | None = None,
    ) -> RequestHistoryItem:
        """
        Record an executed request and its response.

        The history entry stores the request with non-secret variables
        resolved; secret variables stay as placeholders. The response is also
        attached to the originating tab when one is given.
        """
        collection = self.get_collection(collection_id) if collection_id else None
        environment = self.get_active_environment()
        resolved = resolve_request_variables(
            request,
            collection.variables if collection is not None else [],
            environment.variables if environment is not None else [],
        )
        with self.batch():
            item = self.add_to_history(resolved, response)
            if tab_id is not None:
                self.update_tab(tab_id, {"response": response})
        return item

    # ------------------------------------------------------------------
    # Session state and layout
    # ------------------------------------------------------------------

    def set_active_request(self, request: ApiRequest | None) -> None:
        self._commit(active_request=request)

    def update_layout(self, patch: LayoutUpdate | dict) -> None:
        self._commit(**_as_patch(patch, LayoutUpdate, PersistedState))

    def set_sidebar_width(self, width: int) -> None:
        self._commit(sidebar_width=width)

    def toggle_sidebar(self) -> None:
        self._commit(sidebar_collapsed=not self._state.sidebar_collapsed)

    def set_request_panel_width(self, width: int) -> None:
        self._commit(request_panel_width=width)

    def set_panel_layout(self, layout: PanelLayout) -> None:
        self._commit(panel_layout=layout)

    def toggle_panel_layout(self) -> None:
        self._commit(panel_layout="vertical" if self._state.panel_layout == "horizontal" else "horizontal")

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def import_collection(self, collection: Collection) -> Collection:
        """Append a collection with every ID in its tree regenerated."""
        imported = tree_operations.regenerate_collection_ids(collection)
        self._commit(collections=self._state.collections + [imported])
        logger.info("Imported collection %r", imported.name)
        return imported

    def export_collection(self, collection_id: str) -> Collection | None:
        return self.get_collection(collection_id)

    def export_full_storage(self) -> AppStorageExport:
        """Build a redacted snapshot of collections and environments."""
        return build_export(self._state)

    def import_full_storage(self, data: AppStorageExport | Any) -> None:
        """
        Replace the workspace with an imported snapshot.

        Collections, environments and history present in the payload replace
        the current lists wholesale; absent fields are left alone. All tabs
        are closed.

        Raises:
            ImportValidationError: The payload is rejected; nothing changes.
        """
        if not isinstance(data, AppStorageExport):
            data = validate_import_payload(data)
        elif all(getattr(data, field) is None for field in IMPORT_FIELDS):
            raise ImportValidationError("Nothing to import")

        changes: dict[str, Any] = {
            "tabs": [],
            "active_tab_id": None,
            "active_request": None,
        }
        if data.collections is not None:
            changes["collections"] = [
                tree_operations.regenerate_collection_ids(collection) for collection in data.collections
            ]
        if data.environments is not None:
            changes["environments"] = data.environments
        if data.history is not None:
            changes["history"] = data.history

        environments = changes.get("environments", self._state.environments)
        if "active_environment_id" in data.model_fields_set:
            active_environment_id = data.active_environment_id
        else:
            active_environment_id = self._state.active_environment_id
        active_environment_id, _ = environment_registry.set_active_environment(
            environments, active_environment_id
        )
        changes["active_environment_id"] = active_environment_id

        self._commit(**changes)
        logger.info(
            "Imported workspace snapshot: %d collection(s), %d environment(s)",
            len(self._state.collections), len(self._state.environments),
        )
