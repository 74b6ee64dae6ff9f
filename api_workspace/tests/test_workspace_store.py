"""
Tests for the workspace store command API.

Covers cascades between the tree and open tabs, environment handling,
history recording, import/export scenarios, notifications and persistence.
"""

import json
import logging

import pytest

from api_workspace.exceptions import ImportValidationError
from api_workspace.schemas.request import ApiResponse, BearerAuth, KeyValue, RequestAuth
from api_workspace.schemas.tab import TabOpen
from api_workspace.services import tree_operations as tree
from api_workspace.services.import_export import export_to_postman
from api_workspace.services.persistence import MemoryStorageAdapter
from api_workspace.services.workspace_store import DEFAULT_STORAGE_KEY, WorkspaceStore


@pytest.fixture
def store() -> WorkspaceStore:
    return WorkspaceStore()


@pytest.fixture
def populated(store):
    """A collection with request A at the root and folder F holding B and sub-folder G holding C."""
    collection = store.add_collection("My Collection")
    folder = store.add_folder(collection.id, None, "F")
    sub_folder = store.add_folder(collection.id, folder.id, "G")
    request_a = store.add_request(collection.id, None, name="A", url="/posts/1")
    request_b = store.add_request(collection.id, folder.id, name="B")
    request_c = store.add_request(collection.id, sub_folder.id, name="C")
    return {
        "collection": collection,
        "folder": folder,
        "sub_folder": sub_folder,
        "a": request_a,
        "b": request_b,
        "c": request_c,
    }


def _open_request_tab(store: WorkspaceStore, collection_id: str, request, folder_id=None):
    return store.open_tab(
        TabOpen(
            type="request",
            title=request.name,
            request_id=request.id,
            collection_id=collection_id,
            folder_id=folder_id,
        )
    )


# ============== Collections and requests ==============

class TestCollectionsAndRequests:
    """Tests for collection, folder and request commands."""

    def test_add_request_defaults(self, store):
        collection = store.add_collection("c")
        request = store.add_request(collection.id)

        assert request.name == "New Request"
        assert request.method == "GET"
        assert store.get_request(collection.id, request.id) == request

    def test_add_request_to_missing_collection(self, store):
        assert store.add_request("nope") is None
        assert store.state.collections == []

    def test_update_collection_and_toggle(self, store):
        collection = store.add_collection("c")

        assert store.update_collection(collection.id, {"name": "renamed"})
        assert store.toggle_collection_expanded(collection.id)

        updated = store.get_collection(collection.id)
        assert updated.name == "renamed"
        assert updated.expanded is False

    def test_reorder_collections(self, store):
        first = store.add_collection("first")
        second = store.add_collection("second")

        assert store.reorder_collections(1, 0)
        assert [c.id for c in store.state.collections] == [second.id, first.id]
        assert not store.reorder_collections(0, 7)

    def test_duplicate_request_goes_to_root(self, store, populated):
        collection_id = populated["collection"].id

        duplicated = store.duplicate_request(collection_id, populated["c"].id)

        assert duplicated.id != populated["c"].id
        assert duplicated.name == "C (Copy)"
        assert store.get_collection(collection_id).requests[-1].id == duplicated.id
        assert store.get_request(collection_id, populated["c"].id).name == "C"

    def test_update_request_renames_tabs(self, store, populated):
        collection_id = populated["collection"].id
        tab = _open_request_tab(store, collection_id, populated["b"])
        store.update_tab(tab.id, {"is_modified": True})

        assert store.update_request(collection_id, populated["b"].id, {"name": "Renamed"})

        tab = store.get_tab(tab.id)
        assert tab.title == "Renamed"
        assert tab.is_modified is False

    def test_rename_to_empty_string_reaches_tabs(self, store, populated):
        collection_id = populated["collection"].id
        tab = _open_request_tab(store, collection_id, populated["b"])

        assert store.update_request(collection_id, populated["b"].id, {"name": ""})

        assert store.get_tab(tab.id).title == ""

    def test_null_request_fields_are_ignored(self, store, populated):
        collection_id = populated["collection"].id
        request_id = populated["a"].id

        assert store.update_request(
            collection_id, request_id, {"body": None, "auth": None, "headers": None, "name": None}
        )

        request = store.get_request(collection_id, request_id)
        assert request.name == "A"
        assert request.body.type == "none"
        assert request.auth.type == "none"
        assert request.headers == []
        assert store.export_full_storage().collections[0].requests[0].id == request_id

    def test_null_collection_variables_are_ignored(self, store, populated):
        collection_id = populated["collection"].id
        store.update_collection(collection_id, {"description": "notes"})

        assert store.update_collection(collection_id, {"variables": None, "name": None, "description": None})

        collection = store.get_collection(collection_id)
        assert collection.variables == []
        assert collection.name == "My Collection"
        assert collection.description is None
        assert json.loads(export_to_postman(collection))["info"]["name"] == "My Collection"

    def test_null_environment_variables_are_ignored(self, store):
        environment = store.add_environment("dev")

        assert store.update_environment(environment.id, {"variables": None})

        assert store.get_environment(environment.id).variables == []
        assert store.export_full_storage().environments[0].name == "dev"

    def test_update_missing_request_is_noop(self, store, populated):
        before = store.state
        assert not store.update_request(populated["collection"].id, "nope", {"name": "x"})
        assert store.state is before


# ============== Cascades ==============

class TestDeletionCascades:
    """Tests for closing tabs when their targets are deleted."""

    def test_delete_folder_closes_nested_request_tabs(self, store, populated):
        collection_id = populated["collection"].id
        tab_a = _open_request_tab(store, collection_id, populated["a"])
        _open_request_tab(store, collection_id, populated["b"], populated["folder"].id)
        _open_request_tab(store, collection_id, populated["c"], populated["sub_folder"].id)

        assert store.delete_folder(collection_id, populated["folder"].id)

        collection = store.get_collection(collection_id)
        assert tree.count_requests(collection.folders, collection.requests) == 1
        assert [tab.id for tab in store.state.tabs] == [tab_a.id]
        assert store.state.active_tab_id == tab_a.id

    def test_delete_request_closes_its_tab(self, store, populated):
        collection_id = populated["collection"].id
        _open_request_tab(store, collection_id, populated["c"])

        assert store.delete_request(collection_id, populated["c"].id)

        assert store.state.tabs == []
        assert store.state.active_tab_id is None

    def test_delete_collection_closes_tabs(self, store, populated):
        collection_id = populated["collection"].id
        _open_request_tab(store, collection_id, populated["a"])
        store.open_tab(TabOpen(type="collection", title="c", collection_id=collection_id))
        other = store.add_collection("other")
        other_tab = store.open_tab(TabOpen(type="collection", title="other", collection_id=other.id))

        assert store.delete_collection(collection_id)

        assert [tab.id for tab in store.state.tabs] == [other_tab.id]

    def test_delete_environment_closes_its_tabs_and_pointer(self, store):
        environment = store.add_environment("dev")
        store.set_active_environment(environment.id)
        store.open_tab(TabOpen(type="environment", title="dev", environment_id=environment.id))

        assert store.delete_environment(environment.id)

        assert store.state.active_environment_id is None
        assert store.state.tabs == []


# ============== Moves ==============

class TestMoves:
    """Tests for moves and tab re-homing."""

    def test_move_request_rehomes_tab(self, store, populated):
        source_id = populated["collection"].id
        target = store.add_collection("target")
        tab = _open_request_tab(store, source_id, populated["c"], populated["sub_folder"].id)

        assert store.move_request(source_id, target.id, populated["c"].id)

        moved_tab = store.get_tab(tab.id)
        assert moved_tab.collection_id == target.id
        assert moved_tab.folder_id is None
        assert store.get_request(target.id, populated["c"].id) is not None
        assert store.get_request(source_id, populated["c"].id) is None

    def test_move_folder_rehomes_nested_tabs(self, store, populated):
        source_id = populated["collection"].id
        target = store.add_collection("target")
        tab = _open_request_tab(store, source_id, populated["c"], populated["sub_folder"].id)

        assert store.move_folder(source_id, target.id, populated["folder"].id)

        moved_tab = store.get_tab(tab.id)
        assert moved_tab.collection_id == target.id
        assert moved_tab.folder_id == populated["sub_folder"].id

    def test_move_folder_into_descendant_is_noop(self, store, populated):
        collection_id = populated["collection"].id
        before = store.state

        assert not store.move_folder(
            collection_id, collection_id, populated["folder"].id, populated["sub_folder"].id
        )
        assert store.state is before


# ============== Tabs ==============

class TestTabScenarios:
    """Tests for tab scenarios."""

    def test_open_same_request_twice(self, store, populated):
        collection_id = populated["collection"].id
        first = _open_request_tab(store, collection_id, populated["a"])
        second = _open_request_tab(store, collection_id, populated["a"])

        assert len(store.state.tabs) == 1
        assert first.id == second.id

    def test_close_active_middle_tab(self, store, populated):
        collection_id = populated["collection"].id
        tabs = [_open_request_tab(store, collection_id, populated[name]) for name in ("a", "b", "c")]
        store.set_active_tab(tabs[1].id)

        assert store.close_tab(tabs[1].id)

        assert len(store.state.tabs) == 2
        assert store.state.active_tab_id == tabs[2].id
        assert store.state.tabs[1].id == tabs[2].id

    def test_set_active_tab_unknown(self, store):
        assert not store.set_active_tab("nope")

    def test_prune_stale_tabs(self, store, populated):
        collection_id = populated["collection"].id
        store.open_tab(TabOpen(type="request", title="ghost", request_id="missing", collection_id=collection_id))
        _open_request_tab(store, collection_id, populated["a"])

        assert store.prune_stale_tabs() == 1
        assert [tab.request_id for tab in store.state.tabs] == [populated["a"].id]


# ============== Environments and history ==============

class TestEnvironmentsAndHistory:
    """Tests for environment selection and history recording."""

    def test_set_active_environment_unknown(self, store):
        assert not store.set_active_environment("nope")
        assert store.state.active_environment_id is None

    def test_duplicate_environment(self, store):
        environment = store.add_environment("dev")
        duplicated = store.duplicate_environment(environment.id)

        assert duplicated.id != environment.id
        assert duplicated.name == "dev (Copy)"

    def test_history_respects_max_items(self):
        store = WorkspaceStore(max_history_items=3)
        collection = store.add_collection("c")
        request = store.add_request(collection.id)
        for _ in range(5):
            store.add_to_history(request)

        assert len(store.state.history) == 3

    def test_lowering_max_items_trims_on_next_add(self):
        store = WorkspaceStore(max_history_items=10)
        collection = store.add_collection("c")
        request = store.add_request(collection.id)
        for index in range(5):
            store.add_to_history(request.model_copy(update={"name": f"r{index}"}))

        store.max_history_items = 2
        assert len(store.state.history) == 5

        store.add_to_history(request.model_copy(update={"name": "newest"}))

        assert [item.request.name for item in store.state.history] == ["newest", "r4"]

    def test_record_execution_keeps_secrets_out(self, store):
        collection = store.add_collection("c")
        store.update_collection(collection.id, {"variables": [KeyValue(key="host", value="api.example.com")]})
        environment = store.add_environment("prod")
        store.update_environment(
            environment.id, {"variables": [KeyValue(key="token", value="s3cr3t", is_secret=True)]}
        )
        store.set_active_environment(environment.id)
        request = store.add_request(
            collection.id,
            url="https://<<host>>/me",
            auth=RequestAuth(type="bearer", bearer=BearerAuth(token="<<token>>")),
        )
        tab = _open_request_tab(store, collection.id, request)
        response = ApiResponse(status=200, status_text="OK", body="{}")

        item = store.record_execution(request, response, collection.id, tab.id)

        assert store.state.history[0].id == item.id
        assert item.request.url == "https://api.example.com/me"
        assert item.request.auth.bearer.token == "<<token>>"
        assert store.get_tab(tab.id).response == response


# ============== Import / export ==============

class TestImportExport:
    """Tests for workspace-level import and export."""

    def test_export_then_import_into_fresh_store(self, store):
        collection = store.add_collection("My Collection")
        request = store.add_request(collection.id, name="A", url="/posts/1")

        document = store.export_full_storage().to_document()
        fresh = WorkspaceStore()
        fresh.import_full_storage(json.loads(json.dumps(document)))

        assert len(fresh.state.collections) == 1
        imported = fresh.state.collections[0]
        assert len(imported.requests) == 1
        assert imported.requests[0].url == "/posts/1"
        assert imported.requests[0].id != request.id

    def test_double_import_collection_has_no_collisions(self, store, populated):
        collection = populated["collection"]
        first = store.import_collection(store.get_collection(collection.id))
        second = store.import_collection(store.get_collection(collection.id))

        assert first.id != second.id
        assert tree.find_duplicate_ids(store.state.collections) == set()

    def test_import_full_storage_clears_tabs(self, store, populated):
        _open_request_tab(store, populated["collection"].id, populated["a"])

        store.import_full_storage({"environments": [{"name": "dev"}]})

        assert store.state.tabs == []
        assert store.state.active_tab_id is None
        assert [env.name for env in store.state.environments] == ["dev"]
        # Collections were absent from the payload and are kept
        assert len(store.state.collections) == 1

    def test_import_full_storage_drops_unknown_active_environment(self, store):
        store.import_full_storage({"environments": [{"name": "dev"}], "activeEnvironmentId": "missing"})
        assert store.state.active_environment_id is None

    def test_invalid_import_changes_nothing(self, store, populated):
        before = store.state

        with pytest.raises(ImportValidationError):
            store.import_full_storage({"version": "1.0"})

        assert store.state is before

    def test_export_collection_is_unredacted(self, store):
        collection = store.add_collection("c")
        store.update_collection(
            collection.id, {"variables": [KeyValue(key="token", value="s3cr3t", is_secret=True)]}
        )

        assert store.export_collection(collection.id).variables[0].value == "s3cr3t"
        assert store.export_full_storage().collections[0].variables[0].value == "token"


# ============== Layout ==============

class TestLayout:
    """Tests for layout preferences."""

    def test_defaults_and_toggles(self, store):
        assert store.state.sidebar_width == 280
        assert store.state.request_panel_width == 50
        assert store.state.panel_layout == "horizontal"

        store.toggle_sidebar()
        store.toggle_panel_layout()
        store.set_sidebar_width(320)
        store.set_request_panel_width(40)

        assert store.state.sidebar_collapsed is True
        assert store.state.panel_layout == "vertical"
        assert store.state.sidebar_width == 320
        assert store.state.request_panel_width == 40


# ============== Subscriptions and persistence ==============

class TestSubscriptionsAndPersistence:
    """Tests for listeners and the persisted document."""

    def test_listener_receives_new_state(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)

        store.add_collection("c")
        unsubscribe()
        store.add_collection("d")

        assert len(seen) == 1
        assert seen[0].collections[0].name == "c"

    def test_noop_does_not_notify(self, store):
        seen = []
        store.subscribe(seen.append)

        store.delete_collection("nope")

        assert seen == []

    def test_failing_listener_is_logged(self, store, caplog):
        def broken(state):
            raise RuntimeError("boom")

        seen = []
        store.subscribe(broken)
        store.subscribe(seen.append)

        with caplog.at_level(logging.ERROR):
            store.add_collection("c")

        assert len(seen) == 1
        assert "listener" in caplog.text

    def test_batch_notifies_once(self, store):
        seen = []
        store.subscribe(seen.append)

        with store.batch():
            store.add_collection("a")
            store.add_collection("b")

        assert len(seen) == 1
        assert len(seen[0].collections) == 2

    def test_persisted_document_excludes_session_state(self):
        adapter = MemoryStorageAdapter()
        store = WorkspaceStore(adapter)
        collection = store.add_collection("c")
        request = store.add_request(collection.id, name="A")
        _open_request_tab(store, collection.id, request)

        assert store.flush()
        document = json.loads(adapter.entries[DEFAULT_STORAGE_KEY])
        store.close()

        assert document["collections"][0]["requests"][0]["name"] == "A"
        assert document["sidebarWidth"] == 280
        assert "tabs" not in document
        assert "activeTabId" not in document

    def test_tab_only_change_is_not_written(self):
        adapter = MemoryStorageAdapter()
        store = WorkspaceStore(adapter)
        store.add_collection("c")
        store.flush()
        writes = adapter.write_count

        store.open_tab(TabOpen(type="collection", title="c"))
        store.flush()
        store.close()

        assert adapter.write_count == writes

    def test_load_round_trip(self):
        adapter = MemoryStorageAdapter()
        store = WorkspaceStore(adapter)
        collection = store.add_collection("c")
        store.set_sidebar_width(300)
        store.close()

        reloaded = WorkspaceStore.load(adapter)
        reloaded.close()

        assert reloaded.state.collections[0].id == collection.id
        assert reloaded.state.sidebar_width == 300
        assert reloaded.state.tabs == []

    @pytest.mark.parametrize("document", [None, "{}", "not json", '{"collections": 5}'])
    def test_load_bad_documents_gives_empty_state(self, document):
        initial = {} if document is None else {DEFAULT_STORAGE_KEY: document}
        store = WorkspaceStore.load(MemoryStorageAdapter(initial))
        store.close()

        assert store.state.collections == []
        assert store.state.sidebar_width == 280
