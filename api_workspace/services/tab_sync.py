"""
Tab synchronization for open editor tabs.

Tabs hold weak references (request, collection, folder and environment IDs)
into the workspace. These functions keep the tab list consistent with tree
mutations: opening is idempotent per request, closing re-selects by index
clamp, renames propagate into titles, deletions close tabs and moves
re-home them.

All functions return new lists; the input list is never mutated.
"""

from typing import Any, Callable, Iterable

from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.tab import TabOpen, TabState
from .tree_operations import find_folder, find_request_path

TabPredicate = Callable[[TabState], bool]


def open_tab(tabs: list[TabState], descriptor: TabOpen) -> tuple[list[TabState], str]:
    """
    Open a tab and return ``(tabs, active_tab_id)``.

    When the descriptor names a request that already has a tab, that tab is
    activated instead of creating a duplicate.
    """
    if descriptor.request_id:
        for tab in tabs:
            if tab.request_id == descriptor.request_id:
                return tabs, tab.id

    tab = TabState(**{name: getattr(descriptor, name) for name in TabOpen.model_fields})
    return tabs + [tab], tab.id


def close_tab(
    tabs: list[TabState],
    active_tab_id: str | None,
    tab_id: str,
) -> tuple[list[TabState], str | None, bool]:
    """
    Close one tab and return ``(tabs, active_tab_id, found)``.

    If the closed tab was active, the tab now at the closed tab's position is
    selected (clamped to the last tab); with no tabs left nothing is active.
    """
    index = next((i for i, tab in enumerate(tabs) if tab.id == tab_id), -1)
    if index == -1:
        return tabs, active_tab_id, False

    remaining = tabs[:index] + tabs[index + 1:]
    if active_tab_id == tab_id:
        if remaining:
            active_tab_id = remaining[min(index, len(remaining) - 1)].id
        else:
            active_tab_id = None
    return remaining, active_tab_id, True


def close_tabs_where(
    tabs: list[TabState],
    active_tab_id: str | None,
    predicate: TabPredicate,
) -> tuple[list[TabState], str | None]:
    """Close every tab matching ``predicate``, applying the close rule to each in turn."""
    for tab in [tab for tab in tabs if predicate(tab)]:
        tabs, active_tab_id, _ = close_tab(tabs, active_tab_id, tab.id)
    return tabs, active_tab_id


def update_tab(tabs: list[TabState], tab_id: str, patch: dict[str, Any]) -> tuple[list[TabState], bool]:
    """Shallow-merge ``patch`` into the matching tab."""
    patch = {field: value for field, value in patch.items() if field != "id"}
    for index, tab in enumerate(tabs):
        if tab.id == tab_id:
            updated = list(tabs)
            updated[index] = tab.model_copy(update=patch)
            return updated, True
    return tabs, False


def rename_request_tabs(tabs: list[TabState], request_id: str, title: str) -> list[TabState]:
    """Retitle request tabs for a renamed request and clear their modified flag."""
    return [
        tab.model_copy(update={"title": title, "is_modified": False})
        if tab.type == "request" and tab.request_id == request_id
        else tab
        for tab in tabs
    ]


def rehome_tabs(
    tabs: list[TabState],
    collection: Collection,
    request_ids: Iterable[str],
    folder_ids: Iterable[str] = (),
) -> list[TabState]:
    """
    Point tabs of moved entities at their new location in ``collection``.

    Request tabs get the collection ID and the ID of the request's new parent
    folder (None at the collection root). Tabs that reference a moved folder
    directly get the new collection ID.
    """
    request_ids = set(request_ids)
    folder_ids = set(folder_ids)
    updated = []
    for tab in tabs:
        if tab.request_id in request_ids:
            path = find_request_path(collection.folders, collection.requests, tab.request_id)
            folder_id = path[-1].id if path else None
            tab = tab.model_copy(update={"collection_id": collection.id, "folder_id": folder_id})
        elif tab.request_id is None and tab.folder_id in folder_ids:
            tab = tab.model_copy(update={"collection_id": collection.id})
        updated.append(tab)
    return updated


def is_stale(tab: TabState, collections: list[Collection], environments: list[Environment]) -> bool:
    """
    True when a tab references an entity that no longer exists.

    History views (tabs with an embedded history snapshot) do not depend on
    the live tree and are never stale.
    """
    if tab.history_item is not None:
        return False

    if tab.environment_id is not None:
        if not any(env.id == tab.environment_id for env in environments):
            return True

    collection = None
    if tab.collection_id is not None:
        collection = next((c for c in collections if c.id == tab.collection_id), None)
        if collection is None:
            return True

    if tab.request_id is not None:
        scope = [collection] if collection is not None else collections
        if not any(find_request_path(c.folders, c.requests, tab.request_id) is not None for c in scope):
            return True
    elif tab.folder_id is not None and collection is not None:
        if find_folder(collection.folders, tab.folder_id) is None:
            return True

    return False


def prune_stale_tabs(
    tabs: list[TabState],
    active_tab_id: str | None,
    collections: list[Collection],
    environments: list[Environment],
) -> tuple[list[TabState], str | None]:
    """Close every tab whose references no longer resolve."""
    return close_tabs_where(
        tabs, active_tab_id, lambda tab: is_stale(tab, collections, environments)
    )
