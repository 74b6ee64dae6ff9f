"""
Tree operations for collection folder/request trees.

Every function operates on one tree level, given as a ``(folders, requests)``
pair (a collection's root level or any folder's children), and returns new
lists instead of mutating its input. Only the nodes on the path from the
level root to the edited node are copied; sibling subtrees are shared with
the previous tree.

Provides functions for:
- Locating requests and folders (depth-first, local list first)
- Updating, deleting, inserting and reordering requests and folders
- Moving requests and folder subtrees within or across collections
- Collecting IDs, counting requests and regenerating IDs on copies
- Resolving inherited auth along a request's folder path
"""

from collections import Counter
from typing import Any, Callable, Iterator, NamedTuple, Optional

from ..schemas.base import new_id
from ..schemas.collection import Collection, RequestFolder
from ..schemas.request import ApiRequest, KeyValue, RequestAuth


class TreeLevel(NamedTuple):
    """Result of a tree edit: the rewritten level and whether the target was found."""
    folders: list[RequestFolder]
    requests: list[ApiRequest]
    found: bool = False


FolderEdit = Callable[[RequestFolder], Optional[RequestFolder]]
LevelEdit = Callable[[list[RequestFolder], list[ApiRequest]], Optional[TreeLevel]]


# ---------------------------------------------------------------------------
# List helpers
# ---------------------------------------------------------------------------

def reorder_list(items: list, from_index: int, to_index: int) -> list | None:
    """
    Move the element at ``from_index`` to ``to_index``.

    Returns a new list, or None when either index is out of range.
    """
    if not 0 <= from_index < len(items) or not 0 <= to_index < len(items):
        return None
    updated = list(items)
    item = updated.pop(from_index)
    updated.insert(to_index, item)
    return updated


def insert_at(items: list, item: Any, index: int | None = None) -> list:
    """Return a copy of ``items`` with ``item`` at ``index`` (clamped), or appended."""
    updated = list(items)
    if index is None:
        updated.append(item)
    else:
        updated.insert(max(0, min(index, len(updated))), item)
    return updated


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

def find_request(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    request_id: str,
) -> ApiRequest | None:
    """Find a request, searching the local list before recursing into folders."""
    for request in requests:
        if request.id == request_id:
            return request

    for folder in folders:
        found = find_request(folder.folders, folder.requests, request_id)
        if found is not None:
            return found

    return None


def find_folder(folders: list[RequestFolder], folder_id: str) -> RequestFolder | None:
    """Find a folder anywhere in the given folder forest."""
    for folder in folders:
        if folder.id == folder_id:
            return folder
        found = find_folder(folder.folders, folder_id)
        if found is not None:
            return found
    return None


def find_request_path(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    request_id: str,
) -> list[RequestFolder] | None:
    """
    Return the folders enclosing a request, outermost first.

    An empty list means the request sits at the level root; None means it
    was not found.
    """
    if any(request.id == request_id for request in requests):
        return []

    for folder in folders:
        path = find_request_path(folder.folders, folder.requests, request_id)
        if path is not None:
            return [folder] + path

    return None


def find_folder_path(folders: list[RequestFolder], folder_id: str) -> list[RequestFolder] | None:
    """Return the ancestors of a folder, outermost first, or None if absent."""
    for folder in folders:
        if folder.id == folder_id:
            return []
        path = find_folder_path(folder.folders, folder_id)
        if path is not None:
            return [folder] + path
    return None


def iter_requests(folders: list[RequestFolder], requests: list[ApiRequest]) -> Iterator[ApiRequest]:
    """Yield every request in the level, depth-first."""
    yield from requests
    for folder in folders:
        yield from iter_requests(folder.folders, folder.requests)


def iter_folders(folders: list[RequestFolder]) -> Iterator[RequestFolder]:
    """Yield every folder in the forest, parents before children."""
    for folder in folders:
        yield folder
        yield from iter_folders(folder.folders)


def count_requests(folders: list[RequestFolder], requests: list[ApiRequest]) -> int:
    return sum(1 for _ in iter_requests(folders, requests))


def collect_request_ids(folder: RequestFolder) -> set[str]:
    """IDs of every request nested at any depth under ``folder``."""
    return {request.id for request in iter_requests(folder.folders, folder.requests)}


def collect_folder_ids(folder: RequestFolder) -> set[str]:
    """IDs of ``folder`` and every folder nested under it."""
    return {f.id for f in iter_folders([folder])}


def contains_folder(folder: RequestFolder, folder_id: str) -> bool:
    """True if ``folder_id`` is ``folder`` itself or one of its descendants."""
    return folder_id in collect_folder_ids(folder)


def find_duplicate_ids(collections: list[Collection]) -> set[str]:
    """Return every entity ID that occurs more than once across the forest."""
    counts: Counter[str] = Counter()
    for collection in collections:
        counts[collection.id] += 1
        for folder in iter_folders(collection.folders):
            counts[folder.id] += 1
        for request in iter_requests(collection.folders, collection.requests):
            counts[request.id] += 1
    return {entity_id for entity_id, count in counts.items() if count > 1}


# ---------------------------------------------------------------------------
# Copy-on-write rewriting
# ---------------------------------------------------------------------------

def _rewrite_folder(
    folders: list[RequestFolder],
    folder_id: str,
    edit: FolderEdit,
) -> tuple[list[RequestFolder], bool]:
    """
    Apply ``edit`` to the folder with ``folder_id``, copying the ancestor path.

    ``edit`` returns the replacement folder, or None to abort (the tree is
    returned unchanged and reported as not found).
    """
    for index, folder in enumerate(folders):
        if folder.id == folder_id:
            replacement = edit(folder)
            if replacement is None:
                return folders, False
            updated = list(folders)
            updated[index] = replacement
            return updated, True

        children, found = _rewrite_folder(folder.folders, folder_id, edit)
        if found:
            updated = list(folders)
            updated[index] = folder.model_copy(update={"folders": children})
            return updated, True

    return folders, False


def _rewrite_level(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    parent_folder_id: str | None,
    edit: LevelEdit,
) -> TreeLevel:
    """Apply ``edit`` to the children of ``parent_folder_id`` (None for the level root)."""
    if parent_folder_id is None:
        result = edit(folders, requests)
        if result is None:
            return TreeLevel(folders, requests, False)
        return TreeLevel(result.folders, result.requests, True)

    def edit_children(folder: RequestFolder) -> RequestFolder | None:
        result = edit(folder.folders, folder.requests)
        if result is None:
            return None
        return folder.model_copy(update={"folders": result.folders, "requests": result.requests})

    updated, found = _rewrite_folder(folders, parent_folder_id, edit_children)
    return TreeLevel(updated, requests, found)


def _rewrite_request(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    request_id: str,
    edit: Callable[[ApiRequest], Optional[ApiRequest]],
) -> TreeLevel:
    """
    Replace (or remove, when ``edit`` returns None) the request with ``request_id``.

    Folders above the match are rewritten one level at a time on the way back
    up, so untouched siblings keep their identity.
    """
    for index, request in enumerate(requests):
        if request.id == request_id:
            updated = list(requests)
            replacement = edit(request)
            if replacement is None:
                del updated[index]
            else:
                updated[index] = replacement
            return TreeLevel(folders, updated, True)

    for index, folder in enumerate(folders):
        result = _rewrite_request(folder.folders, folder.requests, request_id, edit)
        if result.found:
            updated = list(folders)
            updated[index] = folder.model_copy(
                update={"folders": result.folders, "requests": result.requests}
            )
            return TreeLevel(updated, requests, True)

    return TreeLevel(folders, requests, False)


# ---------------------------------------------------------------------------
# Request operations
# ---------------------------------------------------------------------------

def update_request(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    request_id: str,
    patch: dict[str, Any],
) -> TreeLevel:
    """Shallow-merge ``patch`` into the matching request."""
    patch = {field: value for field, value in patch.items() if field != "id"}
    return _rewrite_request(
        folders, requests, request_id, lambda request: request.model_copy(update=patch)
    )


def delete_request(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    request_id: str,
) -> TreeLevel:
    return _rewrite_request(folders, requests, request_id, lambda request: None)


def insert_request(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    parent_folder_id: str | None,
    request: ApiRequest,
    index: int | None = None,
) -> TreeLevel:
    """Insert ``request`` under ``parent_folder_id`` (None for the level root)."""
    return _rewrite_level(
        folders,
        requests,
        parent_folder_id,
        lambda level_folders, level_requests: TreeLevel(
            level_folders, insert_at(level_requests, request, index), True
        ),
    )


def reorder_requests(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    parent_folder_id: str | None,
    from_index: int,
    to_index: int,
) -> TreeLevel:
    """Permute the request list of one level; invalid indices leave the tree unchanged."""
    def edit(level_folders, level_requests):
        reordered = reorder_list(level_requests, from_index, to_index)
        if reordered is None:
            return None
        return TreeLevel(level_folders, reordered, True)

    return _rewrite_level(folders, requests, parent_folder_id, edit)


# ---------------------------------------------------------------------------
# Folder operations
# ---------------------------------------------------------------------------

def update_folder(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    folder_id: str,
    patch: dict[str, Any],
) -> TreeLevel:
    """Shallow-merge ``patch`` into the matching folder."""
    patch = {field: value for field, value in patch.items() if field != "id"}
    updated, found = _rewrite_folder(
        folders, folder_id, lambda folder: folder.model_copy(update=patch)
    )
    return TreeLevel(updated, requests, found)


def toggle_folder_expanded(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    folder_id: str,
) -> TreeLevel:
    updated, found = _rewrite_folder(
        folders, folder_id, lambda folder: folder.model_copy(update={"expanded": not folder.expanded})
    )
    return TreeLevel(updated, requests, found)


def delete_folder(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    folder_id: str,
) -> TreeLevel:
    """Remove the matching folder together with its whole subtree."""
    for index, folder in enumerate(folders):
        if folder.id == folder_id:
            return TreeLevel(folders[:index] + folders[index + 1:], requests, True)

    for index, folder in enumerate(folders):
        result = delete_folder(folder.folders, folder.requests, folder_id)
        if result.found:
            updated = list(folders)
            updated[index] = folder.model_copy(update={"folders": result.folders})
            return TreeLevel(updated, requests, True)

    return TreeLevel(folders, requests, False)


def insert_folder(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    parent_folder_id: str | None,
    folder: RequestFolder,
    index: int | None = None,
) -> TreeLevel:
    """Insert ``folder`` under ``parent_folder_id`` (None for the level root)."""
    return _rewrite_level(
        folders,
        requests,
        parent_folder_id,
        lambda level_folders, level_requests: TreeLevel(
            insert_at(level_folders, folder, index), level_requests, True
        ),
    )


def reorder_folders(
    folders: list[RequestFolder],
    requests: list[ApiRequest],
    parent_folder_id: str | None,
    from_index: int,
    to_index: int,
) -> TreeLevel:
    """Permute the folder list of one level; invalid indices leave the tree unchanged."""
    def edit(level_folders, level_requests):
        reordered = reorder_list(level_folders, from_index, to_index)
        if reordered is None:
            return None
        return TreeLevel(reordered, level_requests, True)

    return _rewrite_level(folders, requests, parent_folder_id, edit)


# ---------------------------------------------------------------------------
# Cross-collection moves
# ---------------------------------------------------------------------------

def _index_of(collections: list[Collection], collection_id: str) -> int:
    for index, collection in enumerate(collections):
        if collection.id == collection_id:
            return index
    return -1


def _with_level(collection: Collection, level: TreeLevel) -> Collection:
    return collection.model_copy(update={"folders": level.folders, "requests": level.requests})


def move_request(
    collections: list[Collection],
    source_collection_id: str,
    target_collection_id: str,
    request_id: str,
    target_folder_id: str | None = None,
    target_index: int | None = None,
) -> list[Collection] | None:
    """
    Move a request to another position in the same or a different collection.

    Returns the new collection list, or None when the source request, the
    target collection or the target folder does not exist. A failed move
    never removes the request from its source.
    """
    source_index = _index_of(collections, source_collection_id)
    target_index_in_list = _index_of(collections, target_collection_id)
    if source_index == -1 or target_index_in_list == -1:
        return None

    source = collections[source_index]
    request = find_request(source.folders, source.requests, request_id)
    if request is None:
        return None

    removed = delete_request(source.folders, source.requests, request_id)
    updated = list(collections)
    updated[source_index] = _with_level(source, removed)

    target = updated[target_index_in_list]
    inserted = insert_request(target.folders, target.requests, target_folder_id, request, target_index)
    if not inserted.found:
        return None
    updated[target_index_in_list] = _with_level(target, inserted)
    return updated


def move_folder(
    collections: list[Collection],
    source_collection_id: str,
    target_collection_id: str,
    folder_id: str,
    target_folder_id: str | None = None,
    target_index: int | None = None,
) -> list[Collection] | None:
    """
    Move a folder and its entire subtree as one unit.

    Returns the new collection list, or None when the folder or the target
    location does not exist, or when the target folder lies inside the moved
    subtree (which would create a cycle).
    """
    source_index = _index_of(collections, source_collection_id)
    target_index_in_list = _index_of(collections, target_collection_id)
    if source_index == -1 or target_index_in_list == -1:
        return None

    source = collections[source_index]
    folder = find_folder(source.folders, folder_id)
    if folder is None:
        return None
    if target_folder_id is not None and contains_folder(folder, target_folder_id):
        return None

    removed = delete_folder(source.folders, source.requests, folder_id)
    updated = list(collections)
    updated[source_index] = _with_level(source, removed)

    target = updated[target_index_in_list]
    inserted = insert_folder(target.folders, target.requests, target_folder_id, folder, target_index)
    if not inserted.found:
        return None
    updated[target_index_in_list] = _with_level(target, inserted)
    return updated


# ---------------------------------------------------------------------------
# Copies and inheritance
# ---------------------------------------------------------------------------

def regenerate_key_value_ids(rows: list[KeyValue] | None) -> list[KeyValue] | None:
    if rows is None:
        return None
    return [row.model_copy(update={"id": new_id()}) for row in rows]


def regenerate_request_ids(request: ApiRequest) -> ApiRequest:
    """Deep copy of ``request`` with a new ID for it and each of its rows."""
    body = request.body.model_copy(
        update={
            "form_data": regenerate_key_value_ids(request.body.form_data),
            "urlencoded": regenerate_key_value_ids(request.body.urlencoded),
        }
    )
    return request.model_copy(
        update={
            "id": new_id(),
            "headers": regenerate_key_value_ids(request.headers),
            "params": regenerate_key_value_ids(request.params),
            "body": body,
        },
        deep=True,
    )


def regenerate_folder_ids(folder: RequestFolder) -> RequestFolder:
    return folder.model_copy(
        update={
            "id": new_id(),
            "requests": [regenerate_request_ids(request) for request in folder.requests],
            "folders": [regenerate_folder_ids(child) for child in folder.folders],
        },
        deep=True,
    )


def regenerate_collection_ids(collection: Collection) -> Collection:
    """Copy a collection with every collection, folder, request and row ID regenerated."""
    return collection.model_copy(
        update={
            "id": new_id(),
            "requests": [regenerate_request_ids(request) for request in collection.requests],
            "folders": [regenerate_folder_ids(folder) for folder in collection.folders],
            "variables": regenerate_key_value_ids(collection.variables),
        },
        deep=True,
    )


def resolve_effective_auth(collection: Collection, request_id: str) -> RequestAuth | None:
    """
    Resolve the auth a request runs with.

    A request with ``inherit`` auth takes the nearest enclosing folder auth
    that is set and not itself ``inherit``, falling back to the collection
    auth. Returns None when nothing applies or the request is not found.
    """
    path = find_request_path(collection.folders, collection.requests, request_id)
    if path is None:
        return None
    request = find_request(collection.folders, collection.requests, request_id)
    if request.auth.type != "inherit":
        return request.auth

    for folder in reversed(path):
        if folder.auth is not None and folder.auth.type != "inherit":
            return folder.auth

    if collection.auth is not None and collection.auth.type != "inherit":
        return collection.auth
    return None
