"""
History buffer for executed requests.

History is a bounded, most-recent-first list of immutable snapshots. New
items are prepended and the list is then truncated to the configured
maximum, evicting the oldest entries.
"""

import time

from ..schemas.history import RequestHistoryItem
from ..schemas.request import ApiRequest, ApiResponse

DEFAULT_MAX_HISTORY_ITEMS = 100


def _now_ms() -> int:
    return int(time.time() * 1000)


def add_history_item(
    history: list[RequestHistoryItem],
    request: ApiRequest,
    response: ApiResponse | None = None,
    max_items: int = DEFAULT_MAX_HISTORY_ITEMS,
    timestamp: int | None = None,
) -> tuple[list[RequestHistoryItem], RequestHistoryItem]:
    """
    Record an execution at the front of the history.

    The request and response are deep-copied so later edits to the live
    records cannot change the snapshot. Timestamps never go backwards
    relative to the newest existing item, even if the wall clock does.

    Args:
        history: Current history, most recent first
        request: The executed request
        response: The response received, if any
        max_items: Maximum number of items to keep
        timestamp: Epoch milliseconds, defaults to now

    Returns:
        Tuple of (new history list, the created item)
    """
    timestamp = _now_ms() if timestamp is None else timestamp
    if history:
        timestamp = max(timestamp, history[0].timestamp)

    item = RequestHistoryItem(
        request=request.model_copy(deep=True),
        response=response.model_copy(deep=True) if response is not None else None,
        timestamp=timestamp,
    )
    return ([item] + history)[:max_items], item


def remove_history_item(
    history: list[RequestHistoryItem],
    history_id: str,
) -> tuple[list[RequestHistoryItem], bool]:
    remaining = [item for item in history if item.id != history_id]
    return remaining, len(remaining) != len(history)


def find_history_item(history: list[RequestHistoryItem], history_id: str) -> RequestHistoryItem | None:
    return next((item for item in history if item.id == history_id), None)
