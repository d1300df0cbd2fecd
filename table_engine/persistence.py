"""
Persistence bridge between a table's filters/sorts and a key-value store.

Only filters and sorts are stored, JSON encoded under "table-<table_id>".
Loads and saves run on one background worker thread per bridge so saves are
written in the order they were made and never block a state mutation. The
store's get/set may be plain functions or coroutine functions.

Nothing here raises to the table: a failing store or a corrupt payload is
logged and treated as "nothing persisted" / "save skipped".
"""
import asyncio
import inspect
import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

from constants import MAX_SORT_CRITERIA, VIEW_STATE_KEY_PREFIX
from error_handler import PersistenceError, log_and_suppress
from logging_helper import LoggingHelper

from .state import ALL_CONDITIONS, SORT_DIRECTIONS, FilterCriterion, SortCriterion

logger = LoggingHelper.get_child_logger('table_engine.persistence')

PAYLOAD_VERSION = 1

PersistedCriteria = Tuple[Tuple[FilterCriterion, ...], Tuple[SortCriterion, ...]]


class KVStore(Protocol):
    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: str) -> Any:
        ...


class MemoryKVStore:
    """In-process store, for embedding the table without a database."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value


def storage_key(table_id: str) -> str:
    return f"{VIEW_STATE_KEY_PREFIX}{table_id}"


# =============================================================================
# Serialization
# =============================================================================

def serialize_criteria(filters: Sequence[FilterCriterion], sorts: Sequence[SortCriterion]) -> str:
    """Encode filters and sorts (order preserved) as a JSON string."""
    return json.dumps({
        'version': PAYLOAD_VERSION,
        'filters': [f.to_dict() for f in filters],
        'sorts': [s.to_dict() for s in sorts],
    })


def _parse_filter(item: Any) -> FilterCriterion:
    if not isinstance(item, dict):
        raise PersistenceError(f"filter entry is not an object: {item!r}")
    key, condition, value = item.get('key'), item.get('condition'), item.get('value')
    if not isinstance(key, str) or not key:
        raise PersistenceError(f"filter key must be a non-empty string: {key!r}")
    if condition not in ALL_CONDITIONS:
        raise PersistenceError(f"unknown filter condition: {condition!r}")
    if not isinstance(value, str):
        raise PersistenceError(f"filter value must be a string: {value!r}")
    return FilterCriterion(key=key, condition=condition, value=value)


def _parse_sort(item: Any) -> SortCriterion:
    if not isinstance(item, dict):
        raise PersistenceError(f"sort entry is not an object: {item!r}")
    key, direction = item.get('key'), item.get('direction')
    if not isinstance(key, str) or not key:
        raise PersistenceError(f"sort key must be a non-empty string: {key!r}")
    if direction not in SORT_DIRECTIONS:
        raise PersistenceError(f"unknown sort direction: {direction!r}")
    return SortCriterion(key=key, direction=direction)


def deserialize_criteria(raw: str) -> PersistedCriteria:
    """
    Decode a stored payload.

    Args:
        raw: JSON string written by serialize_criteria

    Returns:
        Tuple of (filters, sorts)

    Raises:
        PersistenceError: If the payload is not valid JSON or any part of it
            is malformed (the whole payload is rejected)
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"payload is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise PersistenceError("payload is not an object")
    if payload.get('version') != PAYLOAD_VERSION:
        raise PersistenceError(f"unsupported payload version: {payload.get('version')!r}")

    raw_filters = payload.get('filters', [])
    raw_sorts = payload.get('sorts', [])
    if not isinstance(raw_filters, list) or not isinstance(raw_sorts, list):
        raise PersistenceError("filters and sorts must be lists")

    filters = tuple(_parse_filter(item) for item in raw_filters)
    sorts = tuple(_parse_sort(item) for item in raw_sorts)

    if len(sorts) > MAX_SORT_CRITERIA:
        raise PersistenceError(f"too many sort criteria: {len(sorts)}")
    if len({s.key for s in sorts}) != len(sorts):
        raise PersistenceError("duplicate sort keys")

    return filters, sorts


# =============================================================================
# Bridge
# =============================================================================

def _resolve(result: Any) -> Any:
    """Wait for a store result that may be an awaitable."""
    if inspect.isawaitable(result):
        async def _await():
            return await result
        return asyncio.run(_await())
    return result


class PersistenceBridge:
    """
    Loads and saves one table's criteria in the background.

    Args:
        store: KVStore collaborator
        table_id: Stable table identifier used to build the storage key
    """

    def __init__(self, store: KVStore, table_id: str) -> None:
        self.store = store
        self.table_id = table_id
        self.key = storage_key(table_id)
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"view-state-{table_id}"
        )
        self._closed = False

    def load(self, on_loaded: Callable[[PersistedCriteria], None]) -> Optional[Future]:
        """
        Schedule a load; on_loaded runs on the worker thread with the decoded
        criteria, and is not called at all when nothing usable is stored.
        """
        return self._submit(self._load, on_loaded)

    def save(self, filters: Sequence[FilterCriterion], sorts: Sequence[SortCriterion]) -> Optional[Future]:
        """Schedule a save of the given criteria (encoded immediately)."""
        return self._submit(self._save, serialize_criteria(filters, sorts))

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every load/save scheduled so far has finished.

        Returns:
            True if the worker caught up within the timeout
        """
        marker = self._submit(lambda: None)
        if marker is None:
            return True
        try:
            marker.result(timeout=timeout)
            return True
        except FutureTimeoutError:
            return False
        except Exception as exc:
            return log_and_suppress(exc, f"Waiting for view state of '{self.table_id}' failed",
                                    level="warning", return_value=False)

    def close(self) -> None:
        """Finish pending work and stop the worker thread."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)

    def _submit(self, fn: Callable, *args) -> Optional[Future]:
        if self._closed:
            logger.debug(f"Persistence for '{self.table_id}' is closed, skipping")
            return None
        try:
            return self._executor.submit(fn, *args)
        except RuntimeError as exc:
            # shutdown raced with this call
            return log_and_suppress(exc, f"Persistence for '{self.table_id}' unavailable",
                                    level="debug", log_traceback=False)

    def _load(self, on_loaded: Callable[[PersistedCriteria], None]) -> None:
        try:
            raw = _resolve(self.store.get(self.key))
        except Exception as exc:
            log_and_suppress(exc, f"Failed to load view state for '{self.table_id}'", level="warning")
            return

        if raw is None:
            logger.debug(f"No persisted view state for '{self.table_id}'")
            return
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8', errors='replace')

        try:
            criteria = deserialize_criteria(raw)
        except PersistenceError as exc:
            log_and_suppress(exc, f"Discarding corrupt view state for '{self.table_id}'",
                             level="warning", log_traceback=False)
            return

        on_loaded(criteria)

    def _save(self, payload: str) -> None:
        try:
            _resolve(self.store.set(self.key, payload))
            logger.debug(f"Saved view state for '{self.table_id}'")
        except Exception as exc:
            log_and_suppress(exc, f"Failed to save view state for '{self.table_id}'", level="warning")
