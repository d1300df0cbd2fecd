"""
DataTable: the public face of the table engine.

Holds the current ViewState for one table, recomputes the query pipeline and
pagination synchronously after every change, renders the visible page and
notifies listeners. Filters and sorts are optionally restored from and saved
to a key-value store through a PersistenceBridge.

Usage:
    table = DataTable(tickets, {
        'id': {'data_type': 'number', 'size': 60},
        'summary': {},
        'created_at': {'data_type': 'date', 'caption': 'Opened'},
    }, TableOptions(table_id='tickets', store=store))

    table.add_filter()
    table.update_filter(0, key='summary', value='login')
    view = table.view
"""
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from constants import DEFAULT_PAGE_SIZE_CHOICES
from error_handler import log_and_suppress
from logging_helper import LoggingHelper

from . import state as transitions
from .columns import (
    ColumnDescriptor, filterable_keys, find_column, get_value, normalize_columns,
    sortable_keys, visible_columns,
)
from .pagination import PageResult, generate_page_numbers, paginate
from .persistence import KVStore, PersistedCriteria, PersistenceBridge
from .query import evaluate
from .state import ALL_CONDITIONS, SORT_DIRECTIONS, FilterCriterion, SortCriterion, ViewState
from .values import stringify

logger = LoggingHelper.get_child_logger('table_engine')

Listener = Callable[['TableView'], None]


@dataclass(frozen=True)
class TableOptions:
    """
    Args:
        page_size_choices: Page-size menu; the first entry is the initial size
        table_id: Stable identifier; together with store enables persistence
        store: KVStore for filters/sorts
        row_id_field: Field used as the rendered row key when present
    """
    page_size_choices: Tuple[int, ...] = DEFAULT_PAGE_SIZE_CHOICES
    table_id: Optional[str] = None
    store: Optional[KVStore] = None
    row_id_field: Optional[str] = 'id'


@dataclass(frozen=True)
class RenderedRow:
    key: Any
    row: Any
    cells: Tuple[Any, ...]


def _jsonable(cell: Any) -> Any:
    if cell is None or isinstance(cell, (str, int, float, bool)):
        return cell
    return str(cell)


@dataclass(frozen=True)
class TableView:
    """Snapshot of everything needed to draw the table after a change."""
    rows: Tuple[RenderedRow, ...]
    columns: Tuple[ColumnDescriptor, ...]
    state: ViewState
    pagination: PageResult
    page_size_choices: Tuple[int, ...]
    filterable_keys: Tuple[str, ...] = ()
    sortable_keys: Tuple[str, ...] = ()
    page_numbers: List[Any] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return self.pagination.total_items

    @property
    def total_pages(self) -> int:
        return self.pagination.total_pages

    @property
    def display_total_pages(self) -> int:
        return self.pagination.display_total_pages

    @property
    def page_index(self) -> int:
        return self.state.page_index

    @property
    def page_size(self) -> int:
        return self.state.page_size

    @property
    def search_term(self) -> str:
        return self.state.search_term

    @property
    def filters(self) -> Tuple[FilterCriterion, ...]:
        return self.state.filters

    @property
    def sorts(self) -> Tuple[SortCriterion, ...]:
        return self.state.sorts

    @property
    def page_rows(self) -> List[Any]:
        """The raw rows on the current page, in display order."""
        return [rendered.row for rendered in self.rows]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'columns': [c.to_dict() for c in self.columns],
            'rows': [
                {'key': _jsonable(r.key), 'cells': [_jsonable(c) for c in r.cells]}
                for r in self.rows
            ],
            'state': self.state.to_dict(),
            'pagination': self.pagination.to_dict(),
            'page_numbers': self.page_numbers,
            'page_size_choices': list(self.page_size_choices),
            'filterable_keys': list(self.filterable_keys),
            'sortable_keys': list(self.sortable_keys),
        }


def render_cell(column: ColumnDescriptor, row: Any) -> Any:
    """Displayed value of one cell: the column's render callback, or the stringified field."""
    if column.render is None:
        return stringify(get_value(row, column.id))
    try:
        return column.render(row)
    except Exception as exc:
        return log_and_suppress(exc, f"Render callback for column '{column.id}' failed",
                                level="warning", return_value=stringify(get_value(row, column.id)))


class DataTable:
    """
    Filtered, sorted, paginated view over an in-memory row snapshot.

    Every operation returns True when it changed the view state and False when
    it was rejected or had nothing to do; none of them raise for stale
    criteria, bad indexes or persistence trouble.

    Args:
        rows: Row snapshot (mappings or objects)
        columns_map: Mapping of column id to partial column configuration
        options: TableOptions
    """

    def __init__(self, rows: Sequence[Any] = (), columns_map: Optional[Mapping[str, Any]] = None,
                 options: Optional[TableOptions] = None) -> None:
        self.options = options or TableOptions()
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        choices = tuple(s for s in self.options.page_size_choices
                        if isinstance(s, int) and not isinstance(s, bool) and s > 0)
        self.page_size_choices = choices or DEFAULT_PAGE_SIZE_CHOICES

        self._rows: Tuple[Any, ...] = ()
        self._positions: Dict[int, int] = {}
        self._columns: List[ColumnDescriptor] = normalize_columns(columns_map)
        self._state = transitions.initial_state(self.page_size_choices)
        self._query_key = None
        self._inputs_version = 0
        self._ordered: List[Any] = []
        self._criteria_edits = 0

        self._set_rows(rows)
        self._view = self._recompute()

        self._bridge: Optional[PersistenceBridge] = None
        if self.options.table_id and self.options.store is not None:
            self._bridge = PersistenceBridge(self.options.store, self.options.table_id)
            self._bridge.load(self._apply_persisted)

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def view(self) -> TableView:
        return self._view

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def columns(self) -> List[ColumnDescriptor]:
        return list(self._columns)

    @property
    def ordered_rows(self) -> List[Any]:
        """Every row that passes search and filters, in sorted order (not paged)."""
        return list(self._ordered)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with the new TableView after each change.

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    # =========================================================================
    # Inputs
    # =========================================================================

    def set_rows(self, rows: Sequence[Any]) -> None:
        """Replace the row snapshot; criteria are kept and the page re-clamped."""
        with self._lock:
            self._set_rows(rows)
            view = self._recompute()
        self._notify(view)

    def set_columns(self, columns_map: Optional[Mapping[str, Any]]) -> None:
        """Replace the column metadata; criteria on vanished columns become inert."""
        with self._lock:
            self._columns = normalize_columns(columns_map)
            self._inputs_version += 1
            view = self._recompute()
        self._notify(view)

    # =========================================================================
    # Search and paging
    # =========================================================================

    def set_search_term(self, term: Optional[str]) -> bool:
        term = '' if term is None else str(term)
        return self._update(lambda s: transitions.with_search_term(s, term))

    def set_page(self, page_index: int) -> bool:
        if not _is_int(page_index):
            return False

        def transition(s: ViewState) -> ViewState:
            clamped = max(1, min(page_index, self._view.display_total_pages))
            return transitions.with_page(s, clamped)
        return self._update(transition)

    def set_page_size(self, page_size: int) -> bool:
        if not _is_int(page_size) or page_size <= 0:
            logger.debug(f"Ignoring invalid page size {page_size!r}")
            return False
        return self._update(lambda s: transitions.with_page_size(s, page_size))

    def refresh(self) -> bool:
        """Clear search, filters and sorts and go back to page 1 in one step."""
        return self._update(transitions.reset, criteria=True)

    # =========================================================================
    # Filters
    # =========================================================================

    def add_filter(self) -> bool:
        """
        Append a blank 'contains' filter on the first filterable column not
        already filtered (or the first filterable column if all are in use).
        """
        def transition(s: ViewState) -> Optional[ViewState]:
            keys = filterable_keys(self._columns)
            if not keys:
                return None
            used = {f.key for f in s.filters}
            key = next((k for k in keys if k not in used), keys[0])
            return transitions.add_filter(s, key)
        return self._update(transition, criteria=True)

    def update_filter(self, index: int, key: Optional[str] = None,
                      condition: Optional[str] = None, value: Optional[str] = None) -> bool:
        """
        Merge changes into the filter at index.

        Switching to a column whose type does not support the current
        condition resets the condition to 'contains'.
        """
        if value is not None:
            value = str(value)

        def transition(s: ViewState) -> Optional[ViewState]:
            if not _valid_index(index, s.filters):
                return None
            current = s.filters[index]
            if condition is not None and condition not in ALL_CONDITIONS:
                return None
            if key is not None and key not in filterable_keys(self._columns):
                return None

            new_condition = current.condition if condition is None else condition
            column = find_column(self._columns, current.key if key is None else key)
            if column is not None and new_condition not in transitions.conditions_for(column.data_type):
                if condition is not None:
                    return None
                new_condition = 'contains'

            return transitions.update_filter(s, index, key=key, condition=new_condition, value=value)
        return self._update(transition, criteria=True)

    def remove_filter(self, index: int) -> bool:
        def transition(s: ViewState) -> Optional[ViewState]:
            if not _valid_index(index, s.filters):
                return None
            return transitions.remove_filter(s, index)
        return self._update(transition, criteria=True)

    def clear_filters(self) -> bool:
        return self._update(transitions.clear_filters, criteria=True)

    # =========================================================================
    # Sorts
    # =========================================================================

    def add_sort(self) -> bool:
        """
        Append an ascending sort on the first sortable column not already
        sorted. Rejected at the sort cap or when every column is in use.
        """
        def transition(s: ViewState) -> Optional[ViewState]:
            if not transitions.can_add_sort(s):
                logger.debug(f"Sort limit reached ({len(s.sorts)} criteria)")
                return None
            used = {c.key for c in s.sorts}
            key = next((k for k in sortable_keys(self._columns) if k not in used), None)
            if key is None:
                return None
            return transitions.add_sort(s, key)
        return self._update(transition, criteria=True)

    def update_sort(self, index: int, key: Optional[str] = None,
                    direction: Optional[str] = None) -> bool:
        """Change the key or direction of a sort; the current page is kept."""
        def transition(s: ViewState) -> Optional[ViewState]:
            if not _valid_index(index, s.sorts):
                return None
            if direction is not None and direction not in SORT_DIRECTIONS:
                return None
            if key is not None:
                if key not in sortable_keys(self._columns):
                    return None
                if any(c.key == key for i, c in enumerate(s.sorts) if i != index):
                    return None
            return transitions.update_sort(s, index, key=key, direction=direction)
        return self._update(transition, criteria=True)

    def remove_sort(self, index: int) -> bool:
        def transition(s: ViewState) -> Optional[ViewState]:
            if not _valid_index(index, s.sorts):
                return None
            return transitions.remove_sort(s, index)
        return self._update(transition, criteria=True)

    def reorder_sort(self, from_index: int, to_index: int) -> bool:
        """Move a sort criterion to a new precedence position."""
        def transition(s: ViewState) -> Optional[ViewState]:
            if not (_valid_index(from_index, s.sorts) and _valid_index(to_index, s.sorts)):
                return None
            if from_index == to_index:
                return None
            return transitions.reorder_sort(s, from_index, to_index)
        return self._update(transition, criteria=True)

    def clear_sorts(self) -> bool:
        return self._update(transitions.clear_sorts, criteria=True)

    def toggle_sort(self, key: str) -> bool:
        """
        Header-click behaviour: unsorted -> asc -> desc -> unsorted.

        A new key is appended as the lowest-precedence sort (subject to the
        sort cap).
        """
        def transition(s: ViewState) -> Optional[ViewState]:
            if key not in sortable_keys(self._columns):
                return None
            for index, criterion in enumerate(s.sorts):
                if criterion.key == key:
                    if criterion.direction == 'asc':
                        return transitions.update_sort(s, index, direction='desc')
                    return transitions.remove_sort(s, index)
            if not transitions.can_add_sort(s):
                return None
            return transitions.add_sort(s, key)
        return self._update(transition, criteria=True)

    # =========================================================================
    # Persistence
    # =========================================================================

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending loads/saves of persisted criteria."""
        if self._bridge is None:
            return True
        return self._bridge.flush(timeout)

    def close(self) -> None:
        """Finish pending saves and release the persistence worker."""
        if self._bridge is not None:
            self._bridge.close()

    def _apply_persisted(self, criteria: PersistedCriteria) -> None:
        filters, sorts = criteria

        def transition(s: ViewState) -> Optional[ViewState]:
            if self._criteria_edits:
                logger.info(
                    f"Discarding persisted view state for '{self.options.table_id}': "
                    f"filters/sorts were changed before it loaded"
                )
                return None
            return transitions.with_criteria(s, filters, sorts)

        if self._update(transition, from_store=True):
            logger.debug(
                f"Restored {len(filters)} filter(s) and {len(sorts)} sort(s) "
                f"for '{self.options.table_id}'"
            )

    # =========================================================================
    # Internals
    # =========================================================================

    def _update(self, transition: Callable[[ViewState], Optional[ViewState]],
                criteria: bool = False, from_store: bool = False) -> bool:
        """
        Apply a state transition, recompute and notify.

        Args:
            transition: Returns the new state, or None to reject
            criteria: The operation targets filters/sorts (counts as a local edit)
            from_store: The change comes from the persisted state load

        Returns:
            True if the view state changed
        """
        with self._lock:
            previous = self._state
            new_state = transition(previous)
            if new_state is None or new_state == previous:
                return False

            if criteria and not from_store:
                self._criteria_edits += 1

            self._state = new_state
            view = self._recompute()

            criteria_changed = (previous.filters != self._state.filters
                                or previous.sorts != self._state.sorts)
            if criteria_changed and not from_store and self._bridge is not None:
                self._bridge.save(self._state.filters, self._state.sorts)

        self._notify(view)
        return True

    def _set_rows(self, rows: Sequence[Any]) -> None:
        self._rows = tuple(rows)
        self._positions = {id(row): i for i, row in enumerate(self._rows)}
        self._inputs_version += 1

    def _recompute(self) -> TableView:
        """Re-run the pipeline if its inputs changed, then paginate and render."""
        s = self._state
        query_key = (self._inputs_version, s.search_term, s.filters, s.sorts)
        if query_key != self._query_key:
            self._ordered = evaluate(self._rows, self._columns, s.search_term, s.filters, s.sorts)
            self._query_key = query_key

        page = paginate(self._ordered, s.page_index, s.page_size)
        if page.page_index != s.page_index:
            self._state = s = transitions.with_page(s, page.page_index)

        shown = tuple(visible_columns(self._columns))
        rows = tuple(
            RenderedRow(
                key=self._row_key(row),
                row=row,
                cells=tuple(render_cell(column, row) for column in shown),
            )
            for row in page.page
        )
        self._view = TableView(
            rows=rows,
            columns=shown,
            state=s,
            pagination=page,
            page_size_choices=self.page_size_choices,
            filterable_keys=tuple(filterable_keys(self._columns)),
            sortable_keys=tuple(sortable_keys(self._columns)),
            page_numbers=generate_page_numbers(page.page_index, page.total_pages),
        )
        return self._view

    def _row_key(self, row: Any) -> Any:
        """Application id when the row has one, else its position in the input snapshot."""
        if self.options.row_id_field:
            value = get_value(row, self.options.row_id_field)
            if value is not None:
                return value
        return self._positions.get(id(row))

    def _notify(self, view: TableView) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(view)
            except Exception as exc:
                log_and_suppress(exc, "Table listener failed", level="warning")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _valid_index(index: Any, items: Sequence[Any]) -> bool:
    return _is_int(index) and 0 <= index < len(items)
