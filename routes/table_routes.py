"""
Table API routes blueprint.

Every view-state operation (search, filters, sorts, paging, refresh) is
exposed as a JSON endpoint that returns the recomputed view. Each browser
session drives its own DataTable, so search and paging stay per client
while filters and sorts go through the shared view-state store. Also hosts
ticket creation, which reloads the rows of every open ticket table.
"""
import secrets
import threading
from collections import OrderedDict
from typing import Callable, Dict, List, Optional, Tuple

from flask import Blueprint, Response, session
from logging_helper import LoggingHelper, LogType
from constants import MAX_SESSION_TABLES, SESSION_TABLE_LOAD_TIMEOUT
from error_handler import ValidationError
from helpers.response_helpers import error_response, success_response
from helpers.validation_helpers import (
    get_json_body, validate_int_field, validate_optional_str_field,
)
from helpers.ticket_table import TICKETS_TABLE_ID, build_ticket_table
from table_engine import DataTable

# Get logger instance
logger = LoggingHelper.get_logger(LogType.MAIN)

bp = Blueprint('table_api', __name__, url_prefix='/api')

# Database instance and table builders will be injected
db = None
_factories: Dict[str, Callable[[], DataTable]] = {}

# (session id, table id) -> DataTable, least recently used first
_session_tables: 'OrderedDict[Tuple[str, str], DataTable]' = OrderedDict()
_tables_lock = threading.Lock()

SESSION_KEY = 'table_session'


def init_table_routes(database, page_size_choices) -> None:
    """
    Initialize the table routes with the database and register table builders.

    Args:
        database: Database instance supplying rows and the view-state store
        page_size_choices: Page-size menu for every table
    """
    global db
    db = database
    close_tables()
    _factories.clear()
    _factories[TICKETS_TABLE_ID] = lambda: build_ticket_table(database, page_size_choices)


def close_tables() -> None:
    """Close every session table, finishing their pending saves."""
    with _tables_lock:
        tables = list(_session_tables.values())
        _session_tables.clear()
    for table in tables:
        table.close()


def flush_tables(timeout: Optional[float] = None) -> bool:
    """Wait for pending loads/saves on every open table."""
    with _tables_lock:
        tables = list(_session_tables.values())
    return all(table.flush(timeout) for table in tables)


def _open_tables(table_id: str) -> List[DataTable]:
    with _tables_lock:
        return [table for (_, tid), table in _session_tables.items() if tid == table_id]


def _session_id() -> str:
    sid = session.get(SESSION_KEY)
    if not sid:
        sid = secrets.token_hex(16)
        session[SESSION_KEY] = sid
    return sid


def get_table(table_id: str) -> Optional[DataTable]:
    """
    DataTable for the current session, built on first use.

    A new table restores saved filters/sorts from the store. The oldest
    session table is closed once more than MAX_SESSION_TABLES are open.
    """
    factory = _factories.get(table_id)
    if factory is None:
        return None

    cache_key = (_session_id(), table_id)
    evicted = []
    with _tables_lock:
        table = _session_tables.get(cache_key)
        if table is not None:
            _session_tables.move_to_end(cache_key)
            return table

        table = factory()
        _session_tables[cache_key] = table
        while len(_session_tables) > MAX_SESSION_TABLES:
            _, old = _session_tables.popitem(last=False)
            evicted.append(old)

    for old in evicted:
        old.close()
    if evicted:
        logger.debug(f"Closed {len(evicted)} idle session table(s)")

    if not table.flush(SESSION_TABLE_LOAD_TIMEOUT):
        logger.warning(f"Saved view state for '{table_id}' still loading")
    return table


def _view_response(table: DataTable, changed: bool) -> Tuple[Response, int]:
    return success_response({'changed': changed, 'view': table.view.to_dict()})


def _with_table(table_id: str, action: str,
                operation: Callable[[DataTable], object]) -> Tuple[Response, int]:
    """
    Look up the session's table, run an operation on it and return the new view.

    The operation returns either the bool result of a DataTable call or an
    error response tuple produced while validating input.
    """
    table = get_table(table_id)
    if table is None:
        return error_response(f"Unknown table '{table_id}'", 404)

    result = operation(table)
    if isinstance(result, tuple):
        return result

    if result:
        LoggingHelper.log_user_action(action, f"table: {table_id}")
    return _view_response(table, bool(result))


def _index_body_op(body_field: str, call: Callable[[DataTable, int], bool]):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        value, error = validate_int_field(body, body_field, min_value=1)
        if error:
            return error
        return call(table, value)
    return operation


# =============================================================================
# View
# =============================================================================

@bp.route('/tables/<table_id>', methods=['GET'])
def get_view(table_id: str):
    """Current page of rows plus the state needed to draw table controls."""
    table = get_table(table_id)
    if table is None:
        return error_response(f"Unknown table '{table_id}'", 404)
    return _view_response(table, False)


@bp.route('/tables/<table_id>/search', methods=['PUT'])
def set_search(table_id: str):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        term, error = validate_optional_str_field(body, 'term', max_length=200)
        if error:
            return error
        return table.set_search_term(term or '')
    return _with_table(table_id, "Searched", operation)


@bp.route('/tables/<table_id>/page', methods=['PUT'])
def set_page(table_id: str):
    return _with_table(table_id, "Changed page",
                       _index_body_op('page', lambda t, v: t.set_page(v)))


@bp.route('/tables/<table_id>/page-size', methods=['PUT'])
def set_page_size(table_id: str):
    return _with_table(table_id, "Changed page size",
                       _index_body_op('page_size', lambda t, v: t.set_page_size(v)))


@bp.route('/tables/<table_id>/refresh', methods=['POST'])
def refresh(table_id: str):
    return _with_table(table_id, "Reset view", lambda t: t.refresh())


# =============================================================================
# Filters
# =============================================================================

@bp.route('/tables/<table_id>/filters', methods=['POST'])
def add_filter(table_id: str):
    def operation(table: DataTable):
        if not table.add_filter():
            return error_response("No filterable columns", 409, {'view': table.view.to_dict()})
        return True
    return _with_table(table_id, "Added filter", operation)


@bp.route('/tables/<table_id>/filters/<int:index>', methods=['PATCH'])
def update_filter(table_id: str, index: int):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        fields = {}
        for name in ('key', 'condition', 'value'):
            value, error = validate_optional_str_field(body, name)
            if error:
                return error
            fields[name] = value
        return table.update_filter(index, **fields)
    return _with_table(table_id, f"Updated filter {index}", operation)


@bp.route('/tables/<table_id>/filters/<int:index>', methods=['DELETE'])
def remove_filter(table_id: str, index: int):
    return _with_table(table_id, f"Removed filter {index}", lambda t: t.remove_filter(index))


@bp.route('/tables/<table_id>/filters', methods=['DELETE'])
def clear_filters(table_id: str):
    return _with_table(table_id, "Cleared filters", lambda t: t.clear_filters())


# =============================================================================
# Sorts
# =============================================================================

@bp.route('/tables/<table_id>/sorts', methods=['POST'])
def add_sort(table_id: str):
    def operation(table: DataTable):
        if not table.add_sort():
            return error_response("Sort rejected: limit reached or no unused sortable column",
                                  409, {'view': table.view.to_dict()})
        return True
    return _with_table(table_id, "Added sort", operation)


@bp.route('/tables/<table_id>/sorts/<int:index>', methods=['PATCH'])
def update_sort(table_id: str, index: int):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        key, error = validate_optional_str_field(body, 'key')
        if error:
            return error
        direction, error = validate_optional_str_field(body, 'direction')
        if error:
            return error
        return table.update_sort(index, key=key, direction=direction)
    return _with_table(table_id, f"Updated sort {index}", operation)


@bp.route('/tables/<table_id>/sorts/<int:index>', methods=['DELETE'])
def remove_sort(table_id: str, index: int):
    return _with_table(table_id, f"Removed sort {index}", lambda t: t.remove_sort(index))


@bp.route('/tables/<table_id>/sorts/reorder', methods=['POST'])
def reorder_sort(table_id: str):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        from_index, error = validate_int_field(body, 'from', min_value=0)
        if error:
            return error
        to_index, error = validate_int_field(body, 'to', min_value=0)
        if error:
            return error
        return table.reorder_sort(from_index, to_index)
    return _with_table(table_id, "Reordered sorts", operation)


@bp.route('/tables/<table_id>/sorts/toggle', methods=['POST'])
def toggle_sort(table_id: str):
    def operation(table: DataTable):
        body, error = get_json_body()
        if error:
            return error
        key, error = validate_optional_str_field(body, 'key')
        if error:
            return error
        if not key:
            return error_response('key is required')
        return table.toggle_sort(key)
    return _with_table(table_id, "Toggled sort", operation)


@bp.route('/tables/<table_id>/sorts', methods=['DELETE'])
def clear_sorts(table_id: str):
    return _with_table(table_id, "Cleared sorts", lambda t: t.clear_sorts())


# =============================================================================
# Tickets
# =============================================================================

@bp.route('/tickets', methods=['POST'])
def create_ticket():
    """Create a ticket and reload the rows of every open ticket table."""
    body, error = get_json_body()
    if error:
        return error

    try:
        ticket = db.add_ticket(
            body.get('summary'),
            body.get('priority'),
            body.get('status', 'Open'),
        )
    except ValidationError as e:
        return error_response(str(e))

    tickets = db.list_tickets()
    for table in _open_tables(TICKETS_TABLE_ID):
        table.set_rows(tickets)

    LoggingHelper.log_user_action("Created ticket", f"id: {ticket['id']}")
    return success_response({'ticket': {
        'id': ticket['id'],
        'summary': ticket['summary'],
        'priority': ticket['priority'],
        'status': ticket['status'],
        'created_at': str(ticket['created_at']),
    }}, status_code=201)
