"""
Query pipeline: search -> filter -> sort.

Each stage is pure: it takes a sequence of rows and returns a new list without
touching its input. evaluate() always runs the three stages in that order, so
the result depends only on (rows, columns, search_term, filters, sorts).
"""
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Sequence

from .columns import ColumnDescriptor, get_value
from .state import FilterCriterion, SortCriterion, conditions_for
from .values import compare_numbers, compare_text, parse_date_ms, parse_number, stringify


def _usable_columns(columns: Sequence[ColumnDescriptor], flag: str) -> Dict[str, ColumnDescriptor]:
    return {c.id: c for c in columns if not c.hidden and getattr(c, flag)}


# =============================================================================
# Search
# =============================================================================

def apply_search(rows: Sequence[Any], columns: Sequence[ColumnDescriptor],
                 search_term: str) -> List[Any]:
    """
    Keep rows where any visible, filterable column contains the search term.

    The term is trimmed and matched case-insensitively against each cell's
    stringified value. A blank term keeps every row.
    """
    needle = (search_term or '').strip().casefold()
    if not needle:
        return list(rows)

    searchable = list(_usable_columns(columns, 'filterable'))
    return [
        row for row in rows
        if any(needle in stringify(get_value(row, key)).casefold() for key in searchable)
    ]


# =============================================================================
# Filter
# =============================================================================

def _match_text(cell: str, condition: str, value: str) -> bool:
    cell = cell.casefold()
    value = value.casefold()
    if condition == 'contains':
        return value in cell
    if condition == 'equals':
        return cell == value
    if condition == 'not_equals':
        return cell != value
    if condition == 'starts_with':
        return cell.startswith(value)
    if condition == 'ends_with':
        return cell.endswith(value)
    return False


def _match_ordered(raw_cell: Any, condition: str, value: str,
                   parse: Callable[[Any], Optional[float]]) -> bool:
    if condition == 'contains':
        return value.casefold() in stringify(raw_cell).casefold()

    cell_number = parse(raw_cell)
    filter_number = parse(value)
    if cell_number is None or filter_number is None:
        return False

    if condition == 'equals':
        return cell_number == filter_number
    if condition == 'not_equals':
        return cell_number != filter_number
    if condition == 'greater_than':
        return cell_number > filter_number
    if condition == 'less_than':
        return cell_number < filter_number
    return False


def matches_filter(row: Any, column: ColumnDescriptor, criterion: FilterCriterion) -> bool:
    """
    Evaluate one filter criterion against one row.

    Numeric and date comparisons that cannot parse either side are a
    non-match for the row, never an error.
    """
    value = criterion.value.strip()
    raw_cell = get_value(row, column.id)

    if column.data_type == 'number':
        return _match_ordered(raw_cell, criterion.condition, value, parse_number)
    if column.data_type == 'date':
        return _match_ordered(raw_cell, criterion.condition, value, parse_date_ms)
    return _match_text(stringify(raw_cell), criterion.condition, value)


def active_filters(columns: Sequence[ColumnDescriptor],
                   filters: Sequence[FilterCriterion]) -> List[tuple]:
    """
    Pair each effective filter with its column.

    Blank values, unknown or hidden columns, non-filterable columns and
    conditions the column type does not support are all inert.
    """
    usable = _usable_columns(columns, 'filterable')
    effective = []
    for criterion in filters:
        column = usable.get(criterion.key)
        if column is None or not criterion.is_active():
            continue
        if criterion.condition not in conditions_for(column.data_type):
            continue
        effective.append((column, criterion))
    return effective


def apply_filters(rows: Sequence[Any], columns: Sequence[ColumnDescriptor],
                  filters: Sequence[FilterCriterion]) -> List[Any]:
    """Keep rows that satisfy every effective filter (logical AND)."""
    effective = active_filters(columns, filters)
    if not effective:
        return list(rows)
    return [
        row for row in rows
        if all(matches_filter(row, column, criterion) for column, criterion in effective)
    ]


# =============================================================================
# Sort
# =============================================================================

def compare_cells(left: Any, right: Any, data_type: str) -> int:
    """
    Order two raw cell values for one sort criterion (ascending).

    Numbers compare numerically, dates by epoch milliseconds and text
    case-insensitively. In a number/date column, values that do not parse
    sort after every value that does and are ordered as text among
    themselves, which keeps the comparison a total order.
    """
    parse = None
    if data_type == 'number':
        parse = parse_number
    elif data_type == 'date':
        parse = parse_date_ms

    if parse is not None:
        left_parsed = parse(left)
        right_parsed = parse(right)
        if left_parsed is not None and right_parsed is not None:
            return compare_numbers(left_parsed, right_parsed)
        if left_parsed is not None:
            return -1
        if right_parsed is not None:
            return 1

    return compare_text(stringify(left), stringify(right))


def apply_sorts(rows: Sequence[Any], columns: Sequence[ColumnDescriptor],
                sorts: Sequence[SortCriterion]) -> List[Any]:
    """
    Stable multi-key sort.

    Criteria are compared in list order and the first non-zero result decides.
    Rows that tie on every criterion keep their input order.
    """
    usable = _usable_columns(columns, 'sortable')
    keys = [
        (usable[s.key], -1 if s.direction == 'desc' else 1)
        for s in sorts if s.key in usable
    ]
    if not keys:
        return list(rows)

    def compare_rows(left: Any, right: Any) -> int:
        for column, sign in keys:
            result = compare_cells(get_value(left, column.id), get_value(right, column.id),
                                   column.data_type)
            if result:
                return sign * result
        return 0

    # sorted() is guaranteed stable
    return sorted(rows, key=cmp_to_key(compare_rows))


# =============================================================================
# Pipeline
# =============================================================================

def evaluate(rows: Sequence[Any], columns: Sequence[ColumnDescriptor], search_term: str,
             filters: Sequence[FilterCriterion], sorts: Sequence[SortCriterion]) -> List[Any]:
    """
    Run search, filter and sort over a row snapshot.

    Args:
        rows: Row snapshot (not modified)
        columns: Normalized column descriptors
        search_term: Free-text search
        filters: Filter criteria, combined with AND
        sorts: Sort criteria in precedence order

    Returns:
        New list of the matching rows in display order
    """
    result = apply_search(rows, columns, search_term)
    result = apply_filters(result, columns, filters)
    return apply_sorts(result, columns, sorts)
