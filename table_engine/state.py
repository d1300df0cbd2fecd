"""
Immutable view state for a table and the pure transitions between states.

Every transition returns a new ViewState (or the same object when nothing
changed); nothing here mutates in place. The DataTable controller owns the
current value and swaps it wholesale.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Sequence, Tuple

from constants import DEFAULT_PAGE_SIZE_CHOICES, MAX_SORT_CRITERIA

TEXT_CONDITIONS = ('contains', 'equals', 'not_equals', 'starts_with', 'ends_with')
ORDERED_CONDITIONS = ('equals', 'not_equals', 'greater_than', 'less_than', 'contains')
ALL_CONDITIONS = TEXT_CONDITIONS + ('greater_than', 'less_than')
SORT_DIRECTIONS = ('asc', 'desc')


def conditions_for(data_type: str) -> Tuple[str, ...]:
    """Filter conditions supported by a column data type."""
    if data_type in ('number', 'date'):
        return ORDERED_CONDITIONS
    return TEXT_CONDITIONS


@dataclass(frozen=True)
class FilterCriterion:
    key: str
    condition: str = 'contains'
    value: str = ''

    def is_active(self) -> bool:
        """Blank values are ignored by the pipeline."""
        return bool(self.value.strip())

    def to_dict(self) -> Dict[str, str]:
        return {'key': self.key, 'condition': self.condition, 'value': self.value}


@dataclass(frozen=True)
class SortCriterion:
    key: str
    direction: str = 'asc'

    def to_dict(self) -> Dict[str, str]:
        return {'key': self.key, 'direction': self.direction}


@dataclass(frozen=True)
class ViewState:
    """
    User-controllable parameters describing the displayed slice of data.

    Only filters and sorts are ever persisted; search term and paging are
    session-local.
    """
    search_term: str = ''
    filters: Tuple[FilterCriterion, ...] = ()
    sorts: Tuple[SortCriterion, ...] = ()
    page_index: int = 1
    page_size: int = DEFAULT_PAGE_SIZE_CHOICES[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'search_term': self.search_term,
            'filters': [f.to_dict() for f in self.filters],
            'sorts': [s.to_dict() for s in self.sorts],
            'page_index': self.page_index,
            'page_size': self.page_size,
        }


def initial_state(page_size_choices: Sequence[int] = DEFAULT_PAGE_SIZE_CHOICES) -> ViewState:
    """Fresh state: empty search, no criteria, first page, first page size."""
    choices = [size for size in page_size_choices if isinstance(size, int) and size > 0]
    page_size = choices[0] if choices else DEFAULT_PAGE_SIZE_CHOICES[0]
    return ViewState(page_size=page_size)


# =============================================================================
# Search and paging
# =============================================================================

def with_search_term(state: ViewState, term: str) -> ViewState:
    return replace(state, search_term=term, page_index=1)


def with_page(state: ViewState, page_index: int) -> ViewState:
    return replace(state, page_index=page_index)


def with_page_size(state: ViewState, page_size: int) -> ViewState:
    return replace(state, page_size=page_size, page_index=1)


def reset(state: ViewState) -> ViewState:
    """Clear search, filters and sorts in one step; page size is kept."""
    return replace(state, search_term='', filters=(), sorts=(), page_index=1)


def with_criteria(state: ViewState, filters: Sequence[FilterCriterion],
                  sorts: Sequence[SortCriterion]) -> ViewState:
    """Replace both criteria lists (used when restoring persisted state)."""
    return replace(state, filters=tuple(filters), sorts=tuple(sorts), page_index=1)


# =============================================================================
# Filters
# =============================================================================

def add_filter(state: ViewState, key: str) -> ViewState:
    criterion = FilterCriterion(key=key)
    return replace(state, filters=state.filters + (criterion,))


def update_filter(state: ViewState, index: int, key: Optional[str] = None,
                  condition: Optional[str] = None, value: Optional[str] = None) -> ViewState:
    current = state.filters[index]
    updated = FilterCriterion(
        key=current.key if key is None else key,
        condition=current.condition if condition is None else condition,
        value=current.value if value is None else value,
    )
    if updated == current:
        return state
    filters = state.filters[:index] + (updated,) + state.filters[index + 1:]
    return replace(state, filters=filters, page_index=1)


def remove_filter(state: ViewState, index: int) -> ViewState:
    filters = state.filters[:index] + state.filters[index + 1:]
    return replace(state, filters=filters, page_index=1)


def clear_filters(state: ViewState) -> ViewState:
    return replace(state, filters=(), page_index=1)


# =============================================================================
# Sorts
# =============================================================================

# Sort changes keep the page index: same member rows, different order.

def can_add_sort(state: ViewState) -> bool:
    return len(state.sorts) < MAX_SORT_CRITERIA


def add_sort(state: ViewState, key: str, direction: str = 'asc') -> ViewState:
    criterion = SortCriterion(key=key, direction=direction)
    return replace(state, sorts=state.sorts + (criterion,))


def update_sort(state: ViewState, index: int, key: Optional[str] = None,
                direction: Optional[str] = None) -> ViewState:
    current = state.sorts[index]
    updated = SortCriterion(
        key=current.key if key is None else key,
        direction=current.direction if direction is None else direction,
    )
    if updated == current:
        return state
    sorts = state.sorts[:index] + (updated,) + state.sorts[index + 1:]
    return replace(state, sorts=sorts)


def remove_sort(state: ViewState, index: int) -> ViewState:
    sorts = state.sorts[:index] + state.sorts[index + 1:]
    return replace(state, sorts=sorts)


def reorder_sort(state: ViewState, from_index: int, to_index: int) -> ViewState:
    """Move the sort at from_index so it ends up at to_index."""
    sorts = list(state.sorts)
    moved = sorts.pop(from_index)
    sorts.insert(to_index, moved)
    return replace(state, sorts=tuple(sorts))


def clear_sorts(state: ViewState) -> ViewState:
    return replace(state, sorts=())
