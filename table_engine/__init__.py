"""
Generic tabular data engine.

Search, typed filtering, stable multi-key sorting and pagination over an
in-memory row snapshot, with optional persistence of filters and sorts.
"""

from .columns import ColumnDescriptor, normalize_columns, get_value, default_caption
from .values import stringify, parse_number, parse_date_ms
from .query import evaluate, apply_search, apply_filters, apply_sorts
from .pagination import PageResult, paginate, clamp_page, generate_page_numbers
from .state import ViewState, FilterCriterion, SortCriterion, initial_state
from .persistence import (
    KVStore,
    MemoryKVStore,
    PersistenceBridge,
    serialize_criteria,
    deserialize_criteria,
    storage_key,
)
from .table import DataTable, TableOptions, TableView, RenderedRow, render_cell

__all__ = [
    # Column registry
    'ColumnDescriptor',
    'normalize_columns',
    'get_value',
    'default_caption',
    # Values
    'stringify',
    'parse_number',
    'parse_date_ms',
    # Query pipeline
    'evaluate',
    'apply_search',
    'apply_filters',
    'apply_sorts',
    # Pagination
    'PageResult',
    'paginate',
    'clamp_page',
    'generate_page_numbers',
    # View state
    'ViewState',
    'FilterCriterion',
    'SortCriterion',
    'initial_state',
    # Persistence
    'KVStore',
    'MemoryKVStore',
    'PersistenceBridge',
    'serialize_criteria',
    'deserialize_criteria',
    'storage_key',
    # Table
    'DataTable',
    'TableOptions',
    'TableView',
    'RenderedRow',
    'render_cell',
]
