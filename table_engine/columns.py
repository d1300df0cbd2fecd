"""
Column registry for the table engine.

Turns the partial per-field configuration a caller supplies into complete
column descriptors, and provides the typed accessor used to read a column's
value out of a row.
"""
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from constants import DEFAULT_COLUMN_SIZE

ALIGNMENTS = ('left', 'center', 'right')
DATA_TYPES = ('text', 'number', 'date')

_CAPTION_SEPARATORS = re.compile(r'[_\-.\s]+')

# Alternate spellings accepted in column maps, first match wins
_OPTION_ALIASES = {
    'hidden': ('hidden', 'hide'),
    'sortable': ('sortable', 'is_sortable', 'isSortable'),
    'filterable': ('filterable', 'is_filterable', 'isFilterable'),
    'data_type': ('data_type', 'dataType'),
}


@dataclass(frozen=True)
class ColumnDescriptor:
    """
    Complete configuration for one field exposed in the grid.

    Args:
        id: Field key (or dotted field path) into the row
        caption: Header label
        size: Display width hint
        align: 'left', 'center' or 'right'
        hidden: Excluded from display, search and the filter/sort key lists
        sortable: Whether sort criteria on this column take effect
        filterable: Whether filter criteria and search consider this column
        data_type: 'text', 'number' or 'date'
        render: Optional callable producing the displayed cell for a row
    """
    id: str
    caption: str
    size: int = DEFAULT_COLUMN_SIZE
    align: str = 'left'
    hidden: bool = False
    sortable: bool = True
    filterable: bool = True
    data_type: str = 'text'
    render: Optional[Callable[[Any], Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'caption': self.caption,
            'size': self.size,
            'align': self.align,
            'hidden': self.hidden,
            'sortable': self.sortable,
            'filterable': self.filterable,
            'data_type': self.data_type,
        }


def default_caption(column_id: str) -> str:
    """
    Build a header label from a column id.

    Examples:
        >>> default_caption('created_at')
        'Created At'

        >>> default_caption('assignee.display-name')
        'Assignee Display Name'
    """
    segments = [s for s in _CAPTION_SEPARATORS.split(str(column_id).lower()) if s]
    return ' '.join(segment[:1].upper() + segment[1:] for segment in segments)


def _option(partial: Mapping[str, Any], name: str, default: Any) -> Any:
    for alias in _OPTION_ALIASES.get(name, (name,)):
        if alias in partial and partial[alias] is not None:
            return partial[alias]
    return default


def normalize_column(column_id: str, partial: Optional[Mapping[str, Any]]) -> ColumnDescriptor:
    """Apply defaults to one partial column configuration."""
    if not isinstance(partial, Mapping):
        partial = {}

    caption = partial.get('caption')
    if not isinstance(caption, str) or not caption:
        caption = default_caption(column_id)

    size = partial.get('size', DEFAULT_COLUMN_SIZE)
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        size = DEFAULT_COLUMN_SIZE

    align = partial.get('align', 'left')
    if align not in ALIGNMENTS:
        align = 'left'

    data_type = _option(partial, 'data_type', 'text')
    if data_type not in DATA_TYPES:
        data_type = 'text'

    render = partial.get('render')
    if not callable(render):
        render = None

    return ColumnDescriptor(
        id=str(column_id),
        caption=caption,
        size=size,
        align=align,
        hidden=bool(_option(partial, 'hidden', False)),
        sortable=bool(_option(partial, 'sortable', True)),
        filterable=bool(_option(partial, 'filterable', True)),
        data_type=data_type,
        render=render,
    )


def normalize_columns(columns_map: Optional[Mapping[str, Any]]) -> List[ColumnDescriptor]:
    """
    Normalize a column map into an ordered list of complete descriptors.

    Pure and order preserving over the map's iteration order. Malformed
    entries are defaulted, never rejected.

    Args:
        columns_map: Mapping of column id to partial configuration

    Returns:
        List of ColumnDescriptor in map order
    """
    if not columns_map:
        return []
    return [normalize_column(column_id, partial) for column_id, partial in columns_map.items()]


def find_column(columns: Sequence[ColumnDescriptor], key: str) -> Optional[ColumnDescriptor]:
    for column in columns:
        if column.id == key:
            return column
    return None


def visible_columns(columns: Sequence[ColumnDescriptor]) -> List[ColumnDescriptor]:
    return [c for c in columns if not c.hidden]


def filterable_keys(columns: Sequence[ColumnDescriptor]) -> List[str]:
    """Keys offered for filter criteria (visible and filterable)."""
    return [c.id for c in columns if not c.hidden and c.filterable]


def sortable_keys(columns: Sequence[ColumnDescriptor]) -> List[str]:
    """Keys offered for sort criteria (visible and sortable)."""
    return [c.id for c in columns if not c.hidden and c.sortable]


def get_value(row: Any, field_path: str) -> Any:
    """
    Read a field from a row.

    Mappings are read by key, other objects by attribute. A dotted path walks
    nested values; a key present verbatim (dots included) takes precedence.
    Missing fields read as None.

    Args:
        row: Mapping or object
        field_path: Column id, e.g. 'status' or 'assignee.name'

    Returns:
        The field value or None
    """
    if isinstance(row, Mapping) and field_path in row:
        return row[field_path]

    current = row
    for segment in field_path.split('.'):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(segment)
        else:
            current = getattr(current, segment, None)
    return current
