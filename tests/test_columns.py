"""
Unit tests for the column registry.
"""
from types import SimpleNamespace

from table_engine.columns import (
    default_caption, filterable_keys, get_value, normalize_column, normalize_columns,
    sortable_keys, visible_columns,
)


def test_default_caption_title_cases_segments():
    assert default_caption('created_at') == 'Created At'
    assert default_caption('SUMMARY') == 'Summary'
    assert default_caption('assignee.display-name') == 'Assignee Display Name'


def test_normalize_applies_defaults():
    column = normalize_column('priority', {})
    assert column.caption == 'Priority'
    assert column.size == 100
    assert column.align == 'left'
    assert column.hidden is False
    assert column.sortable is True
    assert column.filterable is True
    assert column.data_type == 'text'
    assert column.render is None


def test_normalize_keeps_explicit_values():
    column = normalize_column('id', {
        'caption': 'ID', 'size': 60, 'align': 'right', 'data_type': 'number',
        'sortable': False,
    })
    assert column.caption == 'ID'
    assert column.size == 60
    assert column.align == 'right'
    assert column.data_type == 'number'
    assert column.sortable is False


def test_normalize_accepts_alternate_option_names():
    column = normalize_column('secret', {'hide': True, 'isSortable': False, 'dataType': 'date'})
    assert column.hidden is True
    assert column.sortable is False
    assert column.data_type == 'date'


def test_normalize_defaults_malformed_entries():
    column = normalize_column('x', {'size': -5, 'align': 'diagonal', 'data_type': 'blob',
                                    'caption': '', 'render': 'not callable'})
    assert column.size == 100
    assert column.align == 'left'
    assert column.data_type == 'text'
    assert column.caption == 'X'
    assert column.render is None

    assert normalize_column('y', None).caption == 'Y'


def test_normalize_columns_preserves_map_order():
    columns = normalize_columns({'b': {}, 'a': {}, 'c': {}})
    assert [c.id for c in columns] == ['b', 'a', 'c']
    assert normalize_columns(None) == []


def test_normalize_columns_is_pure():
    config = {'status': {'size': 50}}
    normalize_columns(config)
    assert config == {'status': {'size': 50}}


def test_key_lists_skip_hidden_and_disabled_columns():
    columns = normalize_columns({
        'id': {'filterable': False},
        'summary': {},
        'internal': {'hidden': True},
        'status': {'sortable': False},
    })
    assert [c.id for c in visible_columns(columns)] == ['id', 'summary', 'status']
    assert filterable_keys(columns) == ['summary', 'status']
    assert sortable_keys(columns) == ['id', 'summary']


def test_get_value_from_mapping_and_object():
    assert get_value({'status': 'Open'}, 'status') == 'Open'
    assert get_value(SimpleNamespace(status='Closed'), 'status') == 'Closed'
    assert get_value({'status': 'Open'}, 'missing') is None


def test_get_value_walks_dotted_paths():
    row = {'assignee': {'name': 'Dana'}, 'meta.raw': 'verbatim'}
    assert get_value(row, 'assignee.name') == 'Dana'
    assert get_value(row, 'meta.raw') == 'verbatim'
    assert get_value(row, 'assignee.email') is None
    assert get_value({'assignee': None}, 'assignee.name') is None
