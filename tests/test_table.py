"""
Tests for the DataTable controller: recomputation, page policy, sort rules,
listeners and rendering.
"""
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from table_engine import DataTable, TableOptions


COLUMNS = {
    'id': {'data_type': 'number', 'caption': 'ID'},
    'summary': {},
    'priority': {},
    'status': {},
    'internal_note': {'hidden': True},
}


@pytest.fixture
def rows():
    return [
        {'id': i, 'summary': f'Ticket {i}', 'priority': ('Low', 'Medium', 'High')[i % 3],
         'status': 'Open' if i % 2 else 'Closed', 'internal_note': 'x'}
        for i in range(1, 13)
    ]


@pytest.fixture
def table(rows):
    return DataTable(rows, COLUMNS, TableOptions(page_size_choices=(5, 10)))


def test_initial_view(table):
    view = table.view
    assert view.page_index == 1
    assert view.page_size == 5
    assert view.total_items == 12
    assert view.total_pages == 3
    assert [c.id for c in view.columns] == ['id', 'summary', 'priority', 'status']
    assert view.filterable_keys == ('id', 'summary', 'priority', 'status')
    assert [r.key for r in view.rows] == [1, 2, 3, 4, 5]
    assert view.rows[0].cells == ('1', 'Ticket 1', 'Medium', 'Open')
    assert view.page_numbers == [1, 2, 3]


def test_set_page_is_clamped(table):
    assert table.set_page(99)
    assert table.view.page_index == 3
    assert table.view.page_rows[0]['id'] == 11
    assert not table.set_page('2')


def test_search_resets_page(table):
    table.set_page(2)
    assert table.set_search_term('ticket 1')
    assert table.view.page_index == 1
    assert [r['id'] for r in table.ordered_rows] == [1, 10, 11, 12]


def test_filter_edit_resets_page_but_sort_does_not(table):
    table.set_page(2)
    assert table.add_sort()
    assert table.view.page_index == 2
    assert table.update_sort(0, direction='desc')
    assert table.view.page_index == 2
    assert table.view.page_rows[0]['id'] == 7

    assert table.add_filter()
    assert table.view.page_index == 2
    assert table.update_filter(0, key='status', condition='equals', value='open')
    assert table.view.page_index == 1
    assert table.view.total_items == 6


def test_page_size_resets_page_and_rejects_invalid(table):
    table.set_page(3)
    assert table.set_page_size(10)
    assert table.view.page_index == 1
    assert table.view.total_pages == 2
    assert not table.set_page_size(0)
    assert not table.set_page_size(True)


def test_page_reclamped_when_results_shrink(table):
    table.set_page(3)
    table.set_rows(table.ordered_rows[:4])
    assert table.view.page_index == 1
    assert table.view.total_items == 4


def test_add_filter_picks_unused_column(table):
    table.add_filter()
    table.add_filter()
    assert [f.key for f in table.state.filters] == ['id', 'summary']


def test_add_filter_without_filterable_columns():
    table = DataTable([{'a': 1}], {'a': {'filterable': False}})
    assert not table.add_filter()


def test_update_filter_validation(table):
    table.add_filter()
    assert not table.update_filter(3, value='x')
    assert not table.update_filter(0, condition='matches_regex')
    assert not table.update_filter(0, key='internal_note')
    # 'starts_with' is a text-only condition and id is numeric
    assert not table.update_filter(0, condition='starts_with')

    assert table.update_filter(0, condition='greater_than', value='10')
    assert [r['id'] for r in table.ordered_rows] == [11, 12]

    # switching to a text column drops the ordered condition
    assert table.update_filter(0, key='summary')
    assert table.state.filters[0].condition == 'contains'


def test_remove_and_clear_filters(table):
    table.add_filter()
    table.update_filter(0, key='priority', condition='equals', value='High')
    assert table.view.total_items == 4
    assert not table.remove_filter(5)
    assert table.remove_filter(0)
    assert table.view.total_items == 12
    assert not table.clear_filters()


def test_sort_cap_is_five():
    columns = {f'c{i}': {} for i in range(7)}
    table = DataTable([], columns)
    for _ in range(5):
        assert table.add_sort()
    assert not table.add_sort()
    assert len(table.state.sorts) == 5
    assert not table.toggle_sort('c6')


def test_add_sort_rejected_when_all_columns_used():
    table = DataTable([], {'a': {}, 'b': {'sortable': False}})
    assert table.add_sort()
    assert not table.add_sort()


def test_update_sort_rejects_duplicate_keys_and_bad_directions(table):
    table.add_sort()
    table.add_sort()
    assert not table.update_sort(1, key='id')
    assert not table.update_sort(0, direction='sideways')
    assert not table.update_sort(0, key='internal_note')
    assert table.update_sort(1, key='status')


def test_reorder_sort(table):
    table.add_sort()
    table.add_sort()
    assert table.reorder_sort(1, 0)
    assert [s.key for s in table.state.sorts] == ['summary', 'id']
    assert not table.reorder_sort(0, 0)
    assert not table.reorder_sort(0, 7)


def test_toggle_sort_cycles(table):
    assert table.toggle_sort('priority')
    assert table.state.sorts[0].direction == 'asc'
    assert table.toggle_sort('priority')
    assert table.state.sorts[0].direction == 'desc'
    assert table.toggle_sort('priority')
    assert table.state.sorts == ()
    assert not table.toggle_sort('internal_note')


def test_multi_sort_matches_precedence(table):
    table.toggle_sort('status')
    table.toggle_sort('id')
    table.toggle_sort('id')
    ids = [r['id'] for r in table.ordered_rows]
    assert ids == [12, 10, 8, 6, 4, 2, 11, 9, 7, 5, 3, 1]


def test_refresh_clears_everything_in_one_step(table):
    views = []
    table.set_search_term('ticket')
    table.add_filter()
    table.add_sort()
    table.set_page_size(10)
    table.set_page(2)
    table.subscribe(views.append)

    assert table.refresh()
    assert len(views) == 1
    state = table.state
    assert state.search_term == ''
    assert state.filters == () and state.sorts == ()
    assert state.page_index == 1
    assert state.page_size == 10
    assert not table.refresh()


def test_listeners_receive_views_and_can_unsubscribe(table):
    seen = []
    unsubscribe = table.subscribe(seen.append)
    table.set_search_term('Ticket 2')
    assert seen[-1].total_items == 1
    unsubscribe()
    table.set_search_term('')
    assert len(seen) == 1


def test_listener_called_once_per_change(table):
    listener = Mock()
    table.subscribe(listener)
    table.toggle_sort('id')
    table.toggle_sort('unknown')
    listener.assert_called_once()
    assert listener.call_args[0][0].sorts[0].key == 'id'


def test_failing_listener_does_not_break_mutation(table):
    def broken(view):
        raise RuntimeError("boom")
    table.subscribe(broken)
    assert table.set_search_term('Ticket 3')
    assert table.view.total_items == 1


def test_row_keys_follow_identity_not_position():
    rows = [{'summary': 'b'}, {'summary': 'a'}, {'summary': 'c'}]
    table = DataTable(rows, {'summary': {}})
    table.toggle_sort('summary')
    assert [r.key for r in table.view.rows] == [1, 0, 2]

    keyed = DataTable([{'id': 'T-2', 'x': 2}, {'id': 'T-1', 'x': 1}], {'x': {'data_type': 'number'}})
    keyed.toggle_sort('x')
    assert [r.key for r in keyed.view.rows] == ['T-1', 'T-2']


def test_render_callback_and_fallback():
    def explode(row):
        raise ValueError("bad row")

    table = DataTable(
        [SimpleNamespace(id=1, name='widget', price=3)],
        {
            'name': {'render': lambda row: row.name.upper()},
            'price': {'render': explode},
        },
    )
    assert table.view.rows[0].cells == ('WIDGET', '3')


def test_set_columns_makes_stale_criteria_inert(table):
    table.add_filter()
    table.update_filter(0, key='priority', value='High')
    assert table.view.total_items == 4

    table.set_columns({'id': {'data_type': 'number'}, 'summary': {}})
    assert table.state.filters[0].key == 'priority'
    assert table.view.total_items == 12


def test_to_dict_is_json_ready(table):
    data = table.view.to_dict()
    assert data['pagination']['total_items'] == 12
    assert data['state']['page_size'] == 5
    assert data['rows'][0] == {'key': 1, 'cells': ['1', 'Ticket 1', 'Medium', 'Open']}
    assert data['columns'][0]['caption'] == 'ID'
    assert data['page_size_choices'] == [5, 10]
