"""
Integration tests for the table API blueprint.
"""
import pytest

from app import app
from database import Database
from routes import table_routes
from routes.table_routes import init_table_routes


@pytest.fixture
def database(tmp_path):
    db = Database(tmp_path / 'routes.db')
    db.seed_sample_tickets()
    yield db
    db.close()


@pytest.fixture
def client(database):
    """Create test client over a fresh ticket table (page size 2)."""
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    init_table_routes(database, (2, 5))
    with app.test_client() as client:
        yield client
    table_routes.close_tables()


def view_of(response):
    data = response.get_json()
    assert data['success'] is True
    return data['view']


def test_get_view(client):
    response = client.get('/api/tables/tickets')
    assert response.status_code == 200
    view = view_of(response)
    assert view['pagination']['total_items'] == 4
    assert view['pagination']['total_pages'] == 2
    assert view['state']['page_size'] == 2
    assert [c['id'] for c in view['columns']] == ['id', 'summary', 'priority', 'status', 'created_at']
    assert view['rows'][0]['key'] == 1
    assert view['rows'][0]['cells'][1] == 'Login issue'


def test_unknown_table(client):
    response = client.get('/api/tables/nope')
    assert response.status_code == 404
    assert response.get_json()['success'] is False

    response = client.post('/api/tables/nope/filters')
    assert response.status_code == 404


def test_get_view_does_not_change_state(client):
    client.put('/api/tables/tickets/page', json={'page': 2})
    response = client.get('/api/tables/tickets?search=issue&page=1&page_size=5')
    data = response.get_json()
    assert data['changed'] is False
    assert data['view']['state']['search_term'] == ''
    assert data['view']['state']['page_index'] == 2
    assert data['view']['state']['page_size'] == 2


def test_search_and_paging_are_per_client(client):
    client.put('/api/tables/tickets/search', json={'term': 'login'})
    client.put('/api/tables/tickets/page-size', json={'page_size': 5})

    other = app.test_client()
    view = view_of(other.get('/api/tables/tickets'))
    assert view['state']['search_term'] == ''
    assert view['state']['page_size'] == 2
    assert view['pagination']['total_items'] == 4

    view = view_of(client.get('/api/tables/tickets'))
    assert view['state']['search_term'] == 'login'
    assert view['pagination']['total_items'] == 1


def test_new_client_restores_saved_sorts(client):
    client.post('/api/tables/tickets/sorts/toggle', json={'key': 'priority'})
    assert table_routes.flush_tables(timeout=5)

    other = app.test_client()
    view = view_of(other.get('/api/tables/tickets'))
    assert view['state']['sorts'] == [{'key': 'priority', 'direction': 'asc'}]


def test_new_ticket_reaches_every_client(client):
    client.get('/api/tables/tickets')
    other = app.test_client()
    other.get('/api/tables/tickets')
    other.post('/api/tickets', json={'summary': 'Password reset', 'priority': 'Low'})
    view = view_of(client.get('/api/tables/tickets'))
    assert view['pagination']['total_items'] == 5


def test_idle_session_tables_are_closed(client, monkeypatch):
    monkeypatch.setattr(table_routes, 'MAX_SESSION_TABLES', 2)
    client.put('/api/tables/tickets/search', json={'term': 'login'})
    for _ in range(2):
        app.test_client().get('/api/tables/tickets')

    # the first client's table was evicted, so it starts from a fresh view
    view = view_of(client.get('/api/tables/tickets'))
    assert view['state']['search_term'] == ''


def test_search(client):
    response = client.put('/api/tables/tickets/search', json={'term': 'api'})
    view = view_of(response)
    assert view['pagination']['total_items'] == 1
    assert view['state']['search_term'] == 'api'

    response = client.put('/api/tables/tickets/search', json={'term': 5})
    assert response.status_code == 400


def test_filter_lifecycle(client):
    response = client.post('/api/tables/tickets/filters')
    assert view_of(response)['state']['filters'] == [
        {'key': 'id', 'condition': 'contains', 'value': ''}
    ]

    response = client.patch('/api/tables/tickets/filters/0',
                            json={'key': 'priority', 'condition': 'equals', 'value': 'High'})
    view = view_of(response)
    assert view['pagination']['total_items'] == 2

    response = client.patch('/api/tables/tickets/filters/3', json={'value': 'x'})
    assert response.status_code == 200
    assert response.get_json()['changed'] is False

    response = client.delete('/api/tables/tickets/filters/0')
    assert view_of(response)['pagination']['total_items'] == 4

    client.post('/api/tables/tickets/filters')
    response = client.delete('/api/tables/tickets/filters')
    assert view_of(response)['state']['filters'] == []


def test_invalid_json_body(client):
    response = client.patch('/api/tables/tickets/filters/0', data='not json',
                            content_type='application/json')
    assert response.status_code == 400


def test_add_sort_rejected_when_every_column_is_sorted(client):
    for _ in range(5):
        assert client.post('/api/tables/tickets/sorts').status_code == 200
    response = client.post('/api/tables/tickets/sorts')
    assert response.status_code == 409
    assert len(response.get_json()['view']['state']['sorts']) == 5


def test_toggle_sort(client):
    client.post('/api/tables/tickets/sorts/toggle', json={'key': 'priority'})
    response = client.post('/api/tables/tickets/sorts/toggle', json={'key': 'priority'})
    view = view_of(response)
    assert view['state']['sorts'] == [{'key': 'priority', 'direction': 'desc'}]
    # Medium, Low, High, High
    assert [row['cells'][2] for row in view['rows']] == ['Medium', 'Low']

    response = client.post('/api/tables/tickets/sorts/toggle', json={})
    assert response.status_code == 400


def test_update_reorder_and_clear_sorts(client):
    client.post('/api/tables/tickets/sorts')
    client.post('/api/tables/tickets/sorts')

    response = client.patch('/api/tables/tickets/sorts/0', json={'direction': 'desc'})
    assert view_of(response)['state']['sorts'][0] == {'key': 'id', 'direction': 'desc'}

    response = client.post('/api/tables/tickets/sorts/reorder', json={'from': 1, 'to': 0})
    assert [s['key'] for s in view_of(response)['state']['sorts']] == ['summary', 'id']

    response = client.post('/api/tables/tickets/sorts/reorder', json={'from': 'a', 'to': 0})
    assert response.status_code == 400

    response = client.delete('/api/tables/tickets/sorts/1')
    assert [s['key'] for s in view_of(response)['state']['sorts']] == ['summary']

    response = client.delete('/api/tables/tickets/sorts')
    assert view_of(response)['state']['sorts'] == []


def test_paging(client):
    response = client.put('/api/tables/tickets/page', json={'page': 2})
    view = view_of(response)
    assert view['state']['page_index'] == 2
    assert [row['key'] for row in view['rows']] == [3, 4]

    response = client.put('/api/tables/tickets/page', json={'page': 0})
    assert response.status_code == 400

    response = client.put('/api/tables/tickets/page-size', json={'page_size': 5})
    view = view_of(response)
    assert view['state']['page_index'] == 1
    assert view['pagination']['total_pages'] == 1


def test_refresh(client):
    client.put('/api/tables/tickets/search', json={'term': 'bug'})
    client.post('/api/tables/tickets/sorts')
    response = client.post('/api/tables/tickets/refresh')
    data = response.get_json()
    assert data['changed'] is True
    assert data['view']['state']['search_term'] == ''
    assert data['view']['state']['sorts'] == []


def test_sorts_are_saved_to_the_database(client, database):
    client.post('/api/tables/tickets/sorts/toggle', json={'key': 'status'})
    assert table_routes.flush_tables(timeout=5)
    assert '"status"' in database.view_state_store.get('table-tickets')


def test_create_ticket_refreshes_table(client):
    response = client.post('/api/tickets', json={'summary': 'Password reset', 'priority': 'Low'})
    assert response.status_code == 201
    ticket = response.get_json()['ticket']
    assert ticket['id'] == 5
    assert ticket['status'] == 'Open'

    view = view_of(client.get('/api/tables/tickets'))
    assert view['pagination']['total_items'] == 5


def test_create_ticket_validation(client):
    response = client.post('/api/tickets', json={'summary': 'x', 'priority': 'Urgent'})
    assert response.status_code == 400
    assert 'Priority' in response.get_json()['error']


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['success'] is True
