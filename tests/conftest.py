"""
Shared test setup.

Points the data directory and database at a throwaway location before any
application module is imported, so importing app never touches /config.
"""
import os
import tempfile

_TEST_DATA_DIR = tempfile.mkdtemp(prefix='ticket_desk_tests_')
os.environ.setdefault('TICKET_DESK_DATA_DIR', _TEST_DATA_DIR)
os.environ.setdefault('TICKET_DESK_DB_PATH', os.path.join(_TEST_DATA_DIR, 'ticket_desk.db'))
os.environ.setdefault('FLASK_SECRET_KEY', 'test-secret-key')

import pytest


@pytest.fixture
def people():
    """Rows used by the multi-key sorting examples."""
    return [
        {'id': 1, 'name': 'Bob', 'age': 30},
        {'id': 2, 'name': 'Amy', 'age': 25},
        {'id': 3, 'name': 'Cid', 'age': 25},
    ]


@pytest.fixture
def people_columns():
    return {
        'id': {'data_type': 'number'},
        'name': {},
        'age': {'data_type': 'number'},
    }
