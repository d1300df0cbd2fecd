"""
Column configuration for the ticket list table.

The table engine knows nothing about tickets; this module is the only place
that maps ticket fields to columns.
"""
from typing import Sequence

from constants import DEFAULT_PAGE_SIZE_CHOICES
from helpers.time_helpers import format_timestamp
from table_engine import DataTable, TableOptions

TICKETS_TABLE_ID = 'tickets'

TICKET_COLUMNS = {
    'id': {'caption': 'ID', 'size': 60, 'align': 'right', 'data_type': 'number'},
    'summary': {'size': 320},
    'priority': {'size': 100, 'align': 'center'},
    'status': {'size': 120, 'align': 'center'},
    'created_at': {
        'caption': 'Created',
        'size': 150,
        'data_type': 'date',
        'render': lambda ticket: format_timestamp(ticket.get('created_at')),
    },
}


def build_ticket_table(db, page_size_choices: Sequence[int] = DEFAULT_PAGE_SIZE_CHOICES) -> DataTable:
    """
    Create the ticket table over the current ticket rows.

    Filters and sorts persist in the database's view-state store.

    Args:
        db: Database instance
        page_size_choices: Page-size menu

    Returns:
        DataTable keyed by ticket id
    """
    options = TableOptions(
        page_size_choices=tuple(page_size_choices),
        table_id=TICKETS_TABLE_ID,
        store=db.view_state_store,
        row_id_field='id',
    )
    return DataTable(db.list_tickets(), TICKET_COLUMNS, options)
