"""
Common constants used across the Ticket Desk service.
"""

# Values that are considered "false" for boolean environment variables
# Include empty string to handle unset or blank environment variables
FALSE_VALUES = {'false', '0', 'no', 'off', ''}

# Table view defaults
DEFAULT_PAGE_SIZE_CHOICES = (5, 10, 20)
DEFAULT_COLUMN_SIZE = 100
MAX_SORT_CRITERIA = 5

# Each browser session gets its own table; the least recently used are closed
MAX_SESSION_TABLES = 50
# Seconds a new session table waits for its saved filters/sorts
SESSION_TABLE_LOAD_TIMEOUT = 2.0

# Storage key prefix for persisted filters/sorts (one entry per table id)
VIEW_STATE_KEY_PREFIX = 'table-'

# Ticket vocabulary
TICKET_PRIORITIES = ('Low', 'Medium', 'High')
TICKET_STATUSES = ('Open', 'In Progress', 'Closed')

# Tickets shown on a fresh install
SAMPLE_TICKETS = (
    {'summary': 'Login issue', 'priority': 'High', 'status': 'Open'},
    {'summary': 'UI bug on dashboard', 'priority': 'Medium', 'status': 'In Progress'},
    {'summary': 'Feature request: Export to PDF', 'priority': 'Low', 'status': 'Closed'},
    {'summary': 'API connection failure', 'priority': 'High', 'status': 'Open'},
)
