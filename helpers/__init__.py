"""
Helper utilities for Ticket Desk.
Centralizes common patterns to reduce code duplication.
"""

# Export all helpers for easy importing
from .response_helpers import error_response, success_response
from .time_helpers import format_timestamp, parse_timestamp
from .validation_helpers import (
    validate_int_field,
    validate_optional_str_field,
    get_json_body
)

__all__ = [
    # Response helpers
    'error_response',
    'success_response',
    # Time helpers
    'format_timestamp',
    'parse_timestamp',
    # Validation helpers
    'validate_int_field',
    'validate_optional_str_field',
    'get_json_body',
]
