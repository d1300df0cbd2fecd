"""
Parameter validation helper utilities.

Provides reusable validation logic for JSON body parameters
so every table route validates input the same way.
"""
from typing import Any, Mapping, Optional, Tuple

from flask import Response, request
from helpers.response_helpers import error_response as create_error_response


def get_json_body() -> Tuple[Optional[dict], Optional[Tuple[Response, int]]]:
    """
    Read the request's JSON object body.

    Returns:
        Tuple of (body, error_response); an absent body reads as {}
    """
    if not request.data:
        return {}, None
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return None, create_error_response('Request body must be a JSON object')
    return body, None


def validate_int_field(
    body: Mapping[str, Any],
    field_name: str,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None
) -> Tuple[Optional[int], Optional[Tuple[Response, int]]]:
    """
    Validate an integer field of a JSON body.

    Args:
        body: Parsed JSON object
        field_name: Field to read
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive)

    Returns:
        Tuple of (validated_value, error_response)

    Examples:
        >>> validate_int_field({'page': 2}, 'page', min_value=1)
        (2, None)

        >>> # {'page': 'two'} -> (None, <Response with 400 status>)
    """
    value = body.get(field_name)
    if isinstance(value, bool) or not isinstance(value, int):
        return None, create_error_response(f'{field_name} must be an integer')
    if min_value is not None and value < min_value:
        return None, create_error_response(f'{field_name} must be at least {min_value}')
    if max_value is not None and value > max_value:
        return None, create_error_response(f'{field_name} must be at most {max_value}')
    return value, None


def validate_optional_str_field(
    body: Mapping[str, Any],
    field_name: str,
    max_length: int = 500
) -> Tuple[Optional[str], Optional[Tuple[Response, int]]]:
    """
    Validate an optional string field of a JSON body.

    Returns:
        Tuple of (value or None when absent, error_response)
    """
    value = body.get(field_name)
    if value is None:
        return None, None
    if not isinstance(value, str):
        return None, create_error_response(f'{field_name} must be a string')
    if len(value) > max_length:
        return None, create_error_response(f'{field_name} exceeds {max_length} characters')
    return value, None
