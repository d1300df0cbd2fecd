"""
JSON envelopes for the API.

Every response carries a boolean `success`; failures add an `error` string.
"""
from typing import Any, Dict, Optional, Tuple
from flask import jsonify, Response


def error_response(
    message: str,
    status_code: int = 400,
    extra_data: Optional[Dict[str, Any]] = None
) -> Tuple[Response, int]:
    """
    Failure envelope, e.g. error_response("Unknown table 'x'", 404).

    `extra_data` is merged in beside the error, which lets a rejected edit
    still return the unchanged view.
    """
    body = dict(extra_data or {})
    body.update(success=False, error=message)
    return jsonify(body), status_code


def success_response(data: Optional[Any] = None, status_code: int = 200) -> Tuple[Response, int]:
    """Success envelope; a dict is merged at top level, anything else goes under 'data'."""
    body: Dict[str, Any] = {'success': True}
    if isinstance(data, dict):
        body.update(data)
    elif data is not None:
        body['data'] = data
    return jsonify(body), status_code
