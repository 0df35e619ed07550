"""
BPMN process documentation service
Blueprint registry helpers.
"""

from flask import request

from bpmn_docs.utils.errors import E, api_error


def json_body():
    """Return ``(data, None)`` for a JSON object body, else ``(None, error_response)``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None
