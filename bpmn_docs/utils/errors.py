"""JSON error envelope shared by every blueprint.

    {"success": false, "error": "<message>", "code": "ERR_...", "details": {...}}

Blueprints return ``api_error(...)`` for request-shape problems (missing
query parameters, non-dict bodies). Service exceptions are translated by
the handlers ``register_api_error_handlers`` installs.
"""

from __future__ import annotations

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from bpmn_docs.core.exceptions import ConflictError, NotFoundError, ValidationError
from bpmn_docs.models import db


class E:
    """Error codes carried in the ``code`` field."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

# Service exception -> error code; the status follows from STATUS_BY_CODE
_SERVICE_ERRORS = (
    (ValidationError, E.VALIDATION_INVALID),
    (NotFoundError, E.NOT_FOUND),
    (ConflictError, E.CONFLICT_DUPLICATE),
)


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """``(response, status)`` for a failed call; unknown codes default to 400."""
    body = {"success": False, "error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_BY_CODE.get(code, 400)


def _service_handler(code):
    def handle(error):
        db.session.rollback()
        return api_error(code, str(error), details=getattr(error, "details", None) or None)
    return handle


def register_api_error_handlers(bp, label: str):
    """Install the service-exception handlers on ``bp``.

    Anything that is neither a service exception nor an HTTPException
    becomes a 500 whose message is ``label``; the traceback is only logged.
    """
    logger = logging.getLogger(bp.import_name)

    for exc_class, code in _SERVICE_ERRORS:
        bp.register_error_handler(exc_class, _service_handler(code))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, label)
