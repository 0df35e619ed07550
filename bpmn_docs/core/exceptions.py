"""
Service-layer exception hierarchy.

Services raise these; blueprints register handlers against them once and
get consistent HTTP status codes everywhere. A service never builds a
response itself.

Usage:
    from bpmn_docs.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Node", resource_id=node_id)
    raise ValidationError("type must be folder or file", details={"type": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist within the given scope.

    Used for BOTH genuinely missing records AND records owned by another
    user. A node owned by someone else is reported exactly like a missing one.

    Args:
        resource: Human-readable entity name (e.g. "Node", "Parent node", "KPI").
        resource_id: The id that was looked up. Included in logs and message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing, malformed or breaks a tree rule.

    Covers both plain validation (missing name, unknown type) and integrity
    rules (parent is not a folder, move under own descendant). Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an insert would duplicate a unique value. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")
