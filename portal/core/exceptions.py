"""
Portal-wide exception hierarchy.

Services raise these types; the application registers one handler per type
so every blueprint answers with the same status code and error envelope.

Usage:
    from portal.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Employee", resource_id=emp_id)
    raise ValidationError("action is required", details={"action": "missing"})
"""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Workflow", "Employee").
        resource_id: The PK that was looked up. Included in logs and message.
    """

    status_code = 404

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    status_code = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidStateError(ValidationError):
    """Raised when an entity is not in a state that allows the operation.

    e.g. deciding a workflow that is no longer PENDING.
    """


class AuthorizationError(Exception):
    """Raised when the caller is unauthenticated (401) or not permitted (403)."""

    def __init__(self, message: str = "Unauthorized", status_code: int = 401) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation collides with existing or concurrently changed data.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The field that conflicts (unique column, version counter).
        value: The conflicting value.
    """

    status_code = 409

    def __init__(self, resource: str, field: str, value: str | None = None, message: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = message or f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class ConfigurationError(Exception):
    """Raised when a required singleton record or setting is missing.

    Maps to HTTP 500. Raised before any write happens.
    """

    status_code = 500


class DependencyWriteError(Exception):
    """Raised when a mutation the operation cannot complete without fails.

    Maps to HTTP 500 with ``{"error": message, "details": details}``.
    """

    status_code = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        self.details = details
        super().__init__(message)
