"""Error envelope shared by every endpoint.

    {"error": "<message>", "code": "ERR_...", "details": {...}}   # details optional

Views return ``api_error(...)`` directly; service exceptions are turned into
the same envelope by ``exception_response`` (registered in ``create_app``).

    from portal.utils.errors import api_error, E

    return api_error(E.VALIDATION_REQUIRED, "fromEmployeeId is required")
"""

from __future__ import annotations

from flask import jsonify

from portal.core.exceptions import (
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DependencyWriteError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)


class E:
    """Error codes. The HTTP status each one implies is in ``STATUS_FOR``."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    INVALID_STATE = "ERR_INVALID_STATE"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    CONFLICT_STATE = "ERR_CONFLICT_STATE"
    CONFIGURATION = "ERR_CONFIGURATION"
    DEPENDENCY = "ERR_DEPENDENCY_WRITE"
    DATABASE = "ERR_DATABASE"
    METHOD_NOT_ALLOWED = "ERR_METHOD_NOT_ALLOWED"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.INVALID_STATE: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.CONFLICT_STATE: 409,
    E.CONFIGURATION: 500,
    E.DEPENDENCY: 500,
    E.METHOD_NOT_ALLOWED: 405,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}

# Exception types handled by ``exception_response``, most specific first.
PORTAL_EXCEPTIONS = (
    InvalidStateError,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    ConfigurationError,
    DependencyWriteError,
)


def api_error(code: str, message: str, *, status: int | None = None, details=None):
    """Build ``(response, status)`` for ``code``.

    ``status`` overrides the code's default; unknown codes fall back to 400.
    Empty ``details`` are left out of the body.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or STATUS_FOR.get(code, 400)


def error_code_for(exc: Exception) -> str:
    if isinstance(exc, InvalidStateError):
        return E.INVALID_STATE
    if isinstance(exc, ValidationError):
        return E.VALIDATION_INVALID
    if isinstance(exc, NotFoundError):
        return E.NOT_FOUND
    if isinstance(exc, AuthorizationError):
        return E.FORBIDDEN if exc.status_code == 403 else E.UNAUTHORIZED
    if isinstance(exc, ConflictError):
        # A version clash means someone else changed the row first.
        return E.CONFLICT_STATE if exc.field == "version" else E.CONFLICT_DUPLICATE
    if isinstance(exc, ConfigurationError):
        return E.CONFIGURATION
    if isinstance(exc, DependencyWriteError):
        return E.DEPENDENCY
    return E.INTERNAL


def exception_response(exc: Exception):
    """Render a portal exception with the standard envelope."""
    details = getattr(exc, "details", None)
    return api_error(
        error_code_for(exc),
        str(exc),
        status=getattr(exc, "status_code", None),
        details=details or None,
    )
