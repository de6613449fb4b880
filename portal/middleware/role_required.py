"""
Role Decorators — route protection based on the caller's employee role.

Usage:
    @bp.route("/resources/assignments/<aid>", methods=["DELETE"])
    @require_roles("CEO", "CTO", "ADMIN")
    def delete_assignment(aid):
        ...

    @bp.route("/onboarding", methods=["GET"])
    @login_required
    def onboarding_status():
        ...

``g.current_employee`` is populated by ``jwt_auth``. No employee → 401,
employee outside the role set → 403.
"""

import functools
import logging

from flask import g

from portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def login_required(f):
    """Decorator: require an authenticated employee."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "current_employee", None) is None:
            return api_error(E.UNAUTHORIZED, "Unauthorized")
        return f(*args, **kwargs)
    return decorated


def require_roles(*roles: str):
    """Decorator: require the caller's role to be one of ``roles``."""
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            employee = getattr(g, "current_employee", None)
            if employee is None:
                return api_error(E.UNAUTHORIZED, "Unauthorized")

            if employee.role not in allowed:
                logger.warning(
                    "Employee %s (%s) denied on %s: requires one of %s",
                    employee.id, employee.role, f.__name__, sorted(allowed),
                )
                return api_error(
                    E.FORBIDDEN, "Insufficient permissions",
                    details={"required_any": sorted(allowed)},
                )

            return f(*args, **kwargs)
        return decorated
    return decorator
