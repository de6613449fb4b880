"""
JWT Auth Middleware — resolves the calling employee, sets g.current_*.

Token sources, in order:
  1. ``auth-token`` cookie (set by POST /auth/login)
  2. ``Authorization: Bearer <token>`` header

The hook never rejects a request by itself; it only identifies the caller.
Route decorators in ``role_required`` decide what an anonymous or
under-privileged caller gets.
"""

from flask import current_app, g, request

from portal.services.auth_service import get_user_from_token


# Paths that skip JWT resolution entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
    "/static/",
)


def _token_from_request() -> str | None:
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "auth-token")
    token = request.cookies.get(cookie_name)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_employee = None
        g.current_employee_id = None
        g.current_role = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        employee = get_user_from_token(_token_from_request())
        if employee is None:
            return

        g.current_employee = employee
        g.current_employee_id = employee.id
        g.current_role = employee.role
