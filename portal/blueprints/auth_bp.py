"""
Auth Blueprint — cookie-based JWT authentication endpoints.

  POST /api/v1/auth/login       — Email + password → auth-token cookie (+ token in body)
  POST /api/v1/auth/logout      — Clear the auth-token cookie
  GET  /api/v1/auth/me          — Current employee profile
"""

from flask import Blueprint, current_app, g, jsonify, request

from portal.middleware.role_required import login_required
from portal.services.auth_service import login_employee
from portal.services.jwt_service import get_access_expires

auth_bp = Blueprint("auth", __name__, url_prefix="/api/v1/auth")


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/login
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Authenticate with email + password.

    Body: { "email": "...", "password": "..." }

    Sets an httpOnly ``auth-token`` cookie and returns the employee, the token
    (for Bearer clients) and the outcome of the automatic onboarding run.
    """
    data = request.get_json(silent=True) or {}
    outcome = login_employee(data.get("email", ""), data.get("password", ""))

    resp = jsonify({
        "employee": outcome["employee"].to_dict(),
        "token": outcome["token"],
        "onboarding": outcome["onboarding"],
    })
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "auth-token"),
        outcome["token"],
        max_age=get_access_expires(),
        httponly=True,
        secure=current_app.config.get("AUTH_COOKIE_SECURE", False),
        samesite="Lax",
        path="/",
    )
    return resp, 200


# ═══════════════════════════════════════════════════════════════
# POST /api/v1/auth/logout
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/logout", methods=["POST"])
def logout():
    resp = jsonify({"message": "Logged out successfully"})
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "auth-token"), path="/")
    return resp, 200


# ═══════════════════════════════════════════════════════════════
# GET /api/v1/auth/me
# ═══════════════════════════════════════════════════════════════
@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"employee": g.current_employee.to_dict()}), 200
