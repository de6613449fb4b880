"""
Auth service — password login and token → employee lookup.

Login side effects (timeline entry, onboarding check) live in
``login_employee`` so the blueprint only parses input and sets the cookie.
"""

import logging

import jwt as pyjwt

from portal.core.exceptions import AuthorizationError, ValidationError
from portal.models import db
from portal.models.employee import Employee
from portal.services.activity_log import log_timeline_activity
from portal.services.jwt_service import decode_access_token, generate_access_token
from portal.services.onboarding_service import (
    assign_onboarding_resources,
    check_onboarding_status,
)
from portal.utils.crypto import hash_password, is_legacy_hash, verify_password

logger = logging.getLogger(__name__)

INACTIVE_LOGIN_STATUSES = frozenset({"INACTIVE", "RESIGNED"})


def authenticate(email: str, password: str) -> Employee:
    """Verify credentials.

    Raises:
        ValidationError: email or password missing.
        AuthorizationError: unknown email, wrong password (401) or inactive account (403).
    """
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValidationError("Email and password are required")

    employee = Employee.query.filter_by(email=email).first()
    if employee is None or not verify_password(password, employee.password_hash):
        logger.warning("Failed login for %s", email, extra={"event_type": "auth.login_failed"})
        raise AuthorizationError("Invalid email or password", 401)
    if employee.status in INACTIVE_LOGIN_STATUSES:
        raise AuthorizationError(f"Account is {employee.status.lower()}", 403)

    if is_legacy_hash(employee.password_hash):
        employee.password_hash = hash_password(password)
        db.session.commit()
        logger.info("Upgraded password hash for %s to bcrypt", employee.id)
    return employee


def get_user_from_token(token: str | None) -> Employee | None:
    """Return the employee a token belongs to, or None for any invalid token."""
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except pyjwt.InvalidTokenError:
        return None
    employee_id = payload.get("sub")
    return db.session.get(Employee, employee_id) if employee_id else None


def login_employee(email: str, password: str) -> dict:
    """Authenticate, record the login and run onboarding if still incomplete.

    Onboarding problems are reported in the ``onboarding`` block, never raised.

    Returns:
        {"token": str, "employee": Employee, "onboarding": dict | None}
    """
    employee = authenticate(email, password)
    token = generate_access_token(employee.id, employee.email, employee.role)

    log_timeline_activity(
        entity_type="EMPLOYEE",
        entity_id=employee.id,
        activity_type="EMPLOYEE_LOGIN",
        title=f"{employee.name} logged in",
        description=f"{employee.name} signed in to the portal",
        metadata={"role": employee.role},
        performed_by=employee.id,
        employee_id=employee.id,
    )
    db.session.commit()

    onboarding = None
    try:
        status = check_onboarding_status(employee.id)
        if not status["completed"]:
            onboarding = assign_onboarding_resources(employee.id)
    except Exception as exc:
        db.session.rollback()
        logger.warning("Onboarding check failed during login for %s", employee.id, exc_info=True)
        onboarding = {"assigned": 0, "created": 0, "errors": [f"Onboarding check failed: {exc}"]}

    logger.info("Employee %s logged in", employee.id, extra={"event_type": "auth.login"})
    return {"token": token, "employee": employee, "onboarding": onboarding}
