"""
Approver & system-actor resolution.

Decisions and automated actions need a responsible employee even when the
caller names none. Resolution order for a decision:

  0. A CEO must exist at all; otherwise ConfigurationError before any write.
  1. The supplied approver id, if it references an existing employee.
  2. The default approver:
       a. ``DEFAULT_APPROVER_ID`` from config (must exist and be privileged)
       b. the ACTIVE CEO
       c. any ACTIVE employee with role CEO / CTO / ADMIN (CEO first)
       d. the CEO found in step 0

The default approver id is cached per app in ``app.extensions`` and
re-validated on every use, so a deleted or demoted employee is never
returned from the cache.
"""

import logging

from flask import current_app
from sqlalchemy import case

from portal.core.exceptions import ConfigurationError
from portal.models import db
from portal.models.employee import PRIVILEGED_ROLES, Employee

logger = logging.getLogger(__name__)

_CACHE_KEY = "portal.default_approver_id"
_SYSTEM_CACHE_KEY = "portal.system_user_id"


def find_ceo() -> Employee | None:
    """First CEO on record, preferring ACTIVE ones."""
    return (
        Employee.query.filter_by(role="CEO")
        .order_by(case((Employee.status == "ACTIVE", 0), else_=1), Employee.created_at)
        .first()
    )


def require_ceo() -> Employee:
    ceo = find_ceo()
    if ceo is None:
        logger.error("Approver resolution failed: no CEO employee on record")
        raise ConfigurationError("CEO user not found")
    return ceo


def _is_valid_default(emp: Employee | None) -> bool:
    return emp is not None and emp.role in PRIVILEGED_ROLES


def _compute_default_approver(ceo: Employee) -> Employee:
    configured_id = current_app.config.get("DEFAULT_APPROVER_ID")
    if configured_id:
        configured = db.session.get(Employee, configured_id)
        if _is_valid_default(configured):
            return configured
        logger.warning(
            "DEFAULT_APPROVER_ID=%s is missing or not privileged; using fallback chain",
            configured_id,
        )

    if ceo.status == "ACTIVE":
        return ceo

    role_rank = case(
        (Employee.role == "CEO", 0),
        (Employee.role == "CTO", 1),
        else_=2,
    )
    privileged = (
        Employee.query.filter(
            Employee.role.in_(PRIVILEGED_ROLES),
            Employee.status == "ACTIVE",
        )
        .order_by(role_rank, Employee.created_at)
        .first()
    )
    return privileged or ceo


def get_default_approver() -> Employee:
    """Return the default approver, resolving and caching it on first use.

    Raises:
        ConfigurationError: no CEO exists.
    """
    ceo = require_ceo()
    cached_id = current_app.extensions.get(_CACHE_KEY)
    if cached_id:
        cached = db.session.get(Employee, cached_id)
        if _is_valid_default(cached):
            return cached

    approver = _compute_default_approver(ceo)
    current_app.extensions[_CACHE_KEY] = approver.id
    logger.info("Default approver resolved: %s (%s)", approver.id, approver.role)
    return approver


def invalidate_default_approver() -> None:
    """Drop cached actor ids (after role changes, and between tests)."""
    current_app.extensions.pop(_CACHE_KEY, None)
    current_app.extensions.pop(_SYSTEM_CACHE_KEY, None)


def resolve_approver(approver_id: str | None = None) -> Employee:
    """Return the employee who will be recorded as approver of a decision.

    Raises:
        ConfigurationError: no CEO exists (checked before anything else).
    """
    require_ceo()
    if approver_id:
        supplied = db.session.get(Employee, approver_id)
        if supplied is not None:
            return supplied
        logger.info("Supplied approver %s not found; using default approver", approver_id)
    return get_default_approver()


def get_system_user() -> Employee:
    """Return the company/system actor, creating it on first use.

    ``COMPANY_OWNER_ID`` wins when it names an existing employee; otherwise the
    account registered under ``SYSTEM_USER_EMAIL`` is used (and created with
    role ADMIN if absent). The new row is only flushed.
    """
    configured_id = current_app.config.get("COMPANY_OWNER_ID")
    if configured_id:
        owner = db.session.get(Employee, configured_id)
        if owner is not None:
            return owner

    cached_id = current_app.extensions.get(_SYSTEM_CACHE_KEY)
    if cached_id:
        cached = db.session.get(Employee, cached_id)
        if cached is not None:
            return cached

    email = current_app.config.get("SYSTEM_USER_EMAIL", "system@internal-portal.com")
    system_user = Employee.query.filter_by(email=email).first()
    if system_user is None:
        system_user = Employee(
            name="System",
            email=email,
            role="ADMIN",
            department="System",
            status="ACTIVE",
        )
        db.session.add(system_user)
        db.session.flush()
        logger.info("System user created: %s", system_user.id)

    current_app.extensions[_SYSTEM_CACHE_KEY] = system_user.id
    return system_user
