"""
Employee directory service.

Business logic for employee creation and ownership reassignment. The
reassignment moves everything one employee owns (policies, documents,
resources) and everyone they manage to another employee in a single
transaction: either all repoints commit or none do.
"""

import logging

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from portal.core.exceptions import (
    ConflictError,
    DependencyWriteError,
    NotFoundError,
    ValidationError,
)
from portal.models import db
from portal.models.employee import EMPLOYEE_ROLES, EMPLOYEE_STATUSES, Employee
from portal.models.policy import Document, Policy
from portal.models.resource import Resource
from portal.services.activity_log import log_audit, log_created_activity, log_timeline_activity
from portal.utils.crypto import hash_password

logger = logging.getLogger(__name__)


def create_employee(data: dict, actor_id: str | None = None) -> Employee:
    """Create an employee from API-shaped data (camelCase keys accepted)."""
    name = (data.get("name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    role = (data.get("role") or "EMPLOYEE").upper()
    status = (data.get("status") or "ACTIVE").upper()
    manager_id = data.get("managerId") or data.get("manager_id")

    errors = {}
    if not name:
        errors["name"] = "required"
    if not email:
        errors["email"] = "required"
    if role not in EMPLOYEE_ROLES:
        errors["role"] = f"must be one of {sorted(EMPLOYEE_ROLES)}"
    if status not in EMPLOYEE_STATUSES:
        errors["status"] = f"must be one of {sorted(EMPLOYEE_STATUSES)}"
    if errors:
        raise ValidationError("Invalid employee data", details=errors)

    if Employee.query.filter_by(email=email).first():
        raise ConflictError("Employee", "email", email)
    if manager_id and db.session.get(Employee, manager_id) is None:
        raise NotFoundError(resource="Manager", resource_id=manager_id)

    password = data.get("password")
    employee = Employee(
        name=name,
        email=email,
        role=role,
        status=status,
        department=data.get("department"),
        manager_id=manager_id,
        password_hash=hash_password(password) if password else None,
    )
    db.session.add(employee)
    db.session.flush()

    log_audit("EMPLOYEE", employee.id, actor_id, "created", None, employee.email)
    log_created_activity("EMPLOYEE", employee.id, employee.name, actor_id, employee_id=employee.id)

    db.session.commit()
    logger.info("Employee created: %s (%s)", employee.id, employee.role)
    return employee


def get_employee(employee_id: str) -> Employee:
    employee = db.session.get(Employee, employee_id) if employee_id else None
    if employee is None:
        raise NotFoundError(resource="Employee", resource_id=employee_id)
    return employee


def reassign_ownership(from_id: str, to_id: str, actor_id: str | None) -> dict:
    """Move every ownership and manager link from one employee to another.

    Returns:
        {"policies": n, "documents": n, "resources": n, "subordinates": n}

    Raises:
        ValidationError: ids missing or identical.
        NotFoundError: either employee absent.
        DependencyWriteError: the transaction failed (nothing committed).
    """
    if not from_id or not to_id:
        raise ValidationError(
            "Both fromEmployeeId and toEmployeeId are required",
            details={"fromEmployeeId": from_id, "toEmployeeId": to_id},
        )
    if from_id == to_id:
        raise ValidationError("Cannot reassign to the same employee")

    source = db.session.get(Employee, from_id)
    if source is None:
        raise NotFoundError(resource="Source employee", resource_id=from_id)
    target = db.session.get(Employee, to_id)
    if target is None:
        raise NotFoundError(resource="Target employee", resource_id=to_id)

    try:
        counts = {}
        for key, model in (("policies", Policy), ("documents", Document), ("resources", Resource)):
            res = db.session.execute(
                update(model).where(model.owner_id == from_id).values(owner_id=to_id)
            )
            counts[key] = res.rowcount

        # The target must not end up managing itself.
        if target.manager_id == from_id:
            target.manager_id = source.manager_id
        res = db.session.execute(
            update(Employee)
            .where(Employee.manager_id == from_id, Employee.id != to_id)
            .values(manager_id=to_id)
        )
        counts["subordinates"] = res.rowcount
        db.session.flush()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Ownership reassignment %s → %s failed", from_id, to_id)
        raise DependencyWriteError("Failed to reassign ownership", details=str(exc)) from exc

    log_audit("EMPLOYEE", source.id, actor_id, "ownership_reassigned", source.id, target.id)
    log_timeline_activity(
        entity_type="EMPLOYEE",
        entity_id=source.id,
        activity_type="UPDATED",
        title=f"Ownership reassigned to {target.name}",
        description=(
            f"{counts['policies']} policies, {counts['documents']} documents, "
            f"{counts['resources']} resources and {counts['subordinates']} direct reports "
            f"moved from {source.name} to {target.name}"
        ),
        metadata={"toEmployeeId": target.id, **counts},
        performed_by=actor_id,
        employee_id=source.id,
    )

    db.session.commit()
    db.session.expire_all()
    logger.info("Ownership reassigned %s → %s: %s", from_id, to_id, counts)
    return counts
