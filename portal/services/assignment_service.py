"""
Resource Assignment Service.

Creates, transitions, revokes and deletes ResourceAssignment rows while
keeping the serialized item (if any) consistent with its assignment:
an item is ASSIGNED exactly while an ACTIVE assignment points at it.

Status machine (see ``ASSIGNMENT_TRANSITIONS``):
    ACTIVE → RETURNED | LOST | DAMAGED | REVOKED     (all terminal)

Business-rule violations never raise: every mutating function returns an
``AssignmentResult`` with ``success=False`` and a message (``status`` carries
the HTTP status the blueprint should use). Only infrastructure errors raise.

Each mutating function commits by default. Pass ``commit=False`` to join the
caller's unit of work (approval decisions, onboarding).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func

from portal.core.exceptions import NotFoundError
from portal.models import db
from portal.models.employee import Employee
from portal.models.resource import (
    ASSIGNMENT_STATUSES,
    ASSIGNMENT_TRANSITIONS,
    ITEM_STATUS_AFTER,
    Resource,
    ResourceAssignment,
    ResourceItem,
)
from portal.services.activity_log import (
    log_audit,
    log_status_changed_activity,
    log_timeline_activity,
)

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    success: bool
    assignment: ResourceAssignment | None = None
    error: str | None = None
    status: int = 200

    @classmethod
    def fail(cls, error: str, status: int = 400) -> "AssignmentResult":
        return cls(success=False, error=error, status=status)


def _now():
    return datetime.now(timezone.utc)


def _append_note(existing: str | None, note: str | None) -> str | None:
    if not note:
        return existing
    return f"{existing}\n{note}" if existing else note


def validate_assignment_transition(assignment: ResourceAssignment, new_status: str) -> dict:
    """Validate whether ``new_status`` is reachable from the assignment's status."""
    if new_status not in ASSIGNMENT_STATUSES:
        return {"valid": False, "from": assignment.status, "to": new_status,
                "reason": f"Invalid status: {new_status}"}

    allowed = ASSIGNMENT_TRANSITIONS.get(assignment.status, [])
    if new_status not in allowed:
        return {"valid": False, "from": assignment.status, "to": new_status,
                "reason": f"Cannot change assignment status from {assignment.status} to {new_status}"}

    return {"valid": True, "from": assignment.status, "to": new_status, "reason": None}


# ── Create ───────────────────────────────────────────────────────────────────

def create_assignment(
    resource_id: str,
    employee_id: str,
    assigned_by: str | None,
    item_id: str | None = None,
    quantity: int = 1,
    notes: str | None = None,
    commit: bool = True,
) -> AssignmentResult:
    """Assign a resource (or one of its serialized items) to an employee.

    Rules:
      - resource exists and is ACTIVE; employee exists.
      - item, when given, belongs to the resource and is AVAILABLE.
      - PHYSICAL: one assignee per unit. Active quantity across every
        assignment of the resource, item-bound or not, may not exceed
        ``total_quantity``.
      - without item: no second ACTIVE assignment of the same resource to
        the same employee.
    """
    resource = db.session.get(Resource, resource_id) if resource_id else None
    if resource is None:
        return AssignmentResult.fail("Resource not found", 404)
    if resource.status != "ACTIVE":
        return AssignmentResult.fail(f"Resource is not active (status={resource.status})")

    employee = db.session.get(Employee, employee_id) if employee_id else None
    if employee is None:
        return AssignmentResult.fail("Employee not found", 404)

    try:
        quantity = int(1 if quantity is None else quantity)
    except (TypeError, ValueError):
        return AssignmentResult.fail("quantity must be a positive integer")
    if quantity < 1:
        return AssignmentResult.fail("quantity must be a positive integer")

    item = None
    if item_id:
        item = db.session.get(ResourceItem, item_id)
        if item is None or item.resource_id != resource.id:
            return AssignmentResult.fail("Item not found for this resource", 404)
        if item.status != "AVAILABLE":
            return AssignmentResult.fail(f"Item is not available (status={item.status})", 409)
        quantity = 1
    else:
        duplicate = ResourceAssignment.query.filter_by(
            resource_id=resource.id, employee_id=employee.id, status="ACTIVE", item_id=None,
        ).first()
        if duplicate:
            return AssignmentResult.fail(
                f"{employee.name} already has an active assignment for {resource.name}", 409,
            )

    if resource.is_physical:
        in_use = (
            db.session.query(func.coalesce(func.sum(ResourceAssignment.quantity_assigned), 0))
            .filter(
                ResourceAssignment.resource_id == resource.id,
                ResourceAssignment.status == "ACTIVE",
            )
            .scalar()
        )
        if in_use + quantity > (resource.total_quantity or 1):
            return AssignmentResult.fail(
                f"{resource.name} is already assigned ({in_use}/{resource.total_quantity} in use)", 409,
            )

    assignment = ResourceAssignment(
        resource_id=resource.id,
        employee_id=employee.id,
        item_id=item.id if item else None,
        quantity_assigned=quantity,
        assigned_by=assigned_by,
        status="ACTIVE",
        notes=notes,
    )
    db.session.add(assignment)
    if item is not None:
        item.status = "ASSIGNED"
    db.session.flush()

    log_timeline_activity(
        entity_type="RESOURCE",
        entity_id=resource.id,
        activity_type="ASSIGNED",
        title=f"Resource assigned to {employee.name}",
        description=f"{resource.name} ({resource.type}) was assigned to {employee.name}",
        metadata={
            "resourceName": resource.name,
            "resourceType": resource.type,
            "employeeName": employee.name,
            "quantity": quantity,
            "serialNumber": item.serial_number if item else None,
        },
        performed_by=assigned_by,
        resource_id=resource.id,
        employee_id=employee.id,
        assignment_id=assignment.id,
    )

    if commit:
        db.session.commit()
    logger.info(
        "Assignment created: %s (%s -> %s)", assignment.id, resource.id, employee.id,
        extra={"event_type": "assignment.created"},
    )
    return AssignmentResult(success=True, assignment=assignment, status=201)


# ── Status transitions ───────────────────────────────────────────────────────

def update_assignment_status(
    assignment_id: str,
    status: str,
    actor_id: str | None,
    notes: str | None = None,
    returned_at: datetime | None = None,
    commit: bool = True,
) -> AssignmentResult:
    """Move an ACTIVE assignment to a terminal status.

    Stamps ``returned_at``, appends ``notes``, and moves the serialized item
    (if any) to the matching status: RETURNED/REVOKED → AVAILABLE,
    LOST → LOST, DAMAGED → DAMAGED.
    """
    assignment = db.session.get(ResourceAssignment, assignment_id) if assignment_id else None
    if assignment is None:
        return AssignmentResult.fail("Assignment not found", 404)

    check = validate_assignment_transition(assignment, status)
    if not check["valid"]:
        return AssignmentResult.fail(check["reason"])

    old_status = assignment.status
    assignment.status = status
    assignment.returned_at = returned_at or _now()
    assignment.notes = _append_note(assignment.notes, notes)
    if assignment.item is not None:
        assignment.item.status = ITEM_STATUS_AFTER[status]
    db.session.flush()

    resource_name = assignment.resource.name if assignment.resource else assignment.resource_id
    employee_name = assignment.employee.name if assignment.employee else assignment.employee_id
    log_audit("RESOURCE", assignment.resource_id, actor_id, "assignmentStatus", old_status, status)
    log_status_changed_activity(
        "RESOURCE",
        assignment.resource_id,
        f"{resource_name} assigned to {employee_name}",
        old_status,
        status,
        actor_id,
        resource_id=assignment.resource_id,
        employee_id=assignment.employee_id,
        assignment_id=assignment.id,
    )

    if commit:
        db.session.commit()
    logger.info("Assignment %s: %s → %s", assignment.id, old_status, status)
    return AssignmentResult(success=True, assignment=assignment)


def revoke_assignment(
    assignment_id: str,
    actor_id: str | None,
    reason: str | None = None,
    commit: bool = True,
) -> AssignmentResult:
    """Revoke an ACTIVE assignment. Any other status fails without writing."""
    assignment = db.session.get(ResourceAssignment, assignment_id) if assignment_id else None
    if assignment is None:
        return AssignmentResult.fail("Assignment not found", 404)
    if not assignment.is_active:
        return AssignmentResult.fail(
            f"Only active assignments can be revoked (status={assignment.status})",
        )

    note = f"Revoked: {reason}" if reason else "Assignment revoked by administrator"
    return update_assignment_status(assignment.id, "REVOKED", actor_id, notes=note, commit=commit)


def return_assignment(
    assignment_id: str,
    actor_id: str | None,
    return_reason: str | None,
    item_condition: str | None = None,
    notes: str | None = None,
) -> AssignmentResult:
    """Employee-initiated return. ``item_condition`` LOST/DAMAGED sets that status."""
    if not (return_reason or "").strip():
        return AssignmentResult.fail("Return reason is required")

    assignment = db.session.get(ResourceAssignment, assignment_id) if assignment_id else None
    if assignment is None:
        return AssignmentResult.fail("Assignment not found", 404)
    if not assignment.is_active:
        return AssignmentResult.fail("Only active assignments can be returned")

    condition = (item_condition or "").upper()
    new_status = condition if condition in ("LOST", "DAMAGED") else "RETURNED"
    note = f"Returned: {return_reason.strip()}"
    if condition:
        note += f" (condition: {condition})"
    if notes:
        note += f" - {notes}"

    result = update_assignment_status(assignment.id, new_status, actor_id, notes=note, commit=False)
    if not result.success:
        return result

    resource_name = assignment.resource.name if assignment.resource else assignment.resource_id
    log_timeline_activity(
        entity_type="EMPLOYEE",
        entity_id=assignment.employee_id,
        activity_type="UNASSIGNED",
        title=f"Resource returned: {resource_name}",
        description=f"{resource_name} was returned. Reason: {return_reason.strip()}",
        metadata={"returnReason": return_reason, "itemCondition": condition or None, "newStatus": new_status},
        performed_by=actor_id,
        resource_id=assignment.resource_id,
        employee_id=assignment.employee_id,
        assignment_id=assignment.id,
    )
    db.session.commit()
    return result


# ── Delete ───────────────────────────────────────────────────────────────────

def delete_assignment(assignment_id: str, actor_id: str | None) -> AssignmentResult:
    """Hard-delete an assignment; its item (if any) goes back to AVAILABLE.

    Records a resource-side and an employee-side timeline entry. No audit row.
    """
    assignment = db.session.get(ResourceAssignment, assignment_id) if assignment_id else None
    if assignment is None:
        return AssignmentResult.fail("Assignment not found", 404)

    snapshot = {
        "assignmentId": assignment.id,
        "status": assignment.status,
        "resourceName": assignment.resource.name if assignment.resource else None,
        "employeeName": assignment.employee.name if assignment.employee else None,
        "itemId": assignment.item_id,
    }
    resource_id = assignment.resource_id
    employee_id = assignment.employee_id

    if assignment.item is not None:
        assignment.item.status = "AVAILABLE"
    db.session.delete(assignment)
    db.session.flush()

    log_timeline_activity(
        entity_type="RESOURCE",
        entity_id=resource_id,
        activity_type="DELETED",
        title="Assignment deleted",
        description=f"Assignment of {snapshot['resourceName']} to {snapshot['employeeName']} was deleted",
        metadata=snapshot,
        performed_by=actor_id,
        resource_id=resource_id,
        employee_id=employee_id,
    )
    log_timeline_activity(
        entity_type="EMPLOYEE",
        entity_id=employee_id,
        activity_type="UNASSIGNED",
        title="Assignment removed",
        description=f"{snapshot['resourceName']} assignment was removed",
        metadata=snapshot,
        performed_by=actor_id,
        resource_id=resource_id,
        employee_id=employee_id,
    )

    db.session.commit()
    logger.info("Assignment deleted: %s", assignment_id)
    return AssignmentResult(success=True)


# ── Reads ────────────────────────────────────────────────────────────────────

def get_assignment(assignment_id: str) -> ResourceAssignment:
    assignment = db.session.get(ResourceAssignment, assignment_id) if assignment_id else None
    if assignment is None:
        raise NotFoundError(resource="Assignment", resource_id=assignment_id)
    return assignment


def assignments_query(resource_id=None, employee_id=None, status=None):
    """Filtered, newest-first assignment query (pagination applied by caller)."""
    q = ResourceAssignment.query
    if resource_id:
        q = q.filter(ResourceAssignment.resource_id == resource_id)
    if employee_id:
        q = q.filter(ResourceAssignment.employee_id == employee_id)
    if status:
        q = q.filter(ResourceAssignment.status == status)
    return q.order_by(ResourceAssignment.assigned_at.desc())
