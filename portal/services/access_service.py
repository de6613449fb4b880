"""
Access request intake.

create_access_request() records what an employee asks for (an existing
resource, or free-text hardware) and opens the ACCESS_REQUEST workflow that
the approval orchestrator later decides. The workflow's ``data`` carries
``accessRequestId`` so the decision can find the Access row again.

Approver for the new workflow: the supplied one, else the employee's
manager, else the active CTO.
"""

import logging

from portal.core.exceptions import NotFoundError, ValidationError
from portal.models import db
from portal.models.access import Access
from portal.models.employee import Employee
from portal.models.resource import PERMISSION_LEVELS, Resource
from portal.models.workflow import ApprovalWorkflow
from portal.services.activity_log import log_audit, log_created_activity
from portal.services.approval_service import create_workflow

logger = logging.getLogger(__name__)


def _pick_approver(employee: Employee, approver_id: str | None) -> Employee:
    if approver_id:
        approver = db.session.get(Employee, approver_id)
        if approver is None:
            raise NotFoundError(resource="Approver", resource_id=approver_id)
        return approver
    if employee.manager is not None:
        return employee.manager
    cto = Employee.query.filter_by(role="CTO", status="ACTIVE").order_by(Employee.created_at).first()
    if cto is None:
        raise ValidationError(
            "No approver available: employee has no manager and no active CTO exists",
        )
    return cto


def create_access_request(
    employee_id: str,
    resource_id: str | None = None,
    hardware_request: str | None = None,
    approver_id: str | None = None,
    permission_level: str | None = None,
    justification: str | None = None,
    actor_id: str | None = None,
) -> tuple[Access, ApprovalWorkflow]:
    """Create an Access row (REQUESTED) and its PENDING ACCESS_REQUEST workflow.

    Returns:
        (access, workflow) — both committed.
    """
    hardware_request = (hardware_request or "").strip() or None
    if not resource_id and not hardware_request:
        raise ValidationError(
            "Either resourceId or hardwareRequest is required",
            details={"resourceId": "missing", "hardwareRequest": "missing"},
        )

    permission_level = (permission_level or "READ").upper()
    if permission_level not in PERMISSION_LEVELS:
        raise ValidationError(
            f"permissionLevel must be one of {sorted(PERMISSION_LEVELS)}",
            details={"permissionLevel": permission_level},
        )

    employee = db.session.get(Employee, employee_id) if employee_id else None
    if employee is None:
        raise NotFoundError(resource="Employee", resource_id=employee_id)

    resource = None
    if resource_id:
        resource = db.session.get(Resource, resource_id)
        if resource is None:
            raise NotFoundError(resource="Resource", resource_id=resource_id)

    approver = _pick_approver(employee, approver_id)
    actor = actor_id or employee.id

    access = Access(
        employee_id=employee.id,
        resource_id=resource.id if resource else None,
        hardware_request=hardware_request if not resource else None,
        permission_level=permission_level,
        justification=justification,
        status="REQUESTED",
    )
    db.session.add(access)
    db.session.flush()

    log_audit("ACCESS", access.id, actor, "status", None, "REQUESTED")
    log_created_activity(
        "ACCESS", access.id,
        resource.name if resource else f"Hardware: {hardware_request}",
        actor,
        metadata={"permissionLevel": permission_level, "justification": justification},
        employee_id=employee.id,
        resource_id=access.resource_id,
    )

    workflow = create_workflow(
        "ACCESS_REQUEST",
        employee.id,
        data={
            "accessRequestId": access.id,
            "resourceName": resource.name if resource else None,
            "resourceType": resource.type if resource else "PHYSICAL",
            "permissionLevel": permission_level,
            "justification": justification,
            "hardwareRequest": access.hardware_request,
            "isHardwareRequest": resource is None,
        },
        approver_id=approver.id,
        resource_id=access.resource_id,
        actor_id=actor,
        commit=False,
    )

    db.session.commit()
    logger.info(
        "Access request %s opened for %s (workflow %s, approver %s)",
        access.id, employee.id, workflow.id, approver.id,
    )
    return access, workflow


def access_requests_query(employee_id=None, status=None):
    q = Access.query
    if employee_id:
        q = q.filter(Access.employee_id == employee_id)
    if status:
        q = q.filter(Access.status == status.upper())
    return q.order_by(Access.requested_at.desc())
