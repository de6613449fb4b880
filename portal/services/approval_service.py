"""
Approval Workflow Orchestrator.

decide_workflow() turns an approve/reject decision on a PENDING workflow into:
  1. the workflow status change (approver + comments recorded)
  2. the type-specific REQUIRED mutation
       ACCESS_REQUEST         → Access.status APPROVED | REVOKED
       POLICY_UPDATE_REQUEST  → Policy.status APPROVED | REJECTED
  3. OPTIONAL follow-ups (approved access requests only)
       resource_assignment    → ACTIVE assignment of the requested resource
       hardware_resource      → new PHYSICAL resource + assignment + back-fill
  4. audit + timeline entries

Steps 1-2 form one unit of work: if the required mutation fails, nothing is
committed and the workflow stays PENDING. Every optional follow-up and every
log write runs in its own SAVEPOINT; a failure rolls back only that step and
is reported in ``DecisionResult.side_effects``.

The workflow row carries an optimistic-lock ``version``; when two decisions
race, the loser's commit fails and is reported as ConflictError (409).

Usage:
    from portal.services.approval_service import decide_workflow

    result = decide_workflow(workflow_id, "approve", approver_id=None)
    result.workflow.status        # "APPROVED"
    result.side_effects           # [SideEffect(name="resource_assignment", ok=True), ...]
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from portal.core.exceptions import (
    ConflictError,
    DependencyWriteError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from portal.models import db
from portal.models.access import Access
from portal.models.employee import Employee
from portal.models.policy import Document, Policy
from portal.models.resource import Resource
from portal.models.workflow import DECISION_STATUS, WORKFLOW_TYPES, ApprovalWorkflow
from portal.services.activity_log import (
    log_audit,
    log_created_activity,
    log_status_changed_activity,
    log_timeline_activity,
)
from portal.services.approver_resolution import find_ceo, get_system_user, resolve_approver
from portal.services.assignment_service import create_assignment

logger = logging.getLogger(__name__)

DEFAULT_COMMENTS = {
    "approve": "Approved via web interface",
    "reject": "Rejected via web interface",
}


@dataclass
class SideEffect:
    name: str
    ok: bool
    error: str | None = None


@dataclass
class DecisionResult:
    workflow: ApprovalWorkflow
    side_effects: list[SideEffect] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(se.ok for se in self.side_effects)

    def failed(self) -> list[SideEffect]:
        return [se for se in self.side_effects if not se.ok]

    def to_dict(self) -> dict:
        d = self.workflow.to_dict()
        d["side_effects"] = [asdict(se) for se in self.side_effects]
        return d


class _StepFailed(Exception):
    """Aborts an optional step's SAVEPOINT with a business-rule message."""


def _now():
    return datetime.now(timezone.utc)


def _record(side_effects: list[SideEffect], name: str, ok: bool) -> None:
    side_effects.append(SideEffect(name=name, ok=ok, error=None if ok else "log write failed"))


def _run_optional(name: str, side_effects: list[SideEffect], step, *args) -> bool:
    """Run ``step`` inside a SAVEPOINT and record its outcome."""
    try:
        with db.session.begin_nested():
            step(*args)
        side_effects.append(SideEffect(name=name, ok=True))
        return True
    except _StepFailed as exc:
        side_effects.append(SideEffect(name=name, ok=False, error=str(exc)))
        logger.warning("Decision side effect '%s' skipped: %s", name, exc)
        return False
    except Exception as exc:
        side_effects.append(SideEffect(name=name, ok=False, error=str(exc)))
        logger.warning("Decision side effect '%s' failed", name, exc_info=True)
        return False


# ═════════════════════════════════════════════════════════════════════════════
# ACCESS_REQUEST
# ═════════════════════════════════════════════════════════════════════════════

def _assign_requested_resource(access: Access, approver: Employee) -> None:
    result = create_assignment(
        access.resource_id,
        access.employee_id,
        approver.id,
        notes=f"Assigned via approved access request {access.id}",
        commit=False,
    )
    if not result.success:
        raise _StepFailed(result.error)


def _fulfil_hardware_request(access: Access, approver: Employee) -> None:
    description = (access.hardware_request or "").strip()
    if not description:
        raise _StepFailed("Hardware request has no description")
    employee = access.employee
    owner = get_system_user()
    custodian = find_ceo()
    resource = Resource(
        name=description[:200],
        type="PHYSICAL",
        category="Hardware",
        description=f"Hardware requested via access request by {employee.name}",
        owner_id=owner.id,
        custodian_id=custodian.id if custodian else None,
        total_quantity=1,
        permission_level="ADMIN",
        status="ACTIVE",
    )
    db.session.add(resource)
    db.session.flush()

    log_created_activity(
        "RESOURCE", resource.id, resource.name, approver.id,
        metadata={"source": "hardware_request", "accessRequestId": access.id},
        resource_id=resource.id, employee_id=employee.id,
    )

    result = create_assignment(
        resource.id,
        employee.id,
        approver.id,
        notes=f"Assigned via approved hardware request {access.id}",
        commit=False,
    )
    if not result.success:
        raise _StepFailed(result.error)

    access.resource_id = resource.id
    db.session.flush()


def _apply_access_decision(workflow, action, new_status, approver, side_effects):
    access_id = (workflow.data or {}).get("accessRequestId")
    access = db.session.get(Access, access_id)
    if access is None:
        raise DependencyWriteError(
            "Failed to update access request",
            details=f"Access request {access_id} not found",
        )

    old_status = access.status
    try:
        access.approver_id = approver.id
        if action == "approve":
            access.status = "APPROVED"
            access.approved_at = _now()
            access.revoked_at = None
        else:
            access.status = "REVOKED"
            access.revoked_at = _now()
            access.approved_at = None
        db.session.flush()
    except SQLAlchemyError as exc:
        raise DependencyWriteError("Failed to update access request", details=str(exc)) from exc

    if action == "approve" and access.employee is not None:
        if access.resource_id and access.resource is not None:
            _run_optional("resource_assignment", side_effects, _assign_requested_resource, access, approver)
        elif access.hardware_request:
            _run_optional("hardware_resource", side_effects, _fulfil_hardware_request, access, approver)

    log_audit("ACCESS", access.id, approver.id, "status", old_status, access.status)
    resource_label = access.resource.name if access.resource else access.hardware_request
    ok = log_timeline_activity(
        entity_type="ACCESS",
        entity_id=access.id,
        activity_type="APPROVED" if action == "approve" else "REJECTED",
        title=f"Access request {'approved' if action == 'approve' else 'rejected'}",
        description=f"Access to {resource_label} was {new_status.lower()} by {approver.name}",
        metadata={
            "workflowId": workflow.id,
            "permissionLevel": access.permission_level,
            "hardwareRequest": access.hardware_request,
            "oldStatus": old_status,
            "newStatus": access.status,
        },
        performed_by=approver.id,
        workflow_id=workflow.id,
        employee_id=access.employee_id,
        resource_id=access.resource_id,
    )
    _record(side_effects, "access_timeline", ok)


# ═════════════════════════════════════════════════════════════════════════════
# POLICY_UPDATE_REQUEST
# ═════════════════════════════════════════════════════════════════════════════

def _apply_policy_decision(workflow, new_status, approver, side_effects):
    policy = db.session.get(Policy, workflow.policy_id)
    if policy is None:
        raise DependencyWriteError(
            "Failed to update policy status",
            details=f"Policy {workflow.policy_id} not found",
        )

    old_status = policy.status
    try:
        policy.status = new_status
        policy.last_review_date = _now()
        db.session.flush()
    except SQLAlchemyError as exc:
        raise DependencyWriteError("Failed to update policy status", details=str(exc)) from exc

    log_audit("POLICY", policy.id, approver.id, "status", old_status, new_status)
    ok = log_status_changed_activity(
        "POLICY", policy.id, policy.title, old_status, new_status, approver.id,
        policy_id=policy.id, workflow_id=workflow.id,
    )
    _record(side_effects, "policy_timeline", ok)


# ═════════════════════════════════════════════════════════════════════════════
# DECISION
# ═════════════════════════════════════════════════════════════════════════════

def decide_workflow(
    workflow_id: str,
    action: str,
    approver_id: str | None = None,
    comments: str | None = None,
) -> DecisionResult:
    """Approve or reject a PENDING workflow.

    Raises:
        ValidationError: action is not approve/reject.
        ConfigurationError: no CEO on record (before any write).
        NotFoundError: workflow absent.
        InvalidStateError: workflow is not PENDING.
        DependencyWriteError: the required Access/Policy update failed
            (nothing committed).
        ConflictError: a concurrent decision committed first.
    """
    action = (action or "").strip().lower()
    if action not in DECISION_STATUS:
        raise ValidationError(
            'Invalid action. Must be "approve" or "reject"',
            details={"action": action or None},
        )

    approver = resolve_approver(approver_id)

    workflow = db.session.get(ApprovalWorkflow, workflow_id) if workflow_id else None
    if workflow is None:
        raise NotFoundError(resource="Workflow", resource_id=workflow_id)
    if not workflow.is_pending:
        raise InvalidStateError("Workflow is not pending", details={"status": workflow.status})

    old_status = workflow.status
    new_status = DECISION_STATUS[action]
    side_effects: list[SideEffect] = []

    try:
        workflow.status = new_status
        workflow.approver_id = approver.id
        workflow.comments = comments or DEFAULT_COMMENTS[action]
        db.session.flush()

        if workflow.type == "ACCESS_REQUEST" and (workflow.data or {}).get("accessRequestId"):
            _apply_access_decision(workflow, action, new_status, approver, side_effects)
        elif workflow.type == "POLICY_UPDATE_REQUEST" and workflow.policy_id:
            _apply_policy_decision(workflow, new_status, approver, side_effects)

        _record(side_effects, "audit", log_audit(
            "APPROVAL_WORKFLOW", workflow.id, approver.id, "status", old_status, new_status,
        ))
        _record(side_effects, "status_timeline", log_status_changed_activity(
            "APPROVAL_WORKFLOW", workflow.id, f"{workflow.type} workflow",
            old_status, new_status, approver.id, workflow_id=workflow.id,
        ))
        _record(side_effects, "completion_timeline", log_timeline_activity(
            entity_type="APPROVAL_WORKFLOW",
            entity_id=workflow.id,
            activity_type="WORKFLOW_COMPLETED",
            title=f"Workflow {new_status.lower()}",
            description=f"{workflow.type} workflow was {new_status.lower()} by {approver.name}",
            metadata={"action": action, "comments": workflow.comments,
                      "sideEffects": [asdict(se) for se in side_effects]},
            performed_by=approver.id,
            workflow_id=workflow.id,
        ))

        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        logger.warning("Concurrent decision on workflow %s rejected", workflow_id)
        raise ConflictError(
            "ApprovalWorkflow", "version", workflow_id,
            message="Workflow was decided by a concurrent request",
        ) from exc
    except DependencyWriteError:
        db.session.rollback()
        logger.error("Decision on workflow %s rolled back: required update failed", workflow_id)
        raise

    result = DecisionResult(workflow=workflow, side_effects=side_effects)
    logger.info(
        "Workflow %s %s → %s by %s (%d side effect(s) failed)",
        workflow.id, old_status, new_status, approver.id, len(result.failed()),
        extra={"event_type": "workflow.decided"},
    )
    return result


# ═════════════════════════════════════════════════════════════════════════════
# INTAKE & LISTING
# ═════════════════════════════════════════════════════════════════════════════

def create_workflow(
    workflow_type: str,
    requester_id: str,
    data: dict | None = None,
    approver_id: str | None = None,
    policy_id: str | None = None,
    document_id: str | None = None,
    resource_id: str | None = None,
    comments: str | None = None,
    actor_id: str | None = None,
    commit: bool = True,
) -> ApprovalWorkflow:
    """Open a PENDING workflow. Referenced records must exist."""
    if workflow_type not in WORKFLOW_TYPES:
        raise ValidationError(
            f"type must be one of {sorted(WORKFLOW_TYPES)}", details={"type": workflow_type},
        )
    if not requester_id:
        raise ValidationError("requesterId is required", details={"requesterId": "missing"})
    for model, pk, label in (
        (Employee, requester_id, "Requester"),
        (Employee, approver_id, "Approver"),
        (Policy, policy_id, "Policy"),
        (Document, document_id, "Document"),
        (Resource, resource_id, "Resource"),
    ):
        if pk and db.session.get(model, pk) is None:
            raise NotFoundError(resource=label, resource_id=pk)

    workflow = ApprovalWorkflow(
        type=workflow_type,
        requester_id=requester_id,
        approver_id=approver_id,
        status="PENDING",
        data=data or {},
        policy_id=policy_id,
        document_id=document_id,
        resource_id=resource_id,
        comments=comments,
    )
    db.session.add(workflow)
    db.session.flush()

    actor = actor_id or requester_id
    log_audit("APPROVAL_WORKFLOW", workflow.id, actor, "created", None, workflow_type)
    log_timeline_activity(
        entity_type="APPROVAL_WORKFLOW",
        entity_id=workflow.id,
        activity_type="WORKFLOW_STARTED",
        title=f"{workflow_type} workflow started",
        description=f"Approval workflow of type {workflow_type} was submitted",
        metadata={"type": workflow_type, "approverId": approver_id, "data": data or {}},
        performed_by=actor,
        workflow_id=workflow.id,
        policy_id=policy_id,
        document_id=document_id,
        resource_id=resource_id,
        employee_id=requester_id,
    )

    if commit:
        db.session.commit()
    logger.info("Workflow created: %s (%s)", workflow.id, workflow_type)
    return workflow


def get_workflow(workflow_id: str) -> ApprovalWorkflow:
    workflow = db.session.get(ApprovalWorkflow, workflow_id) if workflow_id else None
    if workflow is None:
        raise NotFoundError(resource="Workflow", resource_id=workflow_id)
    return workflow


def workflows_query(status=None, workflow_type=None, requester_id=None, approver_id=None):
    """Filtered, newest-first workflow query (pagination applied by caller)."""
    q = ApprovalWorkflow.query
    if status:
        q = q.filter(ApprovalWorkflow.status == status)
    if workflow_type:
        q = q.filter(ApprovalWorkflow.type == workflow_type)
    if requester_id:
        q = q.filter(ApprovalWorkflow.requester_id == requester_id)
    if approver_id:
        q = q.filter(ApprovalWorkflow.approver_id == approver_id)
    return q.order_by(ApprovalWorkflow.created_at.desc())


def workflow_stats(employee_id: str) -> dict:
    """Counts of workflows an employee requested and is asked to decide."""
    requested = workflows_query(requester_id=employee_id)
    return {
        "requested": {
            status: requested.filter(ApprovalWorkflow.status == status).count()
            for status in ("PENDING", "APPROVED", "REJECTED")
        },
        "pendingApprovals": workflows_query(status="PENDING", approver_id=employee_id).count(),
    }
