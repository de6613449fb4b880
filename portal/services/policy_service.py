"""
Policy & document service.

Maintains the owned artefacts approval workflows act on. Policies never
start in a status only a decision may set (APPROVED / REJECTED / PUBLISHED).
A policy created in REVIEW opens a POLICY_UPDATE_REQUEST for the default
approver; if that fails the policy is still created and the failure is
logged.
"""

import logging

from portal.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from portal.models import db
from portal.models.employee import Employee
from portal.models.policy import DOCUMENT_STATUSES, POLICY_STATUSES, Document, Policy
from portal.services.activity_log import log_audit, log_created_activity, log_timeline_activity
from portal.services.approval_service import create_workflow
from portal.services.approver_resolution import resolve_approver

logger = logging.getLogger(__name__)

PROTECTED_POLICY_STATUSES = frozenset({"APPROVED", "REJECTED", "PUBLISHED"})
INITIAL_POLICY_STATUSES = ("DRAFT", "IN_PROGRESS", "REVIEW")

# Everyone else only sees the policies they own.
POLICY_VIEW_ALL_ROLES = frozenset({"CEO", "CTO"})


def _validated(data: dict, statuses, label: str) -> tuple[str, str]:
    title = (data.get("title") or "").strip()
    status = (data.get("status") or "DRAFT").upper()

    errors = {}
    if not title:
        errors["title"] = "required"
    if status not in statuses:
        errors["status"] = f"must be one of {sorted(statuses)}"
    if errors:
        raise ValidationError(f"Invalid {label} data", details=errors)
    return title, status


def _owner_id(data: dict, actor_id: str | None) -> str | None:
    owner_id = data.get("ownerId") or actor_id
    if owner_id and db.session.get(Employee, owner_id) is None:
        raise NotFoundError(resource="Owner", resource_id=owner_id)
    return owner_id


def _apply_filters(q, model, search=None, category=None, status=None):
    if search and search.strip():
        q = q.filter(model.title.ilike(f"%{search.strip()}%"))
    if category:
        q = q.filter(model.category == category)
    if status:
        q = q.filter(model.status == status.upper())
    return q.order_by(model.created_at.desc(), model.title)


# ═════════════════════════════════════════════════════════════════════════════
# POLICIES
# ═════════════════════════════════════════════════════════════════════════════

def create_policy(data: dict, actor_id: str | None = None) -> tuple[Policy, str | None]:
    """Create a policy; returns ``(policy, review_workflow_id)``.

    ``review_workflow_id`` is None unless the policy starts in REVIEW and the
    workflow could be opened.
    """
    status = (data.get("status") or "DRAFT").upper()
    if status in PROTECTED_POLICY_STATUSES:
        raise ValidationError(
            f"Cannot create policy with status {status}. "
            "Policies must start as DRAFT, IN_PROGRESS, or REVIEW.",
            details={"allowedStatuses": list(INITIAL_POLICY_STATUSES)},
        )
    title, status = _validated(data, POLICY_STATUSES, "policy")
    owner_id = _owner_id(data, actor_id)

    policy = Policy(title=title, category=data.get("category"), owner_id=owner_id, status=status)
    db.session.add(policy)
    db.session.flush()

    log_audit("POLICY", policy.id, owner_id, "created", None, policy.title)
    log_created_activity(
        "POLICY", policy.id, policy.title, actor_id,
        metadata={"category": policy.category, "status": policy.status},
        policy_id=policy.id,
    )
    db.session.commit()
    logger.info("Policy created: %s (%s)", policy.id, policy.status)

    workflow_id = None
    if policy.status == "REVIEW":
        workflow_id = _open_review_workflow(policy, owner_id)
    return policy, workflow_id


def _open_review_workflow(policy: Policy, requester_id: str | None) -> str | None:
    try:
        with db.session.begin_nested():
            approver = resolve_approver()
            workflow = create_workflow(
                "POLICY_UPDATE_REQUEST",
                requester_id,
                data={
                    "policyId": policy.id,
                    "businessJustification": "Policy ready for review and publication",
                    "requestType": "policy_publish",
                },
                approver_id=approver.id,
                policy_id=policy.id,
                commit=False,
            )
            log_timeline_activity(
                entity_type="POLICY",
                entity_id=policy.id,
                activity_type="WORKFLOW_STARTED",
                title="Policy review workflow created",
                description=(
                    f'Approval workflow automatically created for new policy "{policy.title}" '
                    "with REVIEW status"
                ),
                metadata={
                    "workflowId": workflow.id,
                    "workflowType": "POLICY_UPDATE_REQUEST",
                    "autoCreated": True,
                },
                performed_by=requester_id,
                policy_id=policy.id,
                workflow_id=workflow.id,
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.warning("Could not open review workflow for policy %s", policy.id, exc_info=True)
        return None
    return workflow.id


def _can_view_all(viewer: Employee) -> bool:
    return viewer.role in POLICY_VIEW_ALL_ROLES


def policies_query(viewer: Employee, search=None, category=None, status=None):
    q = Policy.query
    if not _can_view_all(viewer):
        q = q.filter(Policy.owner_id == viewer.id)
    return _apply_filters(q, Policy, search, category, status)


def get_policy(policy_id: str, viewer: Employee) -> Policy:
    policy = db.session.get(Policy, policy_id) if policy_id else None
    if policy is None:
        raise NotFoundError(resource="Policy", resource_id=policy_id)
    if policy.owner_id != viewer.id and not _can_view_all(viewer):
        raise AuthorizationError("You can only view your own policies", 403)
    return policy


# ═════════════════════════════════════════════════════════════════════════════
# DOCUMENTS
# ═════════════════════════════════════════════════════════════════════════════

def create_document(data: dict, actor_id: str | None = None) -> Document:
    title, status = _validated(data, DOCUMENT_STATUSES, "document")
    owner_id = _owner_id(data, actor_id)

    document = Document(title=title, category=data.get("category"), owner_id=owner_id, status=status)
    db.session.add(document)
    db.session.flush()

    log_audit("DOCUMENT", document.id, owner_id, "created", None, document.title)
    log_created_activity(
        "DOCUMENT", document.id, document.title, actor_id,
        metadata={"category": document.category, "status": document.status},
        document_id=document.id,
    )
    db.session.commit()
    logger.info("Document created: %s", document.id)
    return document


def documents_query(search=None, category=None, status=None):
    return _apply_filters(Document.query, Document, search, category, status)


def get_document(document_id: str) -> Document:
    document = db.session.get(Document, document_id) if document_id else None
    if document is None:
        raise NotFoundError(resource="Document", resource_id=document_id)
    return document
