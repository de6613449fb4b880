"""
Approval workflow model.

A workflow is created PENDING by a requester and receives exactly one
decision (APPROVED | REJECTED). ``version`` is an optimistic-lock counter:
two concurrent decisions on the same row cannot both commit.
"""

import uuid
from datetime import datetime, timezone

from portal.models import db

WORKFLOW_TYPES = frozenset({
    # IT
    "IT_EQUIPMENT_REQUEST", "SOFTWARE_LICENSE_REQUEST", "CLOUD_SERVICE_REQUEST",
    # Access
    "ACCESS_REQUEST", "ELEVATED_ACCESS_REQUEST", "SYSTEM_ADMIN_REQUEST",
    # Policy / compliance
    "POLICY_UPDATE_REQUEST", "PROCEDURE_CHANGE_REQUEST", "COMPLIANCE_REVIEW_REQUEST",
    # Finance
    "EXPENSE_APPROVAL_REQUEST", "BUDGET_REQUEST", "VENDOR_PAYMENT_REQUEST",
    # HR
    "HIRING_REQUEST", "ROLE_CHANGE_REQUEST", "TRAINING_REQUEST",
    # Operations
    "VENDOR_CONTRACT_REQUEST", "FACILITY_REQUEST", "TRAVEL_REQUEST",
})

WORKFLOW_STATUSES = frozenset({"PENDING", "APPROVED", "REJECTED", "CANCELLED"})

# Decision action -> resulting workflow status; valid only from PENDING.
DECISION_STATUS = {
    "approve": "APPROVED",
    "reject": "REJECTED",
}


class ApprovalWorkflow(db.Model):
    __tablename__ = "approval_workflows"
    __table_args__ = (
        db.Index("idx_workflow_status", "status"),
        db.Index("idx_workflow_approver", "approver_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = db.Column(db.String(40), nullable=False)
    requester_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    approver_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True,
    )
    status = db.Column(
        db.String(20), nullable=False, default="PENDING",
        comment="PENDING | APPROVED | REJECTED | CANCELLED",
    )
    data = db.Column(db.JSON, default=dict, comment="Type-dependent payload, e.g. accessRequestId")
    policy_id = db.Column(db.String(36), db.ForeignKey("policies.id", ondelete="SET NULL"), nullable=True)
    document_id = db.Column(db.String(36), db.ForeignKey("documents.id", ondelete="SET NULL"), nullable=True)
    resource_id = db.Column(db.String(36), db.ForeignKey("resources.id", ondelete="SET NULL"), nullable=True)
    comments = db.Column(db.Text)
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    requester = db.relationship("Employee", foreign_keys=[requester_id])
    approver = db.relationship("Employee", foreign_keys=[approver_id])
    policy = db.relationship("Policy")
    document = db.relationship("Document")
    resource = db.relationship("Resource")

    @property
    def is_pending(self) -> bool:
        return self.status == "PENDING"

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "requester_id": self.requester_id,
            "approver_id": self.approver_id,
            "status": self.status,
            "data": self.data or {},
            "policy_id": self.policy_id,
            "document_id": self.document_id,
            "resource_id": self.resource_id,
            "comments": self.comments,
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "requester": self.requester.to_summary() if self.requester else None,
            "approver": self.approver.to_summary() if self.approver else None,
            "policy": {"id": self.policy.id, "title": self.policy.title} if self.policy else None,
            "document": {"id": self.document.id, "title": self.document.title} if self.document else None,
            "resource": {"id": self.resource.id, "name": self.resource.name} if self.resource else None,
        }

    def __repr__(self):
        return f"<ApprovalWorkflow {self.id}: {self.type} [{self.status}]>"
