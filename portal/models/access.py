"""
Access request model.

An Access row records one employee's request for a resource (or, for
hardware, a free-text description of what they need) and its outcome.
"""

import uuid
from datetime import datetime, timezone

from portal.models import db

ACCESS_STATUSES = frozenset({"REQUESTED", "APPROVED", "GRANTED", "REVOKED"})


class Access(db.Model):
    __tablename__ = "access_requests"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    resource_id = db.Column(
        db.String(36), db.ForeignKey("resources.id", ondelete="SET NULL"), nullable=True,
        comment="NULL until a hardware request is fulfilled",
    )
    hardware_request = db.Column(db.Text, comment="Free-text hardware description")
    permission_level = db.Column(db.String(10), nullable=False, default="READ")
    justification = db.Column(db.Text)
    status = db.Column(
        db.String(20), nullable=False, default="REQUESTED",
        comment="REQUESTED | APPROVED | GRANTED | REVOKED",
    )
    approver_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True,
    )
    requested_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    approved_at = db.Column(db.DateTime)
    revoked_at = db.Column(db.DateTime)

    employee = db.relationship("Employee", foreign_keys=[employee_id])
    approver = db.relationship("Employee", foreign_keys=[approver_id])
    resource = db.relationship("Resource")

    def to_dict(self):
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "resource_id": self.resource_id,
            "hardware_request": self.hardware_request,
            "permission_level": self.permission_level,
            "justification": self.justification,
            "status": self.status,
            "approver_id": self.approver_id,
            "requested_at": self.requested_at.isoformat() if self.requested_at else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
            "resource": {"id": self.resource.id, "name": self.resource.name} if self.resource else None,
        }
