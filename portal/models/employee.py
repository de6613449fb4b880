"""
Employee directory model.

Models:
    - Employee: portal user, approver and resource assignee.
"""

import uuid
from datetime import datetime, timezone

from portal.models import db

# ── Constants ────────────────────────────────────────────────────────────────

EMPLOYEE_ROLES = frozenset({
    # Executive
    "CEO", "CTO", "CFO", "COO",
    # Management
    "ENGINEERING_MANAGER", "PRODUCT_MANAGER", "SALES_MANAGER",
    "HR_MANAGER", "MARKETING_MANAGER",
    # Engineering
    "FRONTEND_DEVELOPER", "BACKEND_DEVELOPER", "FULLSTACK_DEVELOPER",
    "MOBILE_DEVELOPER", "DEVOPS_ENGINEER", "QA_ENGINEER", "DATA_SCIENTIST",
    "UI_UX_DESIGNER", "SYSTEM_ADMINISTRATOR", "SECURITY_ENGINEER",
    # Business
    "SALES_REPRESENTATIVE", "BUSINESS_ANALYST", "MARKETING_SPECIALIST",
    "HR_SPECIALIST", "ACCOUNTANT",
    # Entry level
    "INTERN", "JUNIOR_DEVELOPER", "TRAINEE",
    # System
    "ADMIN", "EMPLOYEE",
})

# Roles that may act as fallback approvers and run administrative actions.
PRIVILEGED_ROLES = frozenset({"CEO", "CTO", "ADMIN"})

# Roles allowed to manage assignments of other employees.
ASSIGNMENT_MANAGER_ROLES = frozenset({
    "CEO", "CTO", "ADMIN", "ENGINEERING_MANAGER", "HR_MANAGER",
})

EMPLOYEE_STATUSES = frozenset({"ACTIVE", "INACTIVE", "RESIGNED", "ON_LEAVE"})


def _uuid():
    return str(uuid.uuid4())


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("idx_employee_role_status", "role", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))  # NULL for accounts without a local password
    role = db.Column(db.String(40), nullable=False, default="EMPLOYEE")
    department = db.Column(db.String(100))
    status = db.Column(
        db.String(20), nullable=False, default="ACTIVE",
        comment="ACTIVE | INACTIVE | RESIGNED | ON_LEAVE",
    )
    manager_id = db.Column(
        db.String(36),
        db.ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    manager = db.relationship("Employee", remote_side=[id], backref="subordinates")

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    def to_summary(self):
        """Compact form embedded in other entities' payloads."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
        }

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "department": self.department,
            "status": self.status,
            "manager_id": self.manager_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Employee {self.id}: {self.email} ({self.role})>"
