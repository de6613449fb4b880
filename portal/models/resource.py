"""
Resource inventory models.

Models:
    - Resource: a physical, software or cloud asset owned by the company.
    - ResourceItem: a serialized unit of a PHYSICAL resource.
    - ResourceAssignment: links a resource (and optionally an item) to an employee.
"""

import uuid
from datetime import datetime, timezone

from portal.models import db

# ── Constants ────────────────────────────────────────────────────────────────

RESOURCE_TYPES = frozenset({"PHYSICAL", "SOFTWARE", "CLOUD"})
RESOURCE_STATUSES = frozenset({"ACTIVE", "INACTIVE", "RETIRED"})
PERMISSION_LEVELS = frozenset({"READ", "WRITE", "EDIT", "ADMIN"})

ITEM_STATUSES = frozenset({"AVAILABLE", "ASSIGNED", "MAINTENANCE", "LOST", "DAMAGED"})

ASSIGNMENT_STATUSES = frozenset({"ACTIVE", "RETURNED", "LOST", "DAMAGED", "REVOKED"})

# Assignment status machine: ACTIVE is the only mutable state.
ASSIGNMENT_TRANSITIONS = {
    "ACTIVE": ["RETURNED", "LOST", "DAMAGED", "REVOKED"],
    "RETURNED": [],
    "LOST": [],
    "DAMAGED": [],
    "REVOKED": [],
}

# Item status an assignment's terminal status leaves behind.
ITEM_STATUS_AFTER = {
    "RETURNED": "AVAILABLE",
    "REVOKED": "AVAILABLE",
    "LOST": "LOST",
    "DAMAGED": "DAMAGED",
}


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


class Resource(db.Model):
    __tablename__ = "resources"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, comment="PHYSICAL | SOFTWARE | CLOUD")
    category = db.Column(db.String(100))
    description = db.Column(db.Text)
    owner_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    custodian_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True,
        comment="Employee administratively responsible for the resource",
    )
    total_quantity = db.Column(db.Integer, nullable=False, default=1)
    permission_level = db.Column(db.String(10), nullable=False, default="READ")
    status = db.Column(db.String(20), nullable=False, default="ACTIVE")
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    owner = db.relationship("Employee", foreign_keys=[owner_id])
    custodian = db.relationship("Employee", foreign_keys=[custodian_id])
    items = db.relationship("ResourceItem", back_populates="resource", cascade="all, delete-orphan")

    @property
    def is_physical(self) -> bool:
        return self.type == "PHYSICAL"

    def to_dict(self, include_items=False):
        d = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "owner_id": self.owner_id,
            "custodian_id": self.custodian_id,
            "total_quantity": self.total_quantity,
            "permission_level": self.permission_level,
            "status": self.status,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_items:
            d["items"] = [i.to_dict() for i in self.items]
        return d

    def __repr__(self):
        return f"<Resource {self.id}: {self.name} ({self.type})>"


class ResourceItem(db.Model):
    __tablename__ = "resource_items"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    resource_id = db.Column(
        db.String(36), db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    serial_number = db.Column(db.String(100))
    hostname = db.Column(db.String(100))
    license_key = db.Column(db.String(200))
    status = db.Column(
        db.String(20), nullable=False, default="AVAILABLE",
        comment="AVAILABLE | ASSIGNED | MAINTENANCE | LOST | DAMAGED",
    )
    created_at = db.Column(db.DateTime, default=_now)

    resource = db.relationship("Resource", back_populates="items")

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "serial_number": self.serial_number,
            "hostname": self.hostname,
            "license_key": self.license_key,
            "status": self.status,
        }


class ResourceAssignment(db.Model):
    __tablename__ = "resource_assignments"
    __table_args__ = (
        db.Index("idx_assignment_employee_status", "employee_id", "status"),
        db.Index("idx_assignment_resource_status", "resource_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    resource_id = db.Column(
        db.String(36), db.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False,
    )
    employee_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False,
    )
    item_id = db.Column(
        db.String(36), db.ForeignKey("resource_items.id", ondelete="SET NULL"), nullable=True,
    )
    quantity_assigned = db.Column(db.Integer, nullable=False, default=1)
    assigned_by = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True,
    )
    status = db.Column(
        db.String(20), nullable=False, default="ACTIVE",
        comment="ACTIVE | RETURNED | LOST | DAMAGED | REVOKED",
    )
    notes = db.Column(db.Text)
    assigned_at = db.Column(db.DateTime, default=_now)
    returned_at = db.Column(db.DateTime)

    resource = db.relationship("Resource")
    employee = db.relationship("Employee", foreign_keys=[employee_id])
    assigner = db.relationship("Employee", foreign_keys=[assigned_by])
    item = db.relationship("ResourceItem")

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"

    def to_dict(self):
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "employee_id": self.employee_id,
            "item_id": self.item_id,
            "quantity_assigned": self.quantity_assigned,
            "assigned_by": self.assigned_by,
            "status": self.status,
            "notes": self.notes,
            "assigned_at": _iso(self.assigned_at),
            "returned_at": _iso(self.returned_at),
            "resource": {"id": self.resource.id, "name": self.resource.name, "type": self.resource.type}
            if self.resource else None,
            "employee": self.employee.to_summary() if self.employee else None,
            "item": self.item.to_dict() if self.item else None,
        }

    def __repr__(self):
        return f"<ResourceAssignment {self.id}: {self.resource_id} -> {self.employee_id} [{self.status}]>"
