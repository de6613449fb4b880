"""
Policy & document models.

Only the fields the policy endpoints, the approval flow and ownership
reassignment touch are modelled. Policy content and file storage are not kept
here.
"""

import uuid
from datetime import datetime, timezone

from portal.models import db

POLICY_STATUSES = frozenset({"DRAFT", "IN_PROGRESS", "REVIEW", "APPROVED", "REJECTED", "PUBLISHED"})
DOCUMENT_STATUSES = frozenset({"DRAFT", "REVIEW", "APPROVED", "PUBLISHED", "ARCHIVED"})


def _now():
    return datetime.now(timezone.utc)


class Policy(db.Model):
    __tablename__ = "policies"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(300), nullable=False)
    category = db.Column(db.String(100))
    owner_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    last_review_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "owner_id": self.owner_id,
            "status": self.status,
            "last_review_date": self.last_review_date.isoformat() if self.last_review_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Document(db.Model):
    __tablename__ = "documents"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(300), nullable=False)
    category = db.Column(db.String(100))
    owner_id = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True,
    )
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    created_at = db.Column(db.DateTime, default=_now)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "owner_id": self.owner_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
