"""
Timeline activity model.

Human-readable, append-only business events ("Access request approved",
"Assignment deleted"). Each row belongs to one entity and may also carry
direct links to related records so per-entity feeds can be queried cheaply.
"""

from datetime import datetime, timezone

from portal.models import db

TIMELINE_ENTITY_TYPES = frozenset({
    "EMPLOYEE", "RESOURCE", "ACCESS", "POLICY", "DOCUMENT", "APPROVAL_WORKFLOW",
})

ACTIVITY_TYPES = frozenset({
    "CREATED", "UPDATED", "DELETED", "STATUS_CHANGED",
    "APPROVED", "REJECTED", "PUBLISHED", "ARCHIVED",
    "ASSIGNED", "UNASSIGNED", "ACCESS_GRANTED", "ACCESS_REVOKED",
    "WORKFLOW_STARTED", "WORKFLOW_COMPLETED",
    "ONBOARDING_COMPLETED", "EMPLOYEE_LOGIN",
})

# Optional direct links accepted by write_timeline (column name set).
LINK_FIELDS = (
    "policy_id", "document_id", "resource_id",
    "workflow_id", "employee_id", "assignment_id",
)


class TimelineActivity(db.Model):
    __tablename__ = "timeline_activities"
    __table_args__ = (
        db.Index("idx_timeline_entity", "entity_type", "entity_id"),
        db.Index("idx_timeline_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(30), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False)
    activity_type = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text)
    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, default=dict)
    performed_by = db.Column(
        db.String(36), db.ForeignKey("employees.id", ondelete="SET NULL"), nullable=True,
    )

    # Direct links (no FK: referenced rows may be hard-deleted later)
    policy_id = db.Column(db.String(36))
    document_id = db.Column(db.String(36))
    resource_id = db.Column(db.String(36), index=True)
    workflow_id = db.Column(db.String(36))
    employee_id = db.Column(db.String(36), index=True)
    assignment_id = db.Column(db.String(36))

    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "activity_type": self.activity_type,
            "title": self.title,
            "description": self.description,
            "metadata": self.meta or {},
            "performed_by": self.performed_by,
            "policy_id": self.policy_id,
            "document_id": self.document_id,
            "resource_id": self.resource_id,
            "workflow_id": self.workflow_id,
            "employee_id": self.employee_id,
            "assignment_id": self.assignment_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


def write_timeline(
    *,
    entity_type: str,
    entity_id: str,
    activity_type: str,
    title: str,
    description: str | None = None,
    metadata: dict | None = None,
    performed_by: str | None = None,
    **links,
) -> TimelineActivity:
    """Append one timeline row and flush; callers keep transaction control."""
    unknown = set(links) - set(LINK_FIELDS)
    if unknown:
        raise TypeError(f"Unknown timeline link field(s): {sorted(unknown)}")

    activity = TimelineActivity(
        entity_type=entity_type,
        entity_id=str(entity_id),
        activity_type=activity_type,
        title=title,
        description=description,
        meta=metadata or {},
        performed_by=performed_by,
        **{k: (str(v) if v is not None else None) for k, v in links.items()},
    )
    db.session.add(activity)
    db.session.flush()
    return activity
