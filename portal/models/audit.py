"""
Internal Portal
Audit domain model.

Models:
    - AuditLog: immutable, append-only field-level change record.
"""

from datetime import datetime, timezone

from portal.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = frozenset({
    "EMPLOYEE", "RESOURCE", "ACCESS", "POLICY", "DOCUMENT", "APPROVAL_WORKFLOW",
})


class AuditLog(db.Model):
    """
    Immutable audit trail.

    One row per changed field: ``field_changed`` with ``old_value`` → ``new_value``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("idx_audit_entity", "entity_type", "entity_id"),
        db.Index("idx_audit_actor", "changed_by_id"),
        db.Index("idx_audit_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Polymorphic entity reference
    entity_type = db.Column(
        db.String(30), nullable=False,
        comment="EMPLOYEE | RESOURCE | ACCESS | POLICY | DOCUMENT | APPROVAL_WORKFLOW",
    )
    entity_id = db.Column(db.String(36), nullable=False)

    changed_by_id = db.Column(
        db.String(36),
        db.ForeignKey("employees.id", ondelete="SET NULL"),
        nullable=True,
        comment="Employee who made the change (NULL for system entries)",
    )
    field_changed = db.Column(db.String(100), nullable=False)
    old_value = db.Column(db.Text)
    new_value = db.Column(db.Text)

    # Timestamp (immutable)
    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "changed_by_id": self.changed_by_id,
            "field_changed": self.field_changed,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.field_changed} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id: str,
    changed_by_id: str | None,
    field_changed: str,
    old_value=None,
    new_value=None,
) -> AuditLog:
    """
    Append a single audit row.  Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) AuditLog instance.
    """
    log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        changed_by_id=changed_by_id,
        field_changed=field_changed,
        old_value=None if old_value is None else str(old_value),
        new_value=None if new_value is None else str(new_value),
    )
    db.session.add(log)
    db.session.flush()
    return log
