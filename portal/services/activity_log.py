"""
Audit / Timeline recorder.

Every mutating operation reports what it did through these helpers. They are
best-effort: each write runs inside its own SAVEPOINT, and a failure rolls
back only that write, is logged, and is reported to the caller as ``False``.
The caller's unit of work is never affected.

Usage:
    from portal.services.activity_log import log_audit, log_timeline_activity

    log_audit("APPROVAL_WORKFLOW", wf.id, actor_id, "status", "PENDING", "APPROVED")
    log_timeline_activity(
        entity_type="RESOURCE", entity_id=res.id, activity_type="ASSIGNED",
        title="Resource assigned", performed_by=actor_id, employee_id=emp.id,
    )
"""

import logging

from portal.models import db
from portal.models.audit import write_audit
from portal.models.timeline import write_timeline

logger = logging.getLogger(__name__)


def log_audit(entity_type, entity_id, changed_by_id, field_changed, old_value=None, new_value=None) -> bool:
    """Write one audit row; returns False (and logs) if the write failed."""
    try:
        with db.session.begin_nested():
            write_audit(
                entity_type=entity_type,
                entity_id=entity_id,
                changed_by_id=changed_by_id,
                field_changed=field_changed,
                old_value=old_value,
                new_value=new_value,
            )
        return True
    except Exception:
        logger.warning(
            "Audit log failed for %s/%s field=%s — main flow unaffected",
            entity_type, entity_id, field_changed, exc_info=True,
        )
        return False


def log_timeline_activity(
    *,
    entity_type,
    entity_id,
    activity_type,
    title,
    description=None,
    metadata=None,
    performed_by=None,
    **links,
) -> bool:
    """Write one timeline row; returns False (and logs) if the write failed.

    ``links`` accepts the optional related-record ids: policy_id, document_id,
    resource_id, workflow_id, employee_id, assignment_id.
    """
    try:
        with db.session.begin_nested():
            write_timeline(
                entity_type=entity_type,
                entity_id=entity_id,
                activity_type=activity_type,
                title=title,
                description=description,
                metadata=metadata,
                performed_by=performed_by,
                **links,
            )
        return True
    except Exception:
        logger.warning(
            "Timeline log failed for %s/%s activity=%s — main flow unaffected",
            entity_type, entity_id, activity_type, exc_info=True,
        )
        return False


def log_created_activity(entity_type, entity_id, entity_name, performed_by, metadata=None, **links) -> bool:
    return log_timeline_activity(
        entity_type=entity_type,
        entity_id=entity_id,
        activity_type="CREATED",
        title=f"{_label(entity_type)} created: {entity_name}",
        description=f"New {_label(entity_type).lower()} \"{entity_name}\" was created",
        metadata=metadata,
        performed_by=performed_by,
        **links,
    )


def log_status_changed_activity(
    entity_type, entity_id, entity_name, old_status, new_status, performed_by, **links,
) -> bool:
    return log_timeline_activity(
        entity_type=entity_type,
        entity_id=entity_id,
        activity_type="STATUS_CHANGED",
        title=f"Status changed for {entity_type.lower()}: {entity_name}",
        description=f"Status changed from {old_status} to {new_status}",
        metadata={"oldStatus": old_status, "newStatus": new_status},
        performed_by=performed_by,
        **links,
    )


def _label(entity_type: str) -> str:
    """APPROVAL_WORKFLOW -> Approval workflow"""
    return entity_type.replace("_", " ").capitalize()
