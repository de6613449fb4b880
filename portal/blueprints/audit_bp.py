"""
Audit & Timeline blueprint.

Endpoints:
    GET  /api/v1/audit                                 — list / filter audit logs
    GET  /api/v1/timeline                              — list / filter timeline activities
    GET  /api/v1/timeline/<entity_type>/<entity_id>    — one entity's activity feed
"""

from flask import Blueprint, jsonify, request

from portal.middleware.role_required import login_required
from portal.models.audit import AuditLog
from portal.models.timeline import TimelineActivity
from portal.utils.helpers import paginate_query, parse_pagination

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1")


# ── Audit log ────────────────────────────────────────────────────────────────

@audit_bp.route("/audit", methods=["GET"])
@login_required
def list_audit_logs():
    """
    Return paginated audit logs, newest first.

    Query params:
        entityType   — filter by entity type
        entityId     — filter by entity PK
        changedById  — filter by acting employee
        field        — filter by changed field
        page, limit
    """
    q = AuditLog.query

    entity_type = request.args.get("entityType")
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type.upper())
    entity_id = request.args.get("entityId")
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)
    changed_by = request.args.get("changedById")
    if changed_by:
        q = q.filter(AuditLog.changed_by_id == changed_by)
    field = request.args.get("field")
    if field:
        q = q.filter(AuditLog.field_changed == field)

    page, limit = parse_pagination(request.args)
    return jsonify(paginate_query(q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()), page, limit))


# ── Timeline ─────────────────────────────────────────────────────────────────

_TIMELINE_LINK_PARAMS = {
    "employeeId": TimelineActivity.employee_id,
    "resourceId": TimelineActivity.resource_id,
    "workflowId": TimelineActivity.workflow_id,
    "policyId": TimelineActivity.policy_id,
    "documentId": TimelineActivity.document_id,
    "assignmentId": TimelineActivity.assignment_id,
}


@audit_bp.route("/timeline", methods=["GET"])
@login_required
def list_timeline():
    """
    Query params:
        entityType, activityType, performedBy,
        employeeId, resourceId, workflowId, policyId, documentId, assignmentId,
        page, limit
    """
    q = TimelineActivity.query

    entity_type = request.args.get("entityType")
    if entity_type:
        q = q.filter(TimelineActivity.entity_type == entity_type.upper())
    activity_type = request.args.get("activityType")
    if activity_type:
        q = q.filter(TimelineActivity.activity_type == activity_type.upper())
    performed_by = request.args.get("performedBy")
    if performed_by:
        q = q.filter(TimelineActivity.performed_by == performed_by)
    for param, column in _TIMELINE_LINK_PARAMS.items():
        value = request.args.get(param)
        if value:
            q = q.filter(column == value)

    page, limit = parse_pagination(request.args)
    q = q.order_by(TimelineActivity.timestamp.desc(), TimelineActivity.id.desc())
    return jsonify(paginate_query(q, page, limit))


@audit_bp.route("/timeline/<entity_type>/<entity_id>", methods=["GET"])
@login_required
def entity_timeline(entity_type, entity_id):
    q = TimelineActivity.query.filter(
        TimelineActivity.entity_type == entity_type.upper(),
        TimelineActivity.entity_id == entity_id,
    ).order_by(TimelineActivity.timestamp.desc(), TimelineActivity.id.desc())
    page, limit = parse_pagination(request.args)
    return jsonify(paginate_query(q, page, limit))
