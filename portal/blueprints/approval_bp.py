"""
Approval Workflow Blueprint.

Routes:
  GET    /approvals                    – list workflows (paginated)
  GET    /approvals/<wid>              – single workflow
  PUT    /approvals/<wid>              – approve / reject a PENDING workflow
  POST   /workflows                    – open a workflow
  GET    /workflows                    – list workflows (alias of /approvals)
  GET    /workflows/pending            – PENDING workflows awaiting an approver
  GET    /workflows/stats              – per-employee workflow counters

Service layer owns all business logic and commits; typed exceptions are
mapped to responses by the app-level error handlers.
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required
from portal.services import approval_service
from portal.utils.helpers import paginate_query, parse_pagination

approval_bp = Blueprint("approval", __name__, url_prefix="/api/v1")


def _list_response():
    page, limit = parse_pagination(request.args)
    q = approval_service.workflows_query(
        status=request.args.get("status"),
        workflow_type=request.args.get("type"),
        requester_id=request.args.get("requesterId"),
        approver_id=request.args.get("approverId"),
    )
    return jsonify(paginate_query(q, page, limit))


# ═════════════════════════════════════════════════════════════════════════════
# DECISIONS
# ═════════════════════════════════════════════════════════════════════════════

@approval_bp.route("/approvals", methods=["GET"])
@login_required
def list_approvals():
    """List workflows, newest first.

    Query params: page, limit, status, type, requesterId, approverId
    """
    return _list_response()


@approval_bp.route("/approvals/<wid>", methods=["GET"])
@login_required
def get_approval(wid):
    return jsonify(approval_service.get_workflow(wid).to_dict())


@approval_bp.route("/approvals/<wid>", methods=["PUT"])
@login_required
def decide(wid):
    """Approve or reject a workflow.

    Body: { action: "approve" | "reject", approverId?, comments? }
    Returns: the updated workflow plus ``side_effects``.
    """
    data = request.get_json(silent=True) or {}
    result = approval_service.decide_workflow(
        wid,
        data.get("action"),
        approver_id=data.get("approverId"),
        comments=data.get("comments"),
    )
    return jsonify(result.to_dict()), 200


# ═════════════════════════════════════════════════════════════════════════════
# INTAKE
# ═════════════════════════════════════════════════════════════════════════════

@approval_bp.route("/workflows", methods=["POST"])
@login_required
def create_workflow():
    """Open a PENDING workflow.

    Body: { type, requesterId?, approverId?, data?, policyId?, documentId?,
            resourceId?, comments? }
    requesterId defaults to the caller.
    """
    data = request.get_json(silent=True) or {}
    workflow = approval_service.create_workflow(
        data.get("type"),
        data.get("requesterId") or g.current_employee_id,
        data=data.get("data") if isinstance(data.get("data"), dict) else None,
        approver_id=data.get("approverId"),
        policy_id=data.get("policyId"),
        document_id=data.get("documentId"),
        resource_id=data.get("resourceId"),
        comments=data.get("comments"),
        actor_id=g.current_employee_id,
    )
    return jsonify(workflow.to_dict()), 201


@approval_bp.route("/workflows", methods=["GET"])
@login_required
def list_workflows():
    return _list_response()


@approval_bp.route("/workflows/pending", methods=["GET"])
@login_required
def pending_workflows():
    """PENDING workflows assigned to ``approverId`` (default: the caller)."""
    approver_id = request.args.get("approverId") or g.current_employee_id
    q = approval_service.workflows_query(status="PENDING", approver_id=approver_id)
    return jsonify([w.to_dict() for w in q.all()])


@approval_bp.route("/workflows/stats", methods=["GET"])
@login_required
def workflow_stats():
    employee_id = request.args.get("userId") or g.current_employee_id
    return jsonify(approval_service.workflow_stats(employee_id))
