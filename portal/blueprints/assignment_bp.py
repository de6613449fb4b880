"""
Resource Assignment Blueprint.

Routes:
  GET    /resources/assignments          – list / filter assignments
  POST   /resources/assignments          – assign a resource (manager roles)
  GET    /resources/assignments/<aid>    – single assignment
  PUT    /resources/assignments/<aid>    – action: return | revoke | updateStatus
  DELETE /resources/assignments/<aid>    – hard delete (CEO / CTO / ADMIN)

Role rules for PUT:
  return        manager roles, or the employee holding the assignment
  revoke        CEO / CTO / ADMIN
  updateStatus  manager roles
"""

from datetime import datetime

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required, require_roles
from portal.models.employee import ASSIGNMENT_MANAGER_ROLES, PRIVILEGED_ROLES
from portal.services import assignment_service
from portal.utils.errors import E, api_error
from portal.utils.helpers import paginate_query, parse_pagination

assignment_bp = Blueprint("assignment", __name__, url_prefix="/api/v1")

SUPPORTED_ACTIONS = ("return", "revoke", "updateStatus")


def _result_response(result, ok_status=200):
    """Map an AssignmentResult onto an HTTP response."""
    if not result.success:
        return jsonify({"error": result.error}), result.status
    body = result.assignment.to_dict() if result.assignment is not None else {"success": True}
    return jsonify(body), ok_status


def _forbidden():
    return api_error(E.FORBIDDEN, "Insufficient permissions")


@assignment_bp.route("/resources/assignments", methods=["GET"])
@login_required
def list_assignments():
    """Query params: resourceId, employeeId, status, page, limit"""
    page, limit = parse_pagination(request.args)
    q = assignment_service.assignments_query(
        resource_id=request.args.get("resourceId"),
        employee_id=request.args.get("employeeId"),
        status=request.args.get("status"),
    )
    return jsonify(paginate_query(q, page, limit))


@assignment_bp.route("/resources/assignments", methods=["POST"])
@require_roles(*ASSIGNMENT_MANAGER_ROLES)
def create_assignment():
    """Body: { resourceId, employeeId, itemId?, quantity?, notes? }"""
    data = request.get_json(silent=True) or {}
    missing = [k for k in ("resourceId", "employeeId") if not data.get(k)]
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required",
                         details={k: "missing" for k in missing})

    result = assignment_service.create_assignment(
        data["resourceId"],
        data["employeeId"],
        g.current_employee_id,
        item_id=data.get("itemId"),
        quantity=data.get("quantity", 1),
        notes=data.get("notes"),
    )
    return _result_response(result, 201)


@assignment_bp.route("/resources/assignments/<aid>", methods=["GET"])
@login_required
def get_assignment(aid):
    return jsonify(assignment_service.get_assignment(aid).to_dict())


@assignment_bp.route("/resources/assignments/<aid>", methods=["PUT"])
@login_required
def update_assignment(aid):
    """Body: { action, ... }

    return:        { returnReason, itemCondition?, notes? }
    revoke:        { reason? }
    updateStatus:  { status, notes?, returnedAt? }
    """
    data = request.get_json(silent=True) or {}
    action = data.get("action")
    if action not in SUPPORTED_ACTIONS:
        return api_error(
            E.VALIDATION_INVALID,
            'Invalid action. Supported actions: "return", "revoke", "updateStatus"',
        )

    assignment = assignment_service.get_assignment(aid)
    caller = g.current_employee

    if action == "return":
        if caller.role not in ASSIGNMENT_MANAGER_ROLES and caller.id != assignment.employee_id:
            return _forbidden()
        result = assignment_service.return_assignment(
            assignment.id,
            caller.id,
            data.get("returnReason"),
            item_condition=data.get("itemCondition"),
            notes=data.get("notes"),
        )
        return _result_response(result)

    if action == "revoke":
        if caller.role not in PRIVILEGED_ROLES:
            return _forbidden()
        result = assignment_service.revoke_assignment(assignment.id, caller.id, data.get("reason"))
        return _result_response(result)

    if caller.role not in ASSIGNMENT_MANAGER_ROLES:
        return _forbidden()
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    returned_at = None
    if data.get("returnedAt"):
        try:
            returned_at = datetime.fromisoformat(data["returnedAt"])
        except (TypeError, ValueError):
            return api_error(E.VALIDATION_INVALID, "returnedAt must be an ISO-8601 datetime")
    result = assignment_service.update_assignment_status(
        assignment.id,
        str(data["status"]).upper(),
        caller.id,
        notes=data.get("notes"),
        returned_at=returned_at,
    )
    return _result_response(result)


@assignment_bp.route("/resources/assignments/<aid>", methods=["DELETE"])
@require_roles(*PRIVILEGED_ROLES)
def delete_assignment(aid):
    result = assignment_service.delete_assignment(aid, g.current_employee_id)
    if not result.success:
        return jsonify({"error": result.error}), result.status
    return jsonify({"message": "Assignment deleted successfully", "id": aid}), 200
