"""
Access Request Blueprint.

Routes:
  POST   /access     – request a resource or hardware (opens an ACCESS_REQUEST workflow)
  GET    /access     – list access requests (employeeId, status)
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required
from portal.services import access_service
from portal.utils.helpers import paginate_query, parse_pagination

access_bp = Blueprint("access", __name__, url_prefix="/api/v1")


@access_bp.route("/access", methods=["POST"])
@login_required
def create_access_request():
    """Body: { resourceId? | hardwareRequest?, employeeId?, approverId?,
               permissionLevel?, justification? }

    employeeId defaults to the caller.
    """
    data = request.get_json(silent=True) or {}
    access, workflow = access_service.create_access_request(
        data.get("employeeId") or g.current_employee_id,
        resource_id=data.get("resourceId"),
        hardware_request=data.get("hardwareRequest"),
        approver_id=data.get("approverId"),
        permission_level=data.get("permissionLevel"),
        justification=data.get("justification"),
        actor_id=g.current_employee_id,
    )
    return jsonify({"access": access.to_dict(), "workflow": workflow.to_dict()}), 201


@access_bp.route("/access", methods=["GET"])
@login_required
def list_access_requests():
    page, limit = parse_pagination(request.args)
    q = access_service.access_requests_query(
        employee_id=request.args.get("employeeId"),
        status=request.args.get("status"),
    )
    return jsonify(paginate_query(q, page, limit))
