"""
Onboarding Blueprint.

Routes:
  GET    /onboarding     – onboarding status of the caller (or ?employeeId=)
  POST   /onboarding     – run resource assignment for the caller (or employeeId)

Only CEO / CTO may look at or trigger onboarding for someone else.
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required
from portal.services import onboarding_service
from portal.services.employee_service import get_employee
from portal.utils.errors import E, api_error

onboarding_bp = Blueprint("onboarding", __name__, url_prefix="/api/v1")

ONBOARDING_ADMIN_ROLES = frozenset({"CEO", "CTO"})


def _target_employee_id(requested_id):
    """Return (employee_id, error_response)."""
    if not requested_id or requested_id == g.current_employee_id:
        return g.current_employee_id, None
    if g.current_role not in ONBOARDING_ADMIN_ROLES:
        return None, api_error(E.FORBIDDEN, "Only CEO or CTO can manage onboarding for other employees")
    return get_employee(requested_id).id, None


@onboarding_bp.route("/onboarding", methods=["GET"])
@login_required
def onboarding_status():
    employee_id, err = _target_employee_id(request.args.get("employeeId"))
    if err:
        return err
    return jsonify(onboarding_service.check_onboarding_status(employee_id))


@onboarding_bp.route("/onboarding", methods=["POST"])
@login_required
def run_onboarding():
    """Body: { employeeId?, force? }"""
    data = request.get_json(silent=True) or {}
    employee_id, err = _target_employee_id(data.get("employeeId"))
    if err:
        return err

    status = onboarding_service.check_onboarding_status(employee_id)
    if status["completed"] and not data.get("force"):
        return jsonify({"message": "Onboarding already completed", "status": status}), 200

    result = onboarding_service.assign_onboarding_resources(employee_id)
    return jsonify({
        "message": "Onboarding process completed",
        "result": result,
        "status": onboarding_service.check_onboarding_status(employee_id),
    }), 200
