"""
Employee Directory Blueprint.

Routes:
  GET    /employees               – list employees (role, status, department, search)
  GET    /employees/<eid>         – single employee
  POST   /employees               – create an employee (CEO / CTO / ADMIN)
  POST   /employees/reassign      – move ownership + reports to another employee
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required, require_roles
from portal.models.employee import PRIVILEGED_ROLES, Employee
from portal.services import employee_service
from portal.utils.helpers import get_or_404, paginate_query, parse_pagination

employee_bp = Blueprint("employee", __name__, url_prefix="/api/v1")


@employee_bp.route("/employees", methods=["GET"])
@login_required
def list_employees():
    page, limit = parse_pagination(request.args)
    q = Employee.query
    if request.args.get("role"):
        q = q.filter(Employee.role == request.args["role"].upper())
    if request.args.get("status"):
        q = q.filter(Employee.status == request.args["status"].upper())
    if request.args.get("department"):
        q = q.filter(Employee.department == request.args["department"])
    if request.args.get("search"):
        term = f"%{request.args['search']}%"
        q = q.filter(Employee.name.ilike(term) | Employee.email.ilike(term))
    return jsonify(paginate_query(q.order_by(Employee.name), page, limit))


@employee_bp.route("/employees/<eid>", methods=["GET"])
@login_required
def get_employee(eid):
    emp, err = get_or_404(Employee, eid)
    if err:
        return err
    return jsonify(emp.to_dict())


@employee_bp.route("/employees", methods=["POST"])
@require_roles(*PRIVILEGED_ROLES)
def create_employee():
    data = request.get_json(silent=True) or {}
    employee = employee_service.create_employee(data, actor_id=g.current_employee_id)
    return jsonify(employee.to_dict()), 201


@employee_bp.route("/employees/reassign", methods=["POST"])
@require_roles(*PRIVILEGED_ROLES)
def reassign():
    """Body: { fromEmployeeId, toEmployeeId }"""
    data = request.get_json(silent=True) or {}
    counts = employee_service.reassign_ownership(
        data.get("fromEmployeeId"),
        data.get("toEmployeeId"),
        g.current_employee_id,
    )
    return jsonify({"message": "Ownership reassigned successfully", "reassigned": counts}), 200
