"""
Resource Inventory Blueprint.

Routes:
  GET    /resources                  – list resources (type, status, search)
  POST   /resources                  – create a resource (manager roles)
  GET    /resources/<rid>            – single resource with its items
  POST   /resources/<rid>/items      – add a serialized unit (PHYSICAL only)
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required, require_roles
from portal.models.employee import ASSIGNMENT_MANAGER_ROLES
from portal.services import resource_service
from portal.utils.helpers import paginate_query, parse_pagination

resource_bp = Blueprint("resource", __name__, url_prefix="/api/v1")


@resource_bp.route("/resources", methods=["GET"])
@login_required
def list_resources():
    page, limit = parse_pagination(request.args)
    q = resource_service.resources_query(
        rtype=request.args.get("type"),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify(paginate_query(q, page, limit))


@resource_bp.route("/resources", methods=["POST"])
@require_roles(*ASSIGNMENT_MANAGER_ROLES)
def create_resource():
    data = request.get_json(silent=True) or {}
    resource = resource_service.create_resource(data, actor_id=g.current_employee_id)
    return jsonify(resource.to_dict()), 201


@resource_bp.route("/resources/<rid>", methods=["GET"])
@login_required
def get_resource(rid):
    return jsonify(resource_service.get_resource(rid).to_dict(include_items=True))


@resource_bp.route("/resources/<rid>/items", methods=["POST"])
@require_roles(*ASSIGNMENT_MANAGER_ROLES)
def add_item(rid):
    data = request.get_json(silent=True) or {}
    item = resource_service.add_item(rid, data, actor_id=g.current_employee_id)
    return jsonify(item.to_dict()), 201
