"""
Policy & Document Blueprint.

Routes:
  GET    /policies          – list policies (search, category, status); CEO / CTO see all,
                              everyone else only the ones they own
  POST   /policies          – create a policy; REVIEW opens a POLICY_UPDATE_REQUEST
  GET    /policies/<pid>    – single policy
  GET    /documents         – list documents (search, category, status)
  POST   /documents         – create a document
  GET    /documents/<did>   – single document

Status changes past REVIEW only happen through PUT /approvals/<id>.
"""

from flask import Blueprint, g, jsonify, request

from portal.middleware.role_required import login_required
from portal.services import policy_service
from portal.utils.helpers import paginate_query, parse_pagination

policy_bp = Blueprint("policy", __name__, url_prefix="/api/v1")


# ── Policies ─────────────────────────────────────────────────────────────────

@policy_bp.route("/policies", methods=["GET"])
@login_required
def list_policies():
    page, limit = parse_pagination(request.args)
    q = policy_service.policies_query(
        g.current_employee,
        search=request.args.get("search"),
        category=request.args.get("category"),
        status=request.args.get("status"),
    )
    return jsonify(paginate_query(q, page, limit))


@policy_bp.route("/policies", methods=["POST"])
@login_required
def create_policy():
    """Body: { title, category?, status?, ownerId? }"""
    data = request.get_json(silent=True) or {}
    policy, workflow_id = policy_service.create_policy(data, actor_id=g.current_employee_id)
    return jsonify({**policy.to_dict(), "review_workflow_id": workflow_id}), 201


@policy_bp.route("/policies/<pid>", methods=["GET"])
@login_required
def get_policy(pid):
    return jsonify(policy_service.get_policy(pid, g.current_employee).to_dict())


# ── Documents ────────────────────────────────────────────────────────────────

@policy_bp.route("/documents", methods=["GET"])
@login_required
def list_documents():
    page, limit = parse_pagination(request.args)
    q = policy_service.documents_query(
        search=request.args.get("search"),
        category=request.args.get("category"),
        status=request.args.get("status"),
    )
    return jsonify(paginate_query(q, page, limit))


@policy_bp.route("/documents", methods=["POST"])
@login_required
def create_document():
    """Body: { title, category?, status?, ownerId? }"""
    data = request.get_json(silent=True) or {}
    document = policy_service.create_document(data, actor_id=g.current_employee_id)
    return jsonify(document.to_dict()), 201


@policy_bp.route("/documents/<did>", methods=["GET"])
@login_required
def get_document(did):
    return jsonify(policy_service.get_document(did).to_dict())
