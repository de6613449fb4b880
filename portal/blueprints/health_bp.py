"""
Health check blueprint.

Endpoints:
    GET /api/v1/health        — readiness, 200 whenever the process serves
    GET /api/v1/health/live   — database round trip + approval readiness
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from portal.models import db
from portal.models.employee import Employee
from portal.models.workflow import ApprovalWorkflow

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def ready():
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    """
    503 when the database is unreachable.

    A missing CEO keeps the endpoint at 200 but reports ``degraded``: the
    portal serves, yet every approval decision would fail.
    """
    started = time.perf_counter()
    try:
        db.session.execute(db.text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Liveness check: database unreachable: %s", exc)
        return jsonify({
            "status": "down",
            "checks": {"database": {"status": "error", "detail": str(exc)}},
        }), 503
    latency = round((time.perf_counter() - started) * 1000, 1)

    has_ceo = db.session.query(Employee.id).filter_by(role="CEO").first() is not None
    pending = ApprovalWorkflow.query.filter_by(status="PENDING").count()

    return jsonify({
        "status": "healthy" if has_ceo else "degraded",
        "checks": {
            "database": {"status": "ok", "latency_ms": latency},
            "approvals": {
                "status": "ok" if has_ceo else "no_ceo",
                "pendingWorkflows": pending,
            },
        },
    }), 200
