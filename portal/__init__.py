"""
Internal Portal
Flask application factory: approvals, resource assignments, onboarding,
audit trail.

    from portal import create_app
    app = create_app("testing")

Run ``flask seed-ceo`` once on a fresh database; approval decisions need a
CEO on record.
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from portal.config import config
from portal.core.exceptions import ConfigurationError
from portal.models import db
from portal.middleware.logging_config import configure_logging
from portal.middleware.timing import init_request_timing
from portal.middleware.rate_limiter import init_rate_limits
from portal.middleware.jwt_auth import init_jwt_middleware
from portal.utils.errors import E, PORTAL_EXCEPTIONS, api_error, exception_response

logger = logging.getLogger(__name__)

# ── SQLite engine events (global) ───────────────────────────────────────
# Foreign keys are off by default in SQLite. pysqlite also issues its own
# BEGIN lazily, which breaks SAVEPOINT; take over transaction control.
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _configure_sqlite_connection(dbapi_conn, connection_record):
    """Enable foreign key enforcement and manual BEGIN for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@_sa_event.listens_for(_sa_engine.Engine, "begin")
def _sqlite_begin(conn):
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN")


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # see middleware.rate_limiter
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _register_error_handlers(app):
    """Map the portal exception hierarchy onto the standard error envelope."""

    def _portal_error(exc):
        if isinstance(exc, ConfigurationError):
            logger.error("Configuration error: %s", exc)
        return exception_response(exc)

    for exc_type in PORTAL_EXCEPTIONS:
        app.register_error_handler(exc_type, _portal_error)

    @app.errorhandler(SQLAlchemyError)
    def _database_error(exc):
        db.session.rollback()
        if isinstance(exc, IntegrityError):
            logger.warning("Integrity error on %s %s: %s", request.method, request.path, exc.orig)
            return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")
        logger.error("Database error on %s %s", request.method, request.path, exc_info=True)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(404)
    def _unknown_route(_e):
        return api_error(E.NOT_FOUND, f"No route for {request.method} {request.path}")

    @app.errorhandler(405)
    def _wrong_method(_e):
        return api_error(E.METHOD_NOT_ALLOWED, f"{request.method} not allowed here")

    @app.errorhandler(429)
    def _throttled(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": e.description})

    @app.errorhandler(500)
    def _unhandled(e):
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """Build the portal app for ``config_name`` (development | testing | production).

    ``APP_ENV`` decides when no name is passed; development is the fallback.
    """
    config_name = config_name or os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()],
             supports_credentials=True)
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (cookie or Bearer → g.current_employee) ──────
    init_jwt_middleware(app)

    # ── Register every table on the metadata (create_all, Alembic) ──────
    from portal.models import (  # noqa: F401
        access, audit, employee, policy, resource, timeline, workflow,
    )

    # ── Auto-create tables in development (migrations elsewhere) ─────────
    if config_name == "development":
        os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
            except SQLAlchemyError:
                logger.warning("Could not create development tables", exc_info=True)

    # ── Blueprints ───────────────────────────────────────────────────────
    from portal.blueprints.health_bp import health_bp
    from portal.blueprints.auth_bp import auth_bp
    from portal.blueprints.approval_bp import approval_bp
    from portal.blueprints.assignment_bp import assignment_bp
    from portal.blueprints.resource_bp import resource_bp
    from portal.blueprints.access_bp import access_bp
    from portal.blueprints.employee_bp import employee_bp
    from portal.blueprints.onboarding_bp import onboarding_bp
    from portal.blueprints.policy_bp import policy_bp
    from portal.blueprints.audit_bp import audit_bp

    for bp in (
        health_bp, auth_bp, approval_bp, assignment_bp, resource_bp,
        access_bp, employee_bp, onboarding_bp, policy_bp, audit_bp,
    ):
        app.register_blueprint(bp)

    # ── Error handlers ───────────────────────────────────────────────────
    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-ceo")
    @click.option("--name", default="Chief Executive", help="Display name of the CEO account.")
    def seed_ceo_cmd(name):
        """Create the CEO account from CEO_EMAIL / CEO_PASSWORD if it is missing."""
        from portal.models.employee import Employee
        from portal.utils.crypto import hash_password

        email = app.config["CEO_EMAIL"].strip().lower()
        password = app.config.get("CEO_PASSWORD")
        if not password:
            raise click.ClickException("CEO_PASSWORD must be set")
        if Employee.query.filter_by(email=email).first():
            logger.info("CEO account %s already exists", email)
            return
        db.session.add(Employee(
            name=name, email=email, role="CEO", status="ACTIVE",
            password_hash=hash_password(password),
        ))
        db.session.commit()
        logger.info("Seeded CEO account %s", email)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
