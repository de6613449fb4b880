"""
Shared pytest fixtures for the Internal Portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_employee / make_resource: factories writing straight to the DB
    - ceo, cto, admin, employee: common actors
    - auth_headers: Bearer header for an employee
"""

import itertools

import pytest

from portal import create_app
from portal.models import db as _db
from portal.models.employee import Employee
from portal.models.resource import Resource, ResourceItem
from portal.services.approver_resolution import invalidate_default_approver
from portal.services.jwt_service import generate_access_token
from portal.utils.crypto import hash_password

TEST_PASSWORD = "Secret123!"

_seq = itertools.count(1)


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # Ids are reused across recreated tables; drop cached actor ids.
        invalidate_default_approver()
        yield
        invalidate_default_approver()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_employee():
    """Create and commit an Employee. Password is TEST_PASSWORD."""

    def _make(role="EMPLOYEE", status="ACTIVE", name=None, manager=None, **kwargs):
        n = next(_seq)
        emp = Employee(
            name=name or f"{role.title()} {n}",
            email=kwargs.pop("email", f"{role.lower()}{n}@example.com"),
            role=role,
            status=status,
            department=kwargs.pop("department", "Engineering"),
            manager_id=manager.id if manager else None,
            password_hash=kwargs.pop("password_hash", None) or hash_password(TEST_PASSWORD, rounds=4),
            **kwargs,
        )
        _db.session.add(emp)
        _db.session.commit()
        return emp

    return _make


@pytest.fixture()
def make_resource():
    """Create and commit a Resource (optionally with serialized items)."""

    def _make(name=None, rtype="SOFTWARE", quantity=1, status="ACTIVE", items=0, **kwargs):
        n = next(_seq)
        res = Resource(
            name=name or f"Resource {n}",
            type=rtype,
            total_quantity=quantity,
            status=status,
            permission_level=kwargs.pop("permission_level", "READ"),
            **kwargs,
        )
        _db.session.add(res)
        _db.session.flush()
        for i in range(items):
            _db.session.add(ResourceItem(resource_id=res.id, serial_number=f"SN-{n}-{i}"))
        _db.session.commit()
        return res

    return _make


@pytest.fixture()
def ceo(make_employee):
    return make_employee(role="CEO", name="Chief Executive")


@pytest.fixture()
def cto(make_employee):
    return make_employee(role="CTO", name="Chief Technology")


@pytest.fixture()
def admin(make_employee):
    return make_employee(role="ADMIN", name="Portal Admin")


@pytest.fixture()
def employee(make_employee):
    return make_employee(role="EMPLOYEE", name="Regular Employee")


@pytest.fixture()
def auth_headers():
    """Return a function building an Authorization header for an employee."""

    def _headers(emp):
        token = generate_access_token(emp.id, emp.email, emp.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
