"""
Employee directory & ownership reassignment tests.

Tests cover:
  - create employee (validation, duplicate email, password hashing)
  - reassign_ownership: policies, documents, resources, direct reports
  - target never ends up managing itself
  - failure rolls back every repoint
  - /employees endpoints and role guards
"""
import pytest
from sqlalchemy import text

from portal.core.exceptions import (
    ConflictError,
    DependencyWriteError,
    NotFoundError,
    ValidationError,
)
from portal.models import db
from portal.models.audit import AuditLog
from portal.models.employee import Employee
from portal.models.policy import Document, Policy
from portal.models.resource import Resource
from portal.services.employee_service import create_employee, reassign_ownership
from portal.utils.crypto import verify_password


class TestCreateEmployee:
    def test_creates_with_hashed_password(self, ceo):
        emp = create_employee(
            {"name": "Ada", "email": "ADA@example.com", "role": "backend_developer", "password": "pw-123"},
            actor_id=ceo.id,
        )
        assert emp.email == "ada@example.com"
        assert emp.role == "BACKEND_DEVELOPER"
        assert verify_password("pw-123", emp.password_hash)
        assert AuditLog.query.filter_by(entity_id=emp.id, field_changed="created").count() == 1

    def test_validation(self):
        with pytest.raises(ValidationError) as exc:
            create_employee({"email": "x@example.com", "role": "WIZARD"})
        assert set(exc.value.details) == {"name", "role"}

    def test_duplicate_email(self, employee):
        with pytest.raises(ConflictError):
            create_employee({"name": "Dup", "email": employee.email})

    def test_unknown_manager(self):
        with pytest.raises(NotFoundError):
            create_employee({"name": "N", "email": "n@example.com", "managerId": "nope"})


class TestReassignOwnership:
    @pytest.fixture()
    def leaver(self, make_employee, ceo):
        return make_employee(role="ENGINEERING_MANAGER", name="Leaver", manager=ceo)

    @pytest.fixture()
    def owned(self, leaver, make_resource):
        db.session.add_all([
            Policy(title="P1", owner_id=leaver.id),
            Policy(title="P2", owner_id=leaver.id),
            Document(title="D1", owner_id=leaver.id),
        ])
        db.session.commit()
        make_resource(owner_id=leaver.id)

    def test_moves_everything(self, leaver, owned, make_employee, ceo):
        target = make_employee(role="ENGINEERING_MANAGER", name="Successor")
        make_employee(manager=leaver)
        make_employee(manager=leaver)

        counts = reassign_ownership(leaver.id, target.id, ceo.id)

        assert counts == {"policies": 2, "documents": 1, "resources": 1, "subordinates": 2}
        assert Policy.query.filter_by(owner_id=target.id).count() == 2
        assert Document.query.filter_by(owner_id=target.id).count() == 1
        assert Resource.query.filter_by(owner_id=target.id).count() == 1
        assert Employee.query.filter_by(manager_id=leaver.id).count() == 0
        assert Employee.query.filter_by(manager_id=target.id).count() == 2
        assert AuditLog.query.filter_by(field_changed="ownership_reassigned").count() == 1

    def test_target_reporting_to_source_is_repointed_upward(self, leaver, make_employee, ceo):
        target = make_employee(manager=leaver)
        make_employee(manager=leaver)

        counts = reassign_ownership(leaver.id, target.id, ceo.id)

        db.session.expire_all()
        target = db.session.get(Employee, target.id)
        assert target.manager_id == ceo.id
        assert target.manager_id != target.id
        assert counts["subordinates"] == 1

    def test_same_employee(self, leaver):
        with pytest.raises(ValidationError, match="Cannot reassign to the same employee"):
            reassign_ownership(leaver.id, leaver.id, None)

    def test_missing_ids(self):
        with pytest.raises(ValidationError, match="Both fromEmployeeId and toEmployeeId are required"):
            reassign_ownership(None, "x", None)

    def test_unknown_employees(self, leaver):
        with pytest.raises(NotFoundError, match="Source employee"):
            reassign_ownership("nope", leaver.id, None)
        with pytest.raises(NotFoundError, match="Target employee"):
            reassign_ownership(leaver.id, "nope", None)

    def test_failure_rolls_back_all_repoints(self, leaver, owned, make_employee, ceo):
        target = make_employee()
        db.session.execute(text(
            "CREATE TRIGGER documents_locked BEFORE UPDATE ON documents "
            "BEGIN SELECT RAISE(ABORT, 'documents are locked'); END"
        ))
        db.session.commit()

        with pytest.raises(DependencyWriteError):
            reassign_ownership(leaver.id, target.id, ceo.id)

        assert Policy.query.filter_by(owner_id=leaver.id).count() == 2
        assert Policy.query.filter_by(owner_id=target.id).count() == 0


class TestEmployeeAPI:
    def test_list_and_filter(self, client, auth_headers, ceo, cto, employee):
        res = client.get("/api/v1/employees?role=cto", headers=auth_headers(employee))
        assert res.status_code == 200
        assert [e["id"] for e in res.get_json()["items"]] == [cto.id]

    def test_create_requires_privileged(self, client, auth_headers, employee):
        res = client.post(
            "/api/v1/employees", json={"name": "X", "email": "x@example.com"},
            headers=auth_headers(employee),
        )
        assert res.status_code == 403
        assert res.get_json()["details"]["required_any"] == ["ADMIN", "CEO", "CTO"]

    def test_create_duplicate_409(self, client, auth_headers, admin, employee):
        res = client.post(
            "/api/v1/employees", json={"name": "X", "email": employee.email},
            headers=auth_headers(admin),
        )
        assert res.status_code == 409

    def test_reassign_endpoint(self, client, auth_headers, ceo, make_employee):
        src, dst = make_employee(), make_employee()
        make_employee(manager=src)
        res = client.post(
            "/api/v1/employees/reassign",
            json={"fromEmployeeId": src.id, "toEmployeeId": dst.id},
            headers=auth_headers(ceo),
        )
        assert res.status_code == 200
        assert res.get_json()["reassigned"]["subordinates"] == 1

    def test_reassign_validation_400(self, client, auth_headers, ceo):
        res = client.post("/api/v1/employees/reassign", json={}, headers=auth_headers(ceo))
        assert res.status_code == 400

    def test_get_unknown_404(self, client, auth_headers, ceo):
        assert client.get("/api/v1/employees/missing", headers=auth_headers(ceo)).status_code == 404
