"""
Approver resolution tests.

Tests cover:
  - CEO presence check (ConfigurationError)
  - default approver fallback chain: config → active CEO → active CTO/ADMIN → CEO
  - cache re-validation after role changes
  - system user lookup / creation
"""
import pytest

from portal.core.exceptions import ConfigurationError
from portal.models import db
from portal.models.employee import Employee
from portal.services.approver_resolution import (
    get_default_approver,
    get_system_user,
    invalidate_default_approver,
    resolve_approver,
)


class TestDefaultApprover:
    def test_no_ceo_raises(self, cto):
        with pytest.raises(ConfigurationError, match="CEO user not found"):
            get_default_approver()

    def test_active_ceo_is_default(self, ceo, cto):
        assert get_default_approver().id == ceo.id

    def test_configured_privileged_approver_wins(self, app, ceo, admin):
        app.config["DEFAULT_APPROVER_ID"] = admin.id
        try:
            assert get_default_approver().id == admin.id
        finally:
            app.config["DEFAULT_APPROVER_ID"] = None

    def test_configured_non_privileged_ignored(self, app, ceo, employee):
        app.config["DEFAULT_APPROVER_ID"] = employee.id
        try:
            assert get_default_approver().id == ceo.id
        finally:
            app.config["DEFAULT_APPROVER_ID"] = None

    def test_inactive_ceo_falls_back_to_cto(self, make_employee, admin, cto):
        make_employee(role="CEO", status="INACTIVE")
        assert get_default_approver().id == cto.id

    def test_inactive_ceo_falls_back_to_admin(self, make_employee, admin):
        make_employee(role="CEO", status="INACTIVE")
        assert get_default_approver().id == admin.id

    def test_inactive_ceo_used_as_last_resort(self, make_employee):
        ceo = make_employee(role="CEO", status="INACTIVE")
        assert get_default_approver().id == ceo.id

    def test_cached_id_revalidated(self, make_employee, ceo):
        ceo.status = "INACTIVE"
        db.session.commit()
        cto = make_employee(role="CTO")
        assert get_default_approver().id == cto.id

        # Demoted after being cached: must not be returned again.
        cto.role = "EMPLOYEE"
        db.session.commit()
        assert get_default_approver().id == ceo.id

    def test_invalidate_clears_cache(self, app, ceo):
        get_default_approver()
        assert "portal.default_approver_id" in app.extensions
        invalidate_default_approver()
        assert "portal.default_approver_id" not in app.extensions


class TestResolveApprover:
    def test_supplied_existing(self, ceo, employee):
        assert resolve_approver(employee.id).id == employee.id

    def test_supplied_missing_uses_default(self, ceo):
        assert resolve_approver("ghost").id == ceo.id

    def test_ceo_required_even_with_supplied(self, cto):
        with pytest.raises(ConfigurationError):
            resolve_approver(cto.id)


class TestSystemUser:
    def test_created_once(self):
        first = get_system_user()
        db.session.commit()
        second = get_system_user()
        assert first.id == second.id
        assert first.role == "ADMIN"
        assert Employee.query.filter_by(email="system@internal-portal.com").count() == 1

    def test_company_owner_config(self, app, ceo):
        app.config["COMPANY_OWNER_ID"] = ceo.id
        try:
            assert get_system_user().id == ceo.id
        finally:
            app.config["COMPANY_OWNER_ID"] = None
