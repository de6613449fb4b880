"""
Approval Workflow Orchestrator tests.

Tests cover:
  - Approve / reject of ACCESS_REQUEST workflows (existing resource + hardware)
  - POLICY_UPDATE_REQUEST decisions
  - Generic workflow types (status change only)
  - Required mutation failure → full rollback, workflow stays PENDING
  - Optional follow-up failure → decision still committed, reported in side_effects
  - Precondition errors: invalid action, missing CEO, unknown / non-pending workflow
  - Concurrent decisions (optimistic version check)
  - Workflow intake, listing, pending queue and stats endpoints
"""
import pytest
from sqlalchemy import text

from portal.core.exceptions import (
    ConfigurationError,
    ConflictError,
    DependencyWriteError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from portal.models import db
from portal.models.access import Access
from portal.models.audit import AuditLog
from portal.models.policy import Policy
from portal.models.resource import Resource, ResourceAssignment
from portal.models.timeline import TimelineActivity
from portal.models.workflow import ApprovalWorkflow
from portal.services.access_service import create_access_request
from portal.services.approval_service import create_workflow, decide_workflow


# ── Fixtures ────────────────────────────────────────────────────────────

@pytest.fixture()
def software(make_resource):
    return make_resource(name="IDE License", rtype="SOFTWARE", quantity=10)


@pytest.fixture()
def access_workflow(ceo, cto, employee, software):
    """PENDING ACCESS_REQUEST for an existing resource."""
    access, workflow = create_access_request(
        employee.id, resource_id=software.id, justification="Daily work",
    )
    return access, workflow


@pytest.fixture()
def hardware_workflow(ceo, cto, employee):
    access, workflow = create_access_request(employee.id, hardware_request="MacBook Pro 16")
    return access, workflow


@pytest.fixture()
def policy(ceo):
    p = Policy(title="Remote Work Policy", owner_id=ceo.id, status="DRAFT")
    db.session.add(p)
    db.session.commit()
    return p


def _side_effect(result, name):
    return next(se for se in result.side_effects if se.name == name)


# ═════════════════════════════════════════════════════════════════════════
# ACCESS_REQUEST
# ═════════════════════════════════════════════════════════════════════════

class TestAccessRequestDecision:
    def test_approve_assigns_requested_resource(self, access_workflow, ceo, employee, software):
        access, workflow = access_workflow

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        assert result.workflow.approver_id == ceo.id
        assert result.workflow.comments == "Approved via web interface"
        assert result.ok

        access = db.session.get(Access, access.id)
        assert access.status == "APPROVED"
        assert access.approved_at is not None
        assert access.approver_id == ceo.id

        assignment = ResourceAssignment.query.filter_by(
            resource_id=software.id, employee_id=employee.id,
        ).one()
        assert assignment.status == "ACTIVE"
        assert assignment.assigned_by == ceo.id
        assert _side_effect(result, "resource_assignment").ok

    def test_reject_revokes_access_without_assignment(self, access_workflow, software):
        access, workflow = access_workflow

        result = decide_workflow(workflow.id, "reject", comments="Not needed")

        assert result.workflow.status == "REJECTED"
        assert result.workflow.comments == "Not needed"
        access = db.session.get(Access, access.id)
        assert access.status == "REVOKED"
        assert access.revoked_at is not None
        assert access.approved_at is None
        assert ResourceAssignment.query.filter_by(resource_id=software.id).count() == 0
        assert "resource_assignment" not in [se.name for se in result.side_effects]

    def test_approve_hardware_request_creates_and_assigns_resource(self, hardware_workflow, ceo, employee):
        access, workflow = hardware_workflow

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        assert _side_effect(result, "hardware_resource").ok

        access = db.session.get(Access, access.id)
        assert access.status == "APPROVED"
        assert access.resource_id is not None

        resource = db.session.get(Resource, access.resource_id)
        assert resource.name == "MacBook Pro 16"
        assert resource.type == "PHYSICAL"
        assert resource.category == "Hardware"
        assert resource.total_quantity == 1
        assert resource.permission_level == "ADMIN"
        assert resource.custodian_id == ceo.id
        assert resource.owner.email == "system@internal-portal.com"

        assignment = ResourceAssignment.query.filter_by(resource_id=resource.id).one()
        assert assignment.employee_id == employee.id
        assert assignment.status == "ACTIVE"

    def test_blank_hardware_description_skips_fulfilment(self, hardware_workflow):
        access, workflow = hardware_workflow
        access.hardware_request = "   "
        db.session.commit()
        before = Resource.query.count()

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        effect = _side_effect(result, "hardware_resource")
        assert effect.ok is False
        assert effect.error == "Hardware request has no description"
        assert Resource.query.count() == before
        assert db.session.get(Access, access.id).resource_id is None

    def test_reject_hardware_request_creates_nothing(self, hardware_workflow):
        access, workflow = hardware_workflow
        before = Resource.query.count()

        decide_workflow(workflow.id, "reject")

        assert Resource.query.count() == before
        assert db.session.get(Access, access.id).resource_id is None

    def test_optional_assignment_failure_keeps_decision(self, access_workflow, software):
        access, workflow = access_workflow
        software.status = "INACTIVE"
        db.session.commit()

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        assert not result.ok
        failed = _side_effect(result, "resource_assignment")
        assert failed.ok is False
        assert "not active" in failed.error

        assert db.session.get(ApprovalWorkflow, workflow.id).status == "APPROVED"
        assert db.session.get(Access, access.id).status == "APPROVED"
        assert ResourceAssignment.query.count() == 0

    def test_existing_active_assignment_reported_not_raised(self, access_workflow, software, employee, ceo):
        from portal.services.assignment_service import create_assignment
        assert create_assignment(software.id, employee.id, ceo.id).success
        _, workflow = access_workflow

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        assert _side_effect(result, "resource_assignment").ok is False
        assert ResourceAssignment.query.filter_by(resource_id=software.id).count() == 1

    def test_missing_access_row_rolls_back_everything(self, ceo, employee):
        workflow = create_workflow(
            "ACCESS_REQUEST", employee.id, data={"accessRequestId": "does-not-exist"},
        )
        audit_before = AuditLog.query.count()

        with pytest.raises(DependencyWriteError) as exc:
            decide_workflow(workflow.id, "approve")

        assert str(exc.value) == "Failed to update access request"
        db.session.expire_all()
        wf = db.session.get(ApprovalWorkflow, workflow.id)
        assert wf.status == "PENDING"
        assert wf.approver_id is None
        assert AuditLog.query.count() == audit_before

    def test_decision_writes_audit_and_timeline(self, access_workflow, ceo):
        access, workflow = access_workflow

        decide_workflow(workflow.id, "approve")

        wf_audit = AuditLog.query.filter_by(
            entity_type="APPROVAL_WORKFLOW", entity_id=workflow.id, field_changed="status",
        ).one()
        assert (wf_audit.old_value, wf_audit.new_value) == ("PENDING", "APPROVED")
        assert wf_audit.changed_by_id == ceo.id

        access_audit = AuditLog.query.filter_by(entity_type="ACCESS", entity_id=access.id).all()
        assert ("REQUESTED", "APPROVED") in [(a.old_value, a.new_value) for a in access_audit]

        kinds = {
            t.activity_type
            for t in TimelineActivity.query.filter_by(workflow_id=workflow.id).all()
        }
        assert {"STATUS_CHANGED", "WORKFLOW_COMPLETED", "APPROVED"} <= kinds


# ═════════════════════════════════════════════════════════════════════════
# POLICY_UPDATE_REQUEST
# ═════════════════════════════════════════════════════════════════════════

class TestPolicyDecision:
    def test_approve_sets_policy_status_and_review_date(self, policy, employee):
        workflow = create_workflow("POLICY_UPDATE_REQUEST", employee.id, policy_id=policy.id)

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        p = db.session.get(Policy, policy.id)
        assert p.status == "APPROVED"
        assert p.last_review_date is not None
        assert _side_effect(result, "policy_timeline").ok

    def test_reject_sets_policy_rejected(self, policy, employee):
        workflow = create_workflow("POLICY_UPDATE_REQUEST", employee.id, policy_id=policy.id)

        decide_workflow(workflow.id, "reject")

        assert db.session.get(Policy, policy.id).status == "REJECTED"

    def test_policy_write_failure_rolls_back(self, policy, employee):
        workflow = create_workflow("POLICY_UPDATE_REQUEST", employee.id, policy_id=policy.id)
        db.session.execute(text(
            "CREATE TRIGGER policies_locked BEFORE UPDATE ON policies "
            "BEGIN SELECT RAISE(ABORT, 'policies are locked'); END"
        ))
        db.session.commit()

        with pytest.raises(DependencyWriteError, match="Failed to update policy status"):
            decide_workflow(workflow.id, "approve")

        db.session.expire_all()
        assert db.session.get(ApprovalWorkflow, workflow.id).status == "PENDING"
        assert db.session.get(Policy, policy.id).status == "DRAFT"


# ═════════════════════════════════════════════════════════════════════════
# GENERIC TYPES & PRECONDITIONS
# ═════════════════════════════════════════════════════════════════════════

class TestDecisionPreconditions:
    def test_generic_type_only_changes_status(self, ceo, employee):
        workflow = create_workflow("TRAINING_REQUEST", employee.id, data={"course": "Kubernetes"})

        result = decide_workflow(workflow.id, "approve")

        assert result.workflow.status == "APPROVED"
        assert [se.name for se in result.side_effects] == [
            "audit", "status_timeline", "completion_timeline",
        ]

    def test_action_is_case_insensitive(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        assert decide_workflow(workflow.id, "  Reject ").workflow.status == "REJECTED"

    def test_invalid_action(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        with pytest.raises(ValidationError, match='Must be "approve" or "reject"'):
            decide_workflow(workflow.id, "escalate")

    def test_missing_ceo_fails_before_any_write(self, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        audit_before = AuditLog.query.count()

        with pytest.raises(ConfigurationError, match="CEO user not found"):
            decide_workflow(workflow.id, "approve")

        db.session.expire_all()
        assert db.session.get(ApprovalWorkflow, workflow.id).status == "PENDING"
        assert AuditLog.query.count() == audit_before

    def test_unknown_workflow(self, ceo):
        with pytest.raises(NotFoundError):
            decide_workflow("missing-id", "approve")

    def test_second_decision_rejected(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        decide_workflow(workflow.id, "approve")

        with pytest.raises(InvalidStateError, match="Workflow is not pending"):
            decide_workflow(workflow.id, "reject")
        assert db.session.get(ApprovalWorkflow, workflow.id).status == "APPROVED"

    def test_supplied_approver_is_recorded(self, ceo, cto, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        result = decide_workflow(workflow.id, "approve", approver_id=cto.id)
        assert result.workflow.approver_id == cto.id

    def test_unknown_supplied_approver_falls_back_to_default(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        result = decide_workflow(workflow.id, "approve", approver_id="ghost")
        assert result.workflow.approver_id == ceo.id

    def test_concurrent_decision_conflicts(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        wf = db.session.get(ApprovalWorkflow, workflow.id)
        assert wf.version == 1
        # Another writer bumps the row behind this session's back.
        db.session.execute(
            text("UPDATE approval_workflows SET version = version + 1 WHERE id = :id"),
            {"id": wf.id},
        )

        with pytest.raises(ConflictError):
            decide_workflow(wf.id, "approve")

        db.session.expire_all()
        assert db.session.get(ApprovalWorkflow, wf.id).status == "PENDING"

    def test_version_increments_on_decision(self, ceo, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        decide_workflow(workflow.id, "approve")
        db.session.expire_all()
        assert db.session.get(ApprovalWorkflow, workflow.id).version == 2


# ═════════════════════════════════════════════════════════════════════════
# INTAKE
# ═════════════════════════════════════════════════════════════════════════

class TestCreateWorkflow:
    def test_unknown_type(self, employee):
        with pytest.raises(ValidationError):
            create_workflow("WISHLIST", employee.id)

    def test_referenced_records_must_exist(self, employee):
        with pytest.raises(NotFoundError):
            create_workflow("POLICY_UPDATE_REQUEST", employee.id, policy_id="nope")

    def test_started_timeline_entry(self, employee):
        workflow = create_workflow("BUDGET_REQUEST", employee.id, data={"amount": 1200})
        entry = TimelineActivity.query.filter_by(
            workflow_id=workflow.id, activity_type="WORKFLOW_STARTED",
        ).one()
        assert entry.meta["data"] == {"amount": 1200}


# ═════════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════════

class TestApprovalAPI:
    def test_requires_login(self, client):
        res = client.put("/api/v1/approvals/abc", json={"action": "approve"})
        assert res.status_code == 401

    def test_approve_via_api(self, client, auth_headers, access_workflow, ceo, cto):
        _, workflow = access_workflow
        res = client.put(
            f"/api/v1/approvals/{workflow.id}",
            json={"action": "approve", "comments": "ok"},
            headers=auth_headers(cto),
        )
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "APPROVED"
        assert data["approver_id"] == ceo.id
        assert data["comments"] == "ok"
        names = [se["name"] for se in data["side_effects"]]
        assert "resource_assignment" in names

    def test_invalid_action_400(self, client, auth_headers, access_workflow, cto):
        _, workflow = access_workflow
        res = client.put(
            f"/api/v1/approvals/{workflow.id}", json={"action": "maybe"}, headers=auth_headers(cto),
        )
        assert res.status_code == 400
        assert res.get_json()["error"] == 'Invalid action. Must be "approve" or "reject"'

    def test_not_pending_400(self, client, auth_headers, access_workflow, cto):
        _, workflow = access_workflow
        decide_workflow(workflow.id, "reject")
        res = client.put(
            f"/api/v1/approvals/{workflow.id}", json={"action": "approve"}, headers=auth_headers(cto),
        )
        assert res.status_code == 400
        assert res.get_json()["error"] == "Workflow is not pending"

    def test_unknown_workflow_404(self, client, auth_headers, ceo):
        res = client.put("/api/v1/approvals/nope", json={"action": "approve"}, headers=auth_headers(ceo))
        assert res.status_code == 404

    def test_missing_access_500(self, client, auth_headers, ceo, employee):
        workflow = create_workflow("ACCESS_REQUEST", employee.id, data={"accessRequestId": "gone"})
        res = client.put(
            f"/api/v1/approvals/{workflow.id}", json={"action": "approve"}, headers=auth_headers(ceo),
        )
        assert res.status_code == 500
        body = res.get_json()
        assert body["error"] == "Failed to update access request"
        assert "details" in body

    def test_no_ceo_500(self, client, auth_headers, cto, employee):
        workflow = create_workflow("TRAVEL_REQUEST", employee.id)
        res = client.put(
            f"/api/v1/approvals/{workflow.id}", json={"action": "approve"}, headers=auth_headers(cto),
        )
        assert res.status_code == 500
        assert res.get_json()["error"] == "CEO user not found"

    def test_list_envelope(self, client, auth_headers, ceo, employee):
        for _ in range(3):
            create_workflow("TRAVEL_REQUEST", employee.id)
        res = client.get("/api/v1/approvals?limit=2", headers=auth_headers(ceo))
        assert res.status_code == 200
        data = res.get_json()
        assert len(data["items"]) == 2
        assert data["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalItems": 3,
            "itemsPerPage": 2,
            "hasNextPage": True,
            "hasPreviousPage": False,
        }

    def test_list_filters_by_status(self, client, auth_headers, ceo, employee):
        w1 = create_workflow("TRAVEL_REQUEST", employee.id)
        create_workflow("TRAVEL_REQUEST", employee.id)
        decide_workflow(w1.id, "approve")
        res = client.get("/api/v1/workflows?status=APPROVED", headers=auth_headers(ceo))
        items = res.get_json()["items"]
        assert [w["id"] for w in items] == [w1.id]

    def test_create_workflow_defaults_requester(self, client, auth_headers, employee):
        res = client.post(
            "/api/v1/workflows",
            json={"type": "TRAINING_REQUEST", "data": {"course": "Go"}},
            headers=auth_headers(employee),
        )
        assert res.status_code == 201
        data = res.get_json()
        assert data["requester_id"] == employee.id
        assert data["status"] == "PENDING"

    def test_pending_and_stats(self, client, auth_headers, ceo, cto, employee):
        create_workflow("TRAVEL_REQUEST", employee.id, approver_id=cto.id)
        w2 = create_workflow("TRAVEL_REQUEST", employee.id, approver_id=cto.id)
        decide_workflow(w2.id, "reject", approver_id=cto.id)

        res = client.get("/api/v1/workflows/pending", headers=auth_headers(cto))
        assert res.status_code == 200
        assert len(res.get_json()) == 1

        res = client.get("/api/v1/workflows/stats", headers=auth_headers(employee))
        stats = res.get_json()
        assert stats["requested"] == {"PENDING": 1, "APPROVED": 0, "REJECTED": 1}
        assert stats["pendingApprovals"] == 0
