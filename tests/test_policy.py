"""
Policy & document tests.

Tests cover:
  - create_policy: validation, statuses only a decision may set, owner default,
    audit + timeline rows
  - REVIEW policies open a POLICY_UPDATE_REQUEST for the default approver;
    a failure there never blocks the policy
  - owner-only visibility for roles other than CEO / CTO
  - /policies and /documents endpoints
  - policy approval end to end over HTTP
"""
import pytest

from portal.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from portal.models.audit import AuditLog
from portal.models.policy import Document, Policy
from portal.models.timeline import TimelineActivity
from portal.models.workflow import ApprovalWorkflow
from portal.services.policy_service import create_document, create_policy, get_policy


# ═══════════════════════════════════════════════════════════════
# BLOCK 1: Policy service
# ═══════════════════════════════════════════════════════════════

class TestCreatePolicy:
    def test_draft_defaults(self, ceo, employee):
        policy, workflow_id = create_policy({"title": "  Remote Work  ", "category": "HR"}, employee.id)

        assert policy.title == "Remote Work"
        assert policy.status == "DRAFT"
        assert policy.owner_id == employee.id
        assert workflow_id is None
        assert ApprovalWorkflow.query.count() == 0

        audit = AuditLog.query.filter_by(entity_type="POLICY", entity_id=policy.id).one()
        assert audit.field_changed == "created"
        assert audit.new_value == "Remote Work"
        assert TimelineActivity.query.filter_by(
            policy_id=policy.id, activity_type="CREATED",
        ).count() == 1

    @pytest.mark.parametrize("status", ["APPROVED", "REJECTED", "PUBLISHED", "approved"])
    def test_decision_statuses_rejected(self, employee, status):
        with pytest.raises(ValidationError, match="Policies must start as DRAFT, IN_PROGRESS, or REVIEW"):
            create_policy({"title": "Security", "status": status}, employee.id)
        assert Policy.query.count() == 0

    def test_validation_details(self, employee):
        with pytest.raises(ValidationError) as exc_info:
            create_policy({"status": "BOGUS"}, employee.id)
        assert set(exc_info.value.details) == {"title", "status"}

    def test_unknown_owner(self, employee):
        with pytest.raises(NotFoundError):
            create_policy({"title": "Travel", "ownerId": "ghost"}, employee.id)

    def test_review_opens_workflow_for_ceo(self, ceo, employee):
        policy, workflow_id = create_policy({"title": "Expenses", "status": "REVIEW"}, employee.id)

        workflow = ApprovalWorkflow.query.filter_by(id=workflow_id).one()
        assert workflow.type == "POLICY_UPDATE_REQUEST"
        assert workflow.status == "PENDING"
        assert workflow.policy_id == policy.id
        assert workflow.requester_id == employee.id
        assert workflow.approver_id == ceo.id
        assert TimelineActivity.query.filter_by(
            policy_id=policy.id, activity_type="WORKFLOW_STARTED",
        ).count() == 1

    def test_review_without_ceo_still_creates_policy(self, employee):
        policy, workflow_id = create_policy({"title": "Expenses", "status": "REVIEW"}, employee.id)

        assert workflow_id is None
        assert Policy.query.filter_by(id=policy.id).one().status == "REVIEW"
        assert ApprovalWorkflow.query.count() == 0


class TestPolicyVisibility:
    def test_owner_sees_own(self, employee):
        policy, _ = create_policy({"title": "Mine"}, employee.id)
        assert get_policy(policy.id, employee).id == policy.id

    def test_other_employee_forbidden(self, employee, make_employee):
        policy, _ = create_policy({"title": "Mine"}, employee.id)
        with pytest.raises(AuthorizationError):
            get_policy(policy.id, make_employee())

    def test_cto_sees_all(self, employee, cto):
        policy, _ = create_policy({"title": "Mine"}, employee.id)
        assert get_policy(policy.id, cto).id == policy.id


class TestCreateDocument:
    def test_defaults_and_trail(self, employee):
        document = create_document({"title": "Handbook", "category": "HR"}, employee.id)

        assert document.status == "DRAFT"
        assert document.owner_id == employee.id
        assert AuditLog.query.filter_by(entity_type="DOCUMENT", entity_id=document.id).count() == 1
        assert TimelineActivity.query.filter_by(
            document_id=document.id, activity_type="CREATED",
        ).count() == 1

    def test_invalid_status(self, employee):
        with pytest.raises(ValidationError):
            create_document({"title": "Handbook", "status": "SHREDDED"}, employee.id)
        assert Document.query.count() == 0


# ═══════════════════════════════════════════════════════════════
# BLOCK 2: API
# ═══════════════════════════════════════════════════════════════

class TestPolicyAPI:
    def test_requires_login(self, client):
        assert client.get("/api/v1/policies").status_code == 401
        assert client.post("/api/v1/policies", json={"title": "x"}).status_code == 401

    def test_create_and_get(self, client, auth_headers, employee):
        res = client.post(
            "/api/v1/policies", json={"title": "Remote Work", "category": "HR"}, headers=auth_headers(employee),
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["owner_id"] == employee.id
        assert body["status"] == "DRAFT"
        assert body["review_workflow_id"] is None

        res = client.get(f"/api/v1/policies/{body['id']}", headers=auth_headers(employee))
        assert res.status_code == 200
        assert res.get_json()["title"] == "Remote Work"

    def test_protected_status_400(self, client, auth_headers, employee):
        res = client.post(
            "/api/v1/policies", json={"title": "x", "status": "PUBLISHED"}, headers=auth_headers(employee),
        )
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"]["allowedStatuses"] == ["DRAFT", "IN_PROGRESS", "REVIEW"]

    def test_list_is_owner_scoped(self, client, auth_headers, employee, make_employee, ceo):
        other = make_employee()
        create_policy({"title": "Mine"}, employee.id)
        create_policy({"title": "Theirs"}, other.id)

        mine = client.get("/api/v1/policies", headers=auth_headers(employee)).get_json()
        assert [p["title"] for p in mine["items"]] == ["Mine"]

        everything = client.get("/api/v1/policies", headers=auth_headers(ceo)).get_json()
        assert everything["pagination"]["totalItems"] == 2

    def test_list_filters(self, client, auth_headers, ceo):
        create_policy({"title": "Travel Policy", "category": "Finance"}, ceo.id)
        create_policy({"title": "Leave Policy", "category": "HR", "status": "IN_PROGRESS"}, ceo.id)
        create_policy({"title": "Travel Guide", "category": "HR"}, ceo.id)

        res = client.get("/api/v1/policies?search=travel&category=HR", headers=auth_headers(ceo))
        assert [p["title"] for p in res.get_json()["items"]] == ["Travel Guide"]

        res = client.get("/api/v1/policies?status=in_progress", headers=auth_headers(ceo))
        assert [p["title"] for p in res.get_json()["items"]] == ["Leave Policy"]

    def test_other_owner_403(self, client, auth_headers, employee, make_employee):
        policy, _ = create_policy({"title": "Theirs"}, make_employee().id)
        res = client.get(f"/api/v1/policies/{policy.id}", headers=auth_headers(employee))
        assert res.status_code == 403

    def test_unknown_404(self, client, auth_headers, employee):
        assert client.get("/api/v1/policies/missing", headers=auth_headers(employee)).status_code == 404


class TestDocumentAPI:
    def test_create_list_get(self, client, auth_headers, employee):
        res = client.post(
            "/api/v1/documents", json={"title": "Handbook", "category": "HR"}, headers=auth_headers(employee),
        )
        assert res.status_code == 201
        did = res.get_json()["id"]

        listing = client.get("/api/v1/documents?category=HR", headers=auth_headers(employee)).get_json()
        assert [d["id"] for d in listing["items"]] == [did]

        res = client.get(f"/api/v1/documents/{did}", headers=auth_headers(employee))
        assert res.get_json()["title"] == "Handbook"

    def test_missing_title_400(self, client, auth_headers, employee):
        res = client.post("/api/v1/documents", json={}, headers=auth_headers(employee))
        assert res.status_code == 400
        assert "title" in res.get_json()["details"]

    def test_unknown_404(self, client, auth_headers, employee):
        assert client.get("/api/v1/documents/missing", headers=auth_headers(employee)).status_code == 404


# ═══════════════════════════════════════════════════════════════
# BLOCK 3: End to end
# ═══════════════════════════════════════════════════════════════

class TestPolicyApprovalFlow:
    def test_review_policy_approved_over_http(self, client, auth_headers, ceo, employee):
        res = client.post(
            "/api/v1/policies", json={"title": "Data Retention", "status": "REVIEW"},
            headers=auth_headers(employee),
        )
        assert res.status_code == 201
        pid = res.get_json()["id"]
        wid = res.get_json()["review_workflow_id"]
        assert wid

        pending = client.get("/api/v1/workflows/pending", headers=auth_headers(ceo)).get_json()
        assert wid in [w["id"] for w in pending]

        res = client.put(f"/api/v1/approvals/{wid}", json={"action": "approve"}, headers=auth_headers(ceo))
        assert res.status_code == 200
        assert res.get_json()["status"] == "APPROVED"

        policy = client.get(f"/api/v1/policies/{pid}", headers=auth_headers(employee)).get_json()
        assert policy["status"] == "APPROVED"
        assert policy["last_review_date"] is not None

        feed = client.get(f"/api/v1/timeline/POLICY/{pid}", headers=auth_headers(employee)).get_json()
        assert {a["activity_type"] for a in feed["items"]} >= {
            "CREATED", "WORKFLOW_STARTED", "STATUS_CHANGED",
        }

    def test_review_policy_rejected_over_http(self, client, auth_headers, ceo, employee):
        res = client.post(
            "/api/v1/policies", json={"title": "BYOD", "status": "REVIEW"}, headers=auth_headers(employee),
        )
        pid, wid = res.get_json()["id"], res.get_json()["review_workflow_id"]

        client.put(f"/api/v1/approvals/{wid}", json={"action": "reject"}, headers=auth_headers(ceo))

        policy = client.get(f"/api/v1/policies/{pid}", headers=auth_headers(employee)).get_json()
        assert policy["status"] == "REJECTED"
