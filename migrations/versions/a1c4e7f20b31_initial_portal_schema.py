"""initial_portal_schema

Create employees, inventory (resources / items / assignments), access
requests, policies, documents, approval workflows, audit logs and timeline
activities.

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1c4e7f20b31"
down_revision = None
branch_labels = None
depends_on = None


def _uuid_pk():
    return sa.Column("id", sa.String(length=36), nullable=False)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "employees" not in existing_tables:
        op.create_table(
            "employees",
            _uuid_pk(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=True),
            sa.Column("role", sa.String(length=40), nullable=False),
            sa.Column("department", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("manager_id", sa.String(length=36), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["manager_id"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )
        op.create_index("idx_employee_role_status", "employees", ["role", "status"])
        op.create_index("ix_employees_manager_id", "employees", ["manager_id"])

    if "resources" not in existing_tables:
        op.create_table(
            "resources",
            _uuid_pk(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("owner_id", sa.String(length=36), nullable=True),
            sa.Column("custodian_id", sa.String(length=36), nullable=True),
            sa.Column("total_quantity", sa.Integer(), nullable=False),
            sa.Column("permission_level", sa.String(length=10), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["owner_id"], ["employees.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["custodian_id"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_resources_owner_id", "resources", ["owner_id"])

    if "resource_items" not in existing_tables:
        op.create_table(
            "resource_items",
            _uuid_pk(),
            sa.Column("resource_id", sa.String(length=36), nullable=False),
            sa.Column("serial_number", sa.String(length=100), nullable=True),
            sa.Column("hostname", sa.String(length=100), nullable=True),
            sa.Column("license_key", sa.String(length=200), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["resource_id"], ["resources.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_resource_items_resource_id", "resource_items", ["resource_id"])

    if "resource_assignments" not in existing_tables:
        op.create_table(
            "resource_assignments",
            _uuid_pk(),
            sa.Column("resource_id", sa.String(length=36), nullable=False),
            sa.Column("employee_id", sa.String(length=36), nullable=False),
            sa.Column("item_id", sa.String(length=36), nullable=True),
            sa.Column("quantity_assigned", sa.Integer(), nullable=False),
            sa.Column("assigned_by", sa.String(length=36), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("assigned_at", sa.DateTime(), nullable=True),
            sa.Column("returned_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["resource_id"], ["resources.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["item_id"], ["resource_items.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["assigned_by"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "idx_assignment_employee_status", "resource_assignments", ["employee_id", "status"],
        )
        op.create_index(
            "idx_assignment_resource_status", "resource_assignments", ["resource_id", "status"],
        )

    if "access_requests" not in existing_tables:
        op.create_table(
            "access_requests",
            _uuid_pk(),
            sa.Column("employee_id", sa.String(length=36), nullable=False),
            sa.Column("resource_id", sa.String(length=36), nullable=True),
            sa.Column("hardware_request", sa.Text(), nullable=True),
            sa.Column("permission_level", sa.String(length=10), nullable=False),
            sa.Column("justification", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("approver_id", sa.String(length=36), nullable=True),
            sa.Column("requested_at", sa.DateTime(), nullable=True),
            sa.Column("approved_at", sa.DateTime(), nullable=True),
            sa.Column("revoked_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["resource_id"], ["resources.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["approver_id"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_access_requests_employee_id", "access_requests", ["employee_id"])

    for table in ("policies", "documents"):
        if table in existing_tables:
            continue
        extra = [sa.Column("last_review_date", sa.DateTime(), nullable=True)] if table == "policies" else []
        op.create_table(
            table,
            _uuid_pk(),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("owner_id", sa.String(length=36), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            *extra,
            *_timestamps(),
            sa.ForeignKeyConstraint(["owner_id"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_owner_id", table, ["owner_id"])

    if "approval_workflows" not in existing_tables:
        op.create_table(
            "approval_workflows",
            _uuid_pk(),
            sa.Column("type", sa.String(length=40), nullable=False),
            sa.Column("requester_id", sa.String(length=36), nullable=False),
            sa.Column("approver_id", sa.String(length=36), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("data", sa.JSON(), nullable=True),
            sa.Column("policy_id", sa.String(length=36), nullable=True),
            sa.Column("document_id", sa.String(length=36), nullable=True),
            sa.Column("resource_id", sa.String(length=36), nullable=True),
            sa.Column("comments", sa.Text(), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["requester_id"], ["employees.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["approver_id"], ["employees.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["policy_id"], ["policies.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["document_id"], ["documents.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["resource_id"], ["resources.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_workflow_status", "approval_workflows", ["status"])
        op.create_index("idx_workflow_approver", "approval_workflows", ["approver_id", "status"])

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("changed_by_id", sa.String(length=36), nullable=True),
            sa.Column("field_changed", sa.String(length=100), nullable=False),
            sa.Column("old_value", sa.Text(), nullable=True),
            sa.Column("new_value", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["changed_by_id"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_actor", "audit_logs", ["changed_by_id"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])

    if "timeline_activities" not in existing_tables:
        op.create_table(
            "timeline_activities",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("activity_type", sa.String(length=30), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("performed_by", sa.String(length=36), nullable=True),
            sa.Column("policy_id", sa.String(length=36), nullable=True),
            sa.Column("document_id", sa.String(length=36), nullable=True),
            sa.Column("resource_id", sa.String(length=36), nullable=True),
            sa.Column("workflow_id", sa.String(length=36), nullable=True),
            sa.Column("employee_id", sa.String(length=36), nullable=True),
            sa.Column("assignment_id", sa.String(length=36), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["performed_by"], ["employees.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_timeline_entity", "timeline_activities", ["entity_type", "entity_id"])
        op.create_index("idx_timeline_ts", "timeline_activities", ["timestamp"])
        op.create_index("ix_timeline_activities_resource_id", "timeline_activities", ["resource_id"])
        op.create_index("ix_timeline_activities_employee_id", "timeline_activities", ["employee_id"])


def downgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    for table in (
        "timeline_activities",
        "audit_logs",
        "approval_workflows",
        "documents",
        "policies",
        "access_requests",
        "resource_assignments",
        "resource_items",
        "resources",
        "employees",
    ):
        if table in existing_tables:
            op.drop_table(table)
