"""flowform_initial_schema

Create auth, dynamic field/table and workflow tables.

Revision ID: 0001_flowform
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001_flowform"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _archived():
    return sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.false())


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    # ── Auth ─────────────────────────────────────────────────────────
    if "auth_accounts" not in existing_tables:
        op.create_table(
            "auth_accounts",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=False),
            sa.Column("display_name", sa.String(length=200), nullable=True),
            sa.Column("is_disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("last_sign_in_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "auth_sessions" not in existing_tables:
        op.create_table(
            "auth_sessions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("account_id", sa.String(length=36), nullable=False),
            sa.Column("token_hash", sa.String(length=64), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["account_id"], ["auth_accounts.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_auth_sessions_token_hash", "auth_sessions", ["token_hash"])

    if "password_reset_tokens" not in existing_tables:
        op.create_table(
            "password_reset_tokens",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("account_id", sa.String(length=36), nullable=False),
            sa.Column("token_hash", sa.String(length=64), nullable=False),
            sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["account_id"], ["auth_accounts.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("token_hash"),
        )

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("username", sa.String(length=100), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="StandardUser"),
            _archived(),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"])
        op.create_index("ix_users_is_archived", "users", ["is_archived"])

    # ── Dynamic fields / tables ──────────────────────────────────────
    if "dynamic_fields" not in existing_tables:
        op.create_table(
            "dynamic_fields",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("label", sa.String(length=200), nullable=False),
            sa.Column("field_type", sa.String(length=30), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("validation_rules", sa.JSON(), nullable=True),
            sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("default_value", sa.JSON(), nullable=True),
            sa.Column("options", sa.JSON(), nullable=True),
            _archived(),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )
        op.create_index("ix_dynamic_fields_is_archived", "dynamic_fields", ["is_archived"])

    if "dynamic_tables" not in existing_tables:
        op.create_table(
            "dynamic_tables",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("label", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("field_ids", sa.JSON(), nullable=False),
            _archived(),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
        )
        op.create_index("ix_dynamic_tables_is_archived", "dynamic_tables", ["is_archived"])

    if "dynamic_table_entries" not in existing_tables:
        op.create_table(
            "dynamic_table_entries",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("table_id", sa.String(length=36), nullable=False),
            sa.Column("data", sa.JSON(), nullable=False),
            _archived(),
            *_timestamps(),
            sa.ForeignKeyConstraint(["table_id"], ["dynamic_tables.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_dynamic_table_entries_table_id", "dynamic_table_entries", ["table_id"])
        op.create_index("ix_dynamic_table_entries_is_archived", "dynamic_table_entries", ["is_archived"])

    # ── Workflow ─────────────────────────────────────────────────────
    if "task_templates" not in existing_tables:
        op.create_table(
            "task_templates",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=100), nullable=True),
            sa.Column("assigned_role_type", sa.String(length=50), nullable=True),
            sa.Column("due_date_offset_days", sa.Integer(), nullable=True),
            sa.Column("dynamic_table_id", sa.String(length=36), nullable=True),
            _archived(),
            *_timestamps(),
            sa.ForeignKeyConstraint(["dynamic_table_id"], ["dynamic_tables.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_templates_is_archived", "task_templates", ["is_archived"])

    if "workflow_templates" not in existing_tables:
        op.create_table(
            "workflow_templates",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("task_template_ids", sa.JSON(), nullable=False),
            _archived(),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_workflow_templates_is_archived", "workflow_templates", ["is_archived"])

    if "workflow_instances" not in existing_tables:
        op.create_table(
            "workflow_instances",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("workflow_template_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
            sa.Column("started_by_user_id", sa.String(length=36), nullable=True),
            sa.Column("start_datetime", sa.DateTime(timezone=True), nullable=False),
            sa.Column("finish_datetime", sa.DateTime(timezone=True), nullable=True),
            sa.Column("associated_data", sa.JSON(), nullable=True),
            _archived(),
            *_timestamps(),
            sa.ForeignKeyConstraint(["workflow_template_id"], ["workflow_templates.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_workflow_instances_workflow_template_id", "workflow_instances",
                        ["workflow_template_id"])
        op.create_index("ix_workflow_instances_status", "workflow_instances", ["status"])
        op.create_index("ix_workflow_instances_is_archived", "workflow_instances", ["is_archived"])

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("task_template_id", sa.String(length=36), nullable=False),
            sa.Column("workflow_instance_id", sa.String(length=36), nullable=False),
            sa.Column("assigned_to_user_id", sa.String(length=36), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("start_datetime", sa.DateTime(timezone=True), nullable=True),
            sa.Column("finish_datetime", sa.DateTime(timezone=True), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("dynamic_table_id", sa.String(length=36), nullable=True),
            sa.Column("dynamic_table_data", sa.JSON(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["task_template_id"], ["task_templates.id"]),
            sa.ForeignKeyConstraint(["workflow_instance_id"], ["workflow_instances.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tasks_workflow_instance_id", "tasks", ["workflow_instance_id"])
        op.create_index("ix_tasks_assigned_to_user_id", "tasks", ["assigned_to_user_id"])
        op.create_index("ix_tasks_status", "tasks", ["status"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "tasks",
        "workflow_instances",
        "workflow_templates",
        "task_templates",
        "dynamic_table_entries",
        "dynamic_tables",
        "dynamic_fields",
        "users",
        "password_reset_tokens",
        "auth_sessions",
        "auth_accounts",
    ):
        if table in existing_tables:
            op.drop_table(table)
