"""initial_spec_builder_schema

Create the dashboard specification schema: projects (with the enhancement
version tree), requirement documents, tabs, filters, tasks, change history
and users.

Revision ID: 0001a2b3c4d5
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001a2b3c4d5"
down_revision = None
branch_labels = None
depends_on = None


def _project_fk():
    return sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE")


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("audience", sa.Text(), nullable=False, server_default=""),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("version_number", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("parent_project_id", sa.Integer(), nullable=True),
            sa.Column("has_appendix_tab", sa.Boolean(), nullable=True),
            sa.Column("has_metric_logic_tab", sa.Boolean(), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("updated_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["parent_project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_status", "projects", ["status"])
        op.create_index("ix_projects_parent_project_id", "projects", ["parent_project_id"])

    if "functional_requirements" not in existing_tables:
        op.create_table(
            "functional_requirements",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("data_sources", sa.JSON(), nullable=False),
            sa.Column("metrics", sa.JSON(), nullable=False),
            sa.Column("filter_carryover", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id"),
        )

    if "design_requirements" not in existing_tables:
        op.create_table(
            "design_requirements",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("dashboard_size", sa.String(length=100), nullable=False, server_default=""),
            sa.Column("color_palette", sa.JSON(), nullable=False),
            sa.Column("fonts", sa.JSON(), nullable=False),
            sa.Column("logo_url", sa.String(length=500), nullable=False, server_default=""),
            sa.Column("logo_location", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("additional_requirements", sa.Text(), nullable=False, server_default=""),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id"),
        )

    if "dashboard_tabs" not in existing_tables:
        op.create_table(
            "dashboard_tabs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_dashboard_tabs_project_id", "dashboard_tabs", ["project_id"])
        op.create_index(
            "ix_dashboard_tabs_project_order", "dashboard_tabs", ["project_id", "order_index"],
        )

    if "filters" not in existing_tables:
        op.create_table(
            "filters",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("tab_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("data_source", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("multi_select", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("default_value", sa.String(length=255), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.ForeignKeyConstraint(["tab_id"], ["dashboard_tabs.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_filters_project_id", "filters", ["project_id"])
        op.create_index("ix_filters_tab_id", "filters", ["tab_id"])

    if "additional_requirements" not in existing_tables:
        op.create_table(
            "additional_requirements",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("category", sa.String(length=20), nullable=False, server_default="functional"),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_additional_requirements_project_id", "additional_requirements", ["project_id"],
        )

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
        op.create_index("ix_tasks_project_order", "tasks", ["project_id", "order_index"])

    if "change_history" not in existing_tables:
        op.create_table(
            "change_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("change_type", sa.String(length=20), nullable=False),
            sa.Column("change_description", sa.Text(), nullable=False, server_default=""),
            sa.Column("snapshot_json", sa.Text(), nullable=True),
            sa.Column("changed_by", sa.String(length=64), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            _project_fk(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_change_history_project", "change_history", ["project_id"])
        op.create_index("idx_change_history_ts", "change_history", ["timestamp"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "change_history", "tasks", "additional_requirements", "filters",
        "dashboard_tabs", "design_requirements", "functional_requirements",
        "projects", "users",
    ):
        if table in existing_tables:
            op.drop_table(table)
