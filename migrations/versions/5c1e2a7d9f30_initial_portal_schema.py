"""initial_portal_schema

Create global settings, projects, timeline templates / items and
testing cards.

Revision ID: 5c1e2a7d9f30
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5c1e2a7d9f30"
down_revision = None
branch_labels = None
depends_on = None

_FEATURE_COLUMNS = (
    "chat_enabled",
    "files_enabled",
    "timeline_enabled",
    "testing_enabled",
    "response_bot_enabled",
    "obeya_enabled",
    "wiki_enabled",
)


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "global_settings" not in existing_tables:
        op.create_table(
            "global_settings",
            sa.Column("id", sa.Integer(), nullable=False),
            *[
                sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true())
                for name in _FEATURE_COLUMNS
            ],
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
            sa.Column("client_name", sa.String(length=200), nullable=True),
            sa.Column("client_email", sa.String(length=255), nullable=True),
            sa.Column("client_first_name", sa.String(length=100), nullable=True),
            sa.Column("client_last_name", sa.String(length=100), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("accent_color", sa.String(length=20), nullable=True),
            sa.Column("value", sa.Float(), nullable=False, server_default="0"),
            sa.Column("logo_url", sa.String(length=500), nullable=True),
            sa.Column("features_enabled", sa.JSON(), nullable=False),
            sa.Column("project_manager_ids", sa.JSON(), nullable=False),
            sa.Column("team_member_ids", sa.JSON(), nullable=False),
            sa.Column("additional_client_ids", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_client_email", "projects", ["client_email"])

    if "timeline_templates" not in existing_tables:
        op.create_table(
            "timeline_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=100), nullable=False, server_default="General"),
            sa.Column("color", sa.String(length=20), nullable=False, server_default="#3b82f6"),
            sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )

    if "timeline_template_items" not in existing_tables:
        op.create_table(
            "timeline_template_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("template_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("default_offset_days", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["template_id"], ["timeline_templates.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["parent_id"], ["timeline_template_items.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_timeline_template_items_template_id", "timeline_template_items", ["template_id"],
        )

    if "timeline_items" not in existing_tables:
        op.create_table(
            "timeline_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("assigned_to", sa.String(length=100), nullable=True),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["parent_id"], ["timeline_items.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_timeline_items_project_id", "timeline_items", ["project_id"])

    if "testing_cards" not in existing_tables:
        op.create_table(
            "testing_cards",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_testing_cards_project_id", "testing_cards", ["project_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table, index in (
        ("testing_cards", "ix_testing_cards_project_id"),
        ("timeline_items", "ix_timeline_items_project_id"),
        ("timeline_template_items", "ix_timeline_template_items_template_id"),
        ("timeline_templates", None),
        ("projects", "ix_projects_client_email"),
        ("global_settings", None),
    ):
        if table in existing_tables:
            if index:
                op.drop_index(index, table_name=table)
            op.drop_table(table)
