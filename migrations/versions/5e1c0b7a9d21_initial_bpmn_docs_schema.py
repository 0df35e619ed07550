"""initial_bpmn_docs_schema

Creates the process documentation tables:
  - users                 — directory rows used for "created by" display names
  - bpmn_nodes            — folder / file tree, one row per node
  - bpmn_archived_nodes   — snapshot of files an administrator archived
  - kpis                  — KPI catalogue with reverse process references
  - standards             — reference standards (ISO, ITIL, ...)

Tables created conditionally (IF NOT EXISTS semantics) so the revision also
applies cleanly to databases that already received them via db.create_all().

Revision ID: 5e1c0b7a9d21
Revises:
Create Date: 2026-10-18 09:12:40.118302
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5e1c0b7a9d21'
down_revision = None
branch_labels = None
depends_on = None


def _node_columns():
    return [
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("owner_user_id", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("type", sa.String(length=10), nullable=False, comment="folder | file"),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.String(length=36), nullable=True, comment="NULL for root nodes"),
        sa.Column("children", sa.JSON(), nullable=True, comment="Child node ids (folders only)"),
        sa.Column("content", sa.Text(), nullable=True, comment="BPMN XML (files only)"),
        sa.Column("process_metadata", sa.JSON(), nullable=True),
        sa.Column("advanced_details", sa.JSON(), nullable=True),
        sa.Column("sign_off_data", sa.JSON(), nullable=True),
        sa.Column("history_data", sa.JSON(), nullable=True),
        sa.Column("trigger_data", sa.JSON(), nullable=True),
        sa.Column("selected_standards", sa.JSON(), nullable=True),
        sa.Column("selected_kpis", sa.JSON(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Users ─────────────────────────────────────────────────────────────
    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False, server_default=""),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="user",
                      comment="user | admin | supervisor"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    # ── BPMN nodes ────────────────────────────────────────────────────────
    if "bpmn_nodes" not in existing:
        op.create_table("bpmn_nodes", *_node_columns())
        op.create_index("ix_bpmn_nodes_user_id", "bpmn_nodes", ["user_id"])
        op.create_index("ix_bpmn_nodes_parent_id", "bpmn_nodes", ["parent_id"])
        op.create_index("ix_bpmn_nodes_created_at", "bpmn_nodes", ["created_at"])
        op.create_index("ix_bpmn_nodes_updated_at", "bpmn_nodes", ["updated_at"])
        op.create_index("ix_bpmn_nodes_user_parent", "bpmn_nodes", ["user_id", "parent_id"])
        op.create_index("ix_bpmn_nodes_name", "bpmn_nodes", ["name"])

    if "bpmn_archived_nodes" not in existing:
        op.create_table("bpmn_archived_nodes", *_node_columns())
        op.create_index("ix_bpmn_archived_nodes_user_id", "bpmn_archived_nodes", ["user_id"])
        op.create_index("ix_bpmn_archived_nodes_parent_id", "bpmn_archived_nodes", ["parent_id"])
        op.create_index("ix_bpmn_archived_nodes_created_at", "bpmn_archived_nodes", ["created_at"])
        op.create_index("ix_bpmn_archived_nodes_updated_at", "bpmn_archived_nodes", ["updated_at"])

    # ── KPIs ──────────────────────────────────────────────────────────────
    if "kpis" not in existing:
        op.create_table(
            "kpis",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("type_of_kpi", sa.String(length=100), nullable=False),
            sa.Column("kpi", sa.String(length=500), nullable=False),
            sa.Column("formula", sa.Text(), nullable=True),
            sa.Column("kpi_direction", sa.String(length=10), nullable=False,
                      comment="up | down | neutral"),
            sa.Column("target_value", sa.String(length=100), nullable=False),
            sa.Column("frequency", sa.String(length=50), nullable=False),
            sa.Column("receiver", sa.String(length=200), nullable=False),
            sa.Column("source", sa.String(length=200), nullable=False),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("mode", sa.String(length=50), nullable=False),
            sa.Column("tag", sa.String(length=100), nullable=False),
            sa.Column("category", sa.String(length=100), nullable=False),
            sa.Column("parent_id", sa.String(length=64), nullable=True),
            sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("order", sa.Float(), nullable=False),
            sa.Column("associated_bpmn_processes", sa.JSON(), nullable=False),
            sa.Column("created_by", sa.String(length=200), nullable=False, server_default="system"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_kpis_type", "kpis", ["type_of_kpi"])
        op.create_index("ix_kpis_category", "kpis", ["category"])
        op.create_index("ix_kpis_active", "kpis", ["active"])
        op.create_index("ix_kpis_parent", "kpis", ["parent_id"])

    # ── Standards ─────────────────────────────────────────────────────────
    if "standards" not in existing:
        op.create_table(
            "standards",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("code", sa.String(length=50), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("category", sa.String(length=100), nullable=False, server_default="General"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name"),
            sa.UniqueConstraint("code"),
        )
        op.create_index("ix_standards_category", "standards", ["category"])
        op.create_index("ix_standards_is_active", "standards", ["is_active"])


def downgrade():
    op.drop_table("standards")
    op.drop_table("kpis")
    op.drop_table("bpmn_archived_nodes")
    op.drop_table("bpmn_nodes")
    op.drop_table("users")
