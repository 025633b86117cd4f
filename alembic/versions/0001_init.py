"""init
Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table(
        "meta_bases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("connection_url", sa.Text(), nullable=True),
    )

    op.create_table(
        "meta_tables",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("base_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("table_name", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_meta_tables_base_id", "meta_tables", ["base_id"])

    op.create_table(
        "meta_columns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("table_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("column_name", sa.String(length=255), nullable=True),
        sa.Column("uidt", sa.String(length=50), nullable=False, server_default="SingleLineText"),
        sa.Column("primary_key", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("auto_increment", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("nullable", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("options", sa.JSON(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("table_id", "title", name="uq_meta_columns_table_title"),
    )
    op.create_index("ix_meta_columns_table_id", "meta_columns", ["table_id"])

    op.create_table(
        "meta_views",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("table_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
    )
    op.create_index("ix_meta_views_table_id", "meta_views", ["table_id"])

    op.create_table(
        "meta_view_filters",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("view_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_group", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("column_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("comparison_op", sa.String(length=30), nullable=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("logical_op", sa.String(length=10), nullable=False, server_default="and"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_meta_view_filters_view_id", "meta_view_filters", ["view_id"])
    op.create_index("ix_meta_view_filters_parent_id", "meta_view_filters", ["parent_id"])

    op.create_table(
        "meta_view_sorts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("view_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("column_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("direction", sa.String(length=4), nullable=False, server_default="asc"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_meta_view_sorts_view_id", "meta_view_sorts", ["view_id"])

    op.create_table(
        "meta_view_columns",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        *_timestamps(),
        sa.Column("view_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("column_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("show", sa.Boolean(), nullable=False, server_default=sa.text("true")),
    )
    op.create_index("ix_meta_view_columns_view_id", "meta_view_columns", ["view_id"])


def downgrade():
    for name in (
        "meta_view_columns",
        "meta_view_sorts",
        "meta_view_filters",
        "meta_views",
        "meta_columns",
        "meta_tables",
        "meta_bases",
    ):
        op.drop_table(name)
