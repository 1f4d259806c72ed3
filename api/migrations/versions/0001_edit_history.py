"""Edit history tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19 00:01:00.000000

Creates the read-only edit history schema (users, user_groups, pages,
revisions, blocks) for standalone deployments. Hosts that already own these
tables point DATABASE_URL at their replica and skip this migration.
Written manually (not via autogenerate) consistent with project migration policy.
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1b2c3d4e5f6"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("real_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_name", "users", ["name"], unique=True)

    op.create_table(
        "user_groups",
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("group", sa.String(255), primary_key=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "pages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("namespace", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.UniqueConstraint("namespace", "title", name="uq_pages_namespace_title"),
    )
    op.create_index("ix_pages_namespace", "pages", ["namespace"])

    op.create_table(
        "revisions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("page_id", sa.Integer(), sa.ForeignKey("pages.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("length", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("revisions.id"), nullable=True),
        sa.Column("comment_id", sa.Integer(), nullable=True),
    )
    # Per-user metric scans and windowed leaderboard scans
    op.create_index("ix_revisions_user_id_timestamp", "revisions", ["user_id", "timestamp"])
    op.create_index("ix_revisions_timestamp", "revisions", ["timestamp"])
    op.create_index("ix_revisions_page_id", "revisions", ["page_id"])

    op.create_table(
        "blocks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_blocks_user_id", "blocks", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_blocks_user_id", table_name="blocks")
    op.drop_table("blocks")
    op.drop_index("ix_revisions_page_id", table_name="revisions")
    op.drop_index("ix_revisions_timestamp", table_name="revisions")
    op.drop_index("ix_revisions_user_id_timestamp", table_name="revisions")
    op.drop_table("revisions")
    op.drop_index("ix_pages_namespace", table_name="pages")
    op.drop_table("pages")
    op.drop_table("user_groups")
    op.drop_index("ix_users_name", table_name="users")
    op.drop_table("users")
