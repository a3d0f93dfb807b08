"""Initial schema: users and clips.

Creates the Clip Review schema in FK-dependency order:

1. users  - Twitch identity, role, whitelist, app session token
2. clips  - clip proposals with votes, comments and tags as JSONB (FK -> users)

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the users and clips tables with their indexes."""

    # ------------------------------------------------------------------
    # 1. users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("twitch_id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(200), nullable=False),
        sa.Column("avatar_url", sa.Text, nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'MEMBER'")),
        sa.Column("whitelist", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("twitch_access_token", sa.Text, nullable=True),
        sa.Column("twitch_refresh_token", sa.Text, nullable=True),
        sa.Column("twitch_token_expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("last_login_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_users_token", "users", ["token"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])

    # ------------------------------------------------------------------
    # 2. clips
    # ------------------------------------------------------------------
    op.create_table(
        "clips",
        sa.Column("clip_id", sa.String(200), primary_key=True),
        sa.Column("link", sa.Text, nullable=False),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("embed_url", sa.Text, nullable=True),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("tags", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column(
            "author_id",
            sa.String(64),
            sa.ForeignKey("users.twitch_id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("editable", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column(
            "editor_id",
            sa.String(64),
            sa.ForeignKey("users.twitch_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("edit_progress", sa.String(20), nullable=False, server_default=sa.text("'UNSET'")),
        sa.Column("status", sa.String(30), nullable=False, server_default=sa.text("'PROPOSED'")),
        sa.Column("votes", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("comments", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("published_at", sa.TIMESTAMP(timezone=True), nullable=True),
    )
    op.create_index("ix_clips_author_id", "clips", ["author_id"])
    op.create_index("idx_clips_status_created_at", "clips", ["status", "created_at"])
    # Tag filter (?| operator) and "has voted" filter (@> operator).
    op.create_index("idx_clips_tags_gin", "clips", ["tags"], postgresql_using="gin")
    op.create_index("idx_clips_votes_gin", "clips", ["votes"], postgresql_using="gin")


def downgrade() -> None:
    """Drop both tables in reverse dependency order."""
    op.drop_table("clips")
    op.drop_table("users")
