"""Clip ORM model.

A clip row carries both lifecycle state machines (vote-derived ``status``
and the ``edit_progress`` sub-state) together with its votes and comments.
Votes, comments and tags are JSONB columns on the same row so that a single
``SELECT ... FOR UPDATE`` covers every read-modify-write a request performs.

Vote entry shape::

    {"voter_id": "123", "voter_name": "alice", "voter_avatar": "https://...",
     "voter_role": "EXPERT", "result": "OK"}

Comment entry shape::

    {"author_id": "123", "author_name": "alice", "author_avatar": "https://...",
     "text": "Nice one", "created_at": "2026-01-01T12:00:00+00:00",
     "viewed_by": ["123"]}

JSONB columns are always reassigned with a new list, never mutated in
place, so SQLAlchemy's change tracking sees every update.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from clip_review.core.lifecycle.states import ClipStatus, EditProgress
from clip_review.core.models.base import Base


class Clip(Base):
    """A proposed Twitch clip under review.

    Attributes:
        clip_id: External Twitch clip id (primary key).  Never reused.
        link: URL the clip was proposed with.
        image_url: Thumbnail URL from Twitch.
        embed_url: Embeddable player URL from Twitch.
        subject: Title, 2-100 characters after trimming.
        tags: JSONB list of distinct tag strings.
        author_id: Proposing user.  Set once.
        editable: Author-declared "needs post-production" flag.  Gates READY.
        editor_id: User who claimed the edit task, if any.
        edit_progress: ``UNSET``, ``IN_PROGRESS`` or ``TERMINATED``.
        status: Review status (see :class:`ClipStatus`).
        votes: JSONB list of vote entries, at most one per voter.
        comments: JSONB append-only list of comment entries.
        created_at: Creation time; drives the DISCARDED retention window.
        published_at: Set once on the transition to PUBLISHED; drives the
            PUBLISHED retention window.
    """

    __tablename__ = "clips"
    __table_args__ = (
        sa.Index("idx_clips_status_created_at", "status", "created_at"),
        sa.Index("idx_clips_tags_gin", "tags", postgresql_using="gin"),
        sa.Index("idx_clips_votes_gin", "votes", postgresql_using="gin"),
    )

    clip_id: Mapped[str] = mapped_column(
        sa.String(200),
        primary_key=True,
    )
    link: Mapped[str] = mapped_column(
        sa.Text,
        nullable=False,
    )
    image_url: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    embed_url: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    subject: Mapped[str] = mapped_column(
        sa.String(100),
        nullable=False,
    )
    tags: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa.text("'[]'::jsonb"),
    )
    author_id: Mapped[str] = mapped_column(
        sa.String(64),
        sa.ForeignKey("users.twitch_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    editable: Mapped[bool] = mapped_column(
        sa.Boolean,
        nullable=False,
        default=False,
        server_default=sa.text("false"),
    )
    editor_id: Mapped[Optional[str]] = mapped_column(
        sa.String(64),
        sa.ForeignKey("users.twitch_id", ondelete="SET NULL"),
        nullable=True,
    )
    edit_progress: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=EditProgress.UNSET.value,
        server_default=sa.text("'UNSET'"),
    )
    status: Mapped[str] = mapped_column(
        sa.String(30),
        nullable=False,
        default=ClipStatus.PROPOSED.value,
        server_default=sa.text("'PROPOSED'"),
    )
    votes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa.text("'[]'::jsonb"),
    )
    comments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=sa.text("'[]'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Clip clip_id={self.clip_id!r} status={self.status!r} edit={self.edit_progress!r}>"
