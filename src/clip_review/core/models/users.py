"""User ORM model.

A user is keyed by their stable Twitch user id.  The ``token`` column holds
the opaque app session token every authenticated request presents; it is
generated on first login and rotated only on demand.  The three
``twitch_*`` columns belong to the Twitch OAuth flow and are cleared when a
refresh fails, which forces the user to log in again without touching the
rest of the row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from clip_review.core.lifecycle.states import Role
from clip_review.core.models.base import Base


class User(Base):
    """A reviewer authenticated through Twitch.

    Attributes:
        twitch_id: External Twitch user id (primary key).
        username: Display name, refreshed on every login.
        avatar_url: Profile image URL, refreshed on every login.
        role: ``MEMBER`` or ``EXPERT``.  Only experts count toward consensus.
        whitelist: Gates every authenticated operation.  Flipping it to False
            never deletes the user's clips, votes or comments.
        token: Opaque app session token (64 hex chars), unique.
        twitch_access_token: Current Twitch user access token.
        twitch_refresh_token: Twitch refresh token.
        twitch_token_expires_at: Expiry of ``twitch_access_token``.
    """

    __tablename__ = "users"

    twitch_id: Mapped[str] = mapped_column(
        sa.String(64),
        primary_key=True,
    )
    username: Mapped[str] = mapped_column(
        sa.String(200),
        nullable=False,
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        sa.String(20),
        nullable=False,
        default=Role.MEMBER.value,
        server_default=sa.text("'MEMBER'"),
        index=True,
    )
    whitelist: Mapped[bool] = mapped_column(
        sa.Boolean,
        nullable=False,
        default=True,
        server_default=sa.text("true"),
    )
    token: Mapped[str] = mapped_column(
        sa.String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    twitch_access_token: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    twitch_refresh_token: Mapped[Optional[str]] = mapped_column(
        sa.Text,
        nullable=True,
    )
    twitch_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=sa.text("NOW()"),
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
    )

    @property
    def is_expert(self) -> bool:
        return self.role == Role.EXPERT.value

    def __repr__(self) -> str:
        return f"<User twitch_id={self.twitch_id!r} username={self.username!r} role={self.role!r}>"
