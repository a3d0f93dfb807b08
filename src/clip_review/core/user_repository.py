"""Persistence of users: session-token lookup, login upsert, role admin.

Methods flush but never commit; the calling route or service owns the
transaction.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.exceptions import AuthorizationError, UserNotFoundError
from clip_review.core.lifecycle.states import Role
from clip_review.core.models.base import utc_now
from clip_review.core.models.users import User
from clip_review.twitch.types import TwitchProfile, TwitchTokens

logger = logging.getLogger(__name__)

SESSION_TOKEN_BYTES = 32
"""Entropy of the app session token; rendered as 64 hex characters."""


def generate_session_token() -> str:
    """Return a new opaque app session token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


class UserRepository:
    """Data access for :class:`User` rows bound to one session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_by_token(self, token: str) -> User | None:
        if not token:
            return None
        result = await self._db.execute(select(User).where(User.token == token))
        return result.scalar_one_or_none()

    async def get_by_twitch_id(self, twitch_id: str) -> User | None:
        return await self._db.get(User, twitch_id)

    async def require(self, twitch_id: str) -> User:
        """Return the user or raise :class:`UserNotFoundError`."""
        user = await self.get_by_twitch_id(twitch_id)
        if user is None:
            raise UserNotFoundError(twitch_id)
        return user

    async def list_whitelisted(self) -> Sequence[User]:
        result = await self._db.execute(
            select(User).where(User.whitelist.is_(True)).order_by(User.username)
        )
        return result.scalars().all()

    async def list_expert_ids(self) -> set[str]:
        """Return the ids of every user currently holding the ``EXPERT`` role.

        Read fresh on every call; callers must not cache the result across
        requests.
        """
        result = await self._db.execute(
            select(User.twitch_id).where(User.role == Role.EXPERT.value)
        )
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def upsert_from_login(
        self,
        profile: TwitchProfile,
        tokens: TwitchTokens,
        now: datetime | None = None,
    ) -> tuple[User, bool]:
        """Create or refresh the user behind a successful Twitch login.

        New users get a fresh session token.  Existing users keep theirs;
        only their display name, avatar and Twitch tokens are refreshed.

        Returns:
            The user and whether it was just created.

        Raises:
            AuthorizationError: If the user exists but is not whitelisted.
        """
        now = now or utc_now()
        user = await self.get_by_twitch_id(profile.twitch_id)
        if user is None:
            user = User(
                twitch_id=profile.twitch_id,
                username=profile.display_name,
                avatar_url=profile.avatar_url,
                role=Role.MEMBER.value,
                whitelist=True,
                token=generate_session_token(),
                twitch_access_token=tokens.access_token,
                twitch_refresh_token=tokens.refresh_token,
                twitch_token_expires_at=tokens.expires_at,
                created_at=now,
                last_login_at=now,
            )
            self._db.add(user)
            await self._db.flush()
            logger.info("user: created twitch_id=%s", profile.twitch_id)
            return user, True

        if not user.whitelist:
            raise AuthorizationError("User not whitelisted")

        user.username = profile.display_name
        user.avatar_url = profile.avatar_url
        user.last_login_at = now
        self.store_external_tokens(user, tokens)
        await self._db.flush()
        return user, False

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    async def rotate_token(self, user: User) -> str:
        """Replace the user's session token and return the new one."""
        user.token = generate_session_token()
        await self._db.flush()
        logger.info("user: session token rotated twitch_id=%s", user.twitch_id)
        return user.token

    @staticmethod
    def store_external_tokens(user: User, tokens: TwitchTokens) -> None:
        user.twitch_access_token = tokens.access_token
        user.twitch_refresh_token = tokens.refresh_token
        user.twitch_token_expires_at = tokens.expires_at

    @staticmethod
    def clear_external_tokens(user: User) -> None:
        user.twitch_access_token = None
        user.twitch_refresh_token = None
        user.twitch_token_expires_at = None

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def set_role(self, twitch_id: str, role: Role) -> User:
        user = await self.require(twitch_id)
        user.role = Role(role).value
        await self._db.flush()
        logger.info("user: role changed twitch_id=%s role=%s", twitch_id, user.role)
        return user

    async def set_whitelist(self, twitch_id: str, whitelisted: bool) -> User:
        user = await self.require(twitch_id)
        user.whitelist = whitelisted
        await self._db.flush()
        logger.info("user: whitelist changed twitch_id=%s whitelist=%s", twitch_id, whitelisted)
        return user
