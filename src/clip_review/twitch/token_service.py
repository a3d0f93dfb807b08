"""Hand out a currently valid Twitch access token for a user.

A stored token is reused until it is about to expire.  After that the
refresh token is exchanged and the new triple is committed straight away,
because Twitch may invalidate the old refresh token as soon as it is used.

When the refresh fails the user's three Twitch token fields are cleared and
committed, then :class:`ExternalAuthError` is raised so the client logs in
again.  The user row itself, and everything the user authored, is kept.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.exceptions import ExternalAuthError, UpstreamError
from clip_review.core.models.base import utc_now
from clip_review.core.models.users import User
from clip_review.core.user_repository import UserRepository
from clip_review.twitch.auth_client import TwitchAuthClient
from clip_review.twitch.config import TOKEN_EXPIRY_MARGIN_SECONDS

logger = structlog.get_logger(__name__)

SESSION_EXPIRED_MESSAGE = "Twitch session expired. Please reconnect your Twitch account."


class TokenService:
    """Resolve valid Twitch access tokens, refreshing them when needed.

    Args:
        db: Session used to persist refreshed or cleared tokens.
        auth_client: Twitch OAuth client.  A default one is built when omitted.
    """

    def __init__(
        self,
        db: AsyncSession,
        auth_client: TwitchAuthClient | None = None,
    ) -> None:
        self._db = db
        self._auth = auth_client or TwitchAuthClient()

    async def get_valid_access_token(self, user: User, now: datetime | None = None) -> str:
        """Return an access token for *user* that is valid right now.

        Raises:
            ExternalAuthError: If no token can be obtained; the stored
                tokens have been cleared when this is raised.
        """
        now = now or utc_now()
        expires_at = user.twitch_token_expires_at
        if (
            user.twitch_access_token
            and expires_at is not None
            and expires_at > now + timedelta(seconds=TOKEN_EXPIRY_MARGIN_SECONDS)
        ):
            return user.twitch_access_token

        if not user.twitch_refresh_token:
            await self._invalidate(user, reason="no refresh token on file")
            raise ExternalAuthError(SESSION_EXPIRED_MESSAGE)

        try:
            tokens = await self._auth.refresh(user.twitch_refresh_token)
        except UpstreamError as exc:
            await self._invalidate(user, reason=str(exc))
            raise ExternalAuthError(
                SESSION_EXPIRED_MESSAGE,
                upstream_status=exc.upstream_status,
            ) from exc

        UserRepository.store_external_tokens(user, tokens)
        await self._db.commit()
        logger.info("twitch.token_refreshed", twitch_id=user.twitch_id)
        return tokens.access_token

    async def _invalidate(self, user: User, reason: str) -> None:
        UserRepository.clear_external_tokens(user)
        await self._db.commit()
        logger.warning("twitch.token_invalidated", twitch_id=user.twitch_id, reason=reason)
