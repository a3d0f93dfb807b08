"""Twitch OAuth 2.0 client: code exchange, token refresh, profile lookup.

Every failure (transport error, non-2xx response, malformed body) surfaces
as :class:`~clip_review.core.exceptions.ExternalAuthError` so the API layer
answers 401 and the client restarts the Twitch login.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx

from clip_review.config.settings import Settings, get_settings
from clip_review.core.exceptions import ExternalAuthError, UpstreamError
from clip_review.twitch.config import TOKEN_PATH, USER_AGENT, USERS_PATH
from clip_review.twitch.types import TwitchProfile, TwitchTokens

logger = logging.getLogger(__name__)


class TwitchAuthClient:
    """Thin async wrapper around the Twitch OAuth and ``/helix/users`` endpoints.

    Args:
        settings: Application settings.  Defaults to :func:`get_settings`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def exchange_code(self, code: str) -> TwitchTokens:
        """Exchange an authorization code for a user access token.

        Raises:
            ExternalAuthError: If Twitch rejects the code or is unreachable.
        """
        self._require_credentials(need_redirect=True)
        data = await self._post_token(
            {
                "client_id": self._settings.twitch_client_id,
                "client_secret": self._settings.twitch_client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self._settings.twitch_redirect_uri,
            },
            action="code exchange",
        )
        return self._parse_tokens(data)

    async def refresh(self, refresh_token: str) -> TwitchTokens:
        """Obtain a new access token from a refresh token.

        Twitch may rotate the refresh token; the returned value must replace
        the stored one.

        Raises:
            ExternalAuthError: If the refresh token is rejected.
        """
        self._require_credentials()
        data = await self._post_token(
            {
                "client_id": self._settings.twitch_client_id,
                "client_secret": self._settings.twitch_client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            action="token refresh",
        )
        tokens = self._parse_tokens(data)
        if tokens.refresh_token is None:
            tokens = TwitchTokens(
                access_token=tokens.access_token,
                refresh_token=refresh_token,
                expires_at=tokens.expires_at,
            )
        return tokens

    async def get_user(self, access_token: str) -> TwitchProfile:
        """Return the profile of the user owning *access_token*.

        Raises:
            ExternalAuthError: If the token is rejected or no user is returned.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.twitch_api_base,
                headers={
                    "Client-Id": self._settings.twitch_client_id,
                    "Authorization": f"Bearer {access_token}",
                    "User-Agent": USER_AGENT,
                },
                timeout=self._settings.twitch_http_timeout_seconds,
            ) as client:
                response = await client.get(USERS_PATH)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ExternalAuthError(
                f"twitch: user lookup failed: HTTP {exc.response.status_code}",
                upstream_status=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise ExternalAuthError(f"twitch: connection error on user lookup: {exc}") from exc

        users = response.json().get("data") or []
        if not users:
            raise ExternalAuthError("twitch: user lookup returned no user")
        raw = users[0]
        return TwitchProfile(
            twitch_id=str(raw["id"]),
            display_name=raw.get("display_name") or raw.get("login") or str(raw["id"]),
            avatar_url=raw.get("profile_image_url"),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_credentials(self, need_redirect: bool = False) -> None:
        settings = self._settings
        missing = not settings.twitch_client_id or not settings.twitch_client_secret
        if need_redirect and not settings.twitch_redirect_uri:
            missing = True
        if missing:
            raise UpstreamError("twitch: client credentials are not configured")

    async def _post_token(self, form: dict[str, str], action: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._settings.twitch_oauth_base,
                headers={"User-Agent": USER_AGENT},
                timeout=self._settings.twitch_http_timeout_seconds,
            ) as client:
                response = await client.post(TOKEN_PATH, data=form)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("twitch: %s rejected: HTTP %s", action, exc.response.status_code)
            raise ExternalAuthError(
                f"twitch: {action} failed: HTTP {exc.response.status_code}",
                upstream_status=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise ExternalAuthError(f"twitch: connection error during {action}: {exc}") from exc

        data = response.json()
        if not data.get("access_token"):
            raise ExternalAuthError(f"twitch: {action} response missing 'access_token'")
        return data

    @staticmethod
    def _parse_tokens(data: dict[str, Any]) -> TwitchTokens:
        expires_in = int(data.get("expires_in") or 0)
        return TwitchTokens(
            access_token=str(data["access_token"]),
            refresh_token=data.get("refresh_token"),
            expires_at=datetime.now(tz=timezone.utc) + timedelta(seconds=expires_in),
        )
