"""Twitch Helix client for clip metadata and clip download URLs.

Error mapping:

- empty ``data`` array  -> :class:`ClipFetchError` with upstream status 404
- HTTP 429              -> :class:`ClipFetchError` with ``retry_after``
- other HTTP errors     -> :class:`ClipFetchError` carrying the upstream status
- transport errors      -> :class:`ClipFetchError` without a status (502)
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from clip_review.config.settings import Settings, get_settings
from clip_review.core.exceptions import ClipFetchError
from clip_review.twitch.config import (
    CLIP_DOWNLOADS_PATH,
    CLIPS_PATH,
    DEFAULT_RETRY_AFTER_SECONDS,
    USER_AGENT,
)
from clip_review.twitch.types import ClipDownload, ClipMetadata

logger = logging.getLogger(__name__)


class TwitchClipClient:
    """Fetch clip data from the Helix API on behalf of a user.

    Args:
        settings: Application settings.  Defaults to :func:`get_settings`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()

    async def fetch_clip(self, clip_id: str, access_token: str) -> ClipMetadata:
        """Return display metadata for *clip_id*.

        Raises:
            ClipFetchError: See the module docstring for the mapping.
        """
        data = await self._get(CLIPS_PATH, {"id": clip_id}, access_token)
        if not data:
            raise ClipFetchError("Clip not found on Twitch", upstream_status=404)
        raw = data[0]
        return ClipMetadata(
            clip_id=str(raw.get("id") or clip_id),
            title=raw.get("title") or "",
            thumbnail_url=raw.get("thumbnail_url"),
            embed_url=raw.get("embed_url"),
            broadcaster_id=raw.get("broadcaster_id"),
        )

    async def fetch_download(
        self,
        clip_id: str,
        broadcaster_id: str,
        editor_id: str,
        access_token: str,
    ) -> ClipDownload:
        """Return download URLs for *clip_id*.

        Twitch only answers when *editor_id* is the broadcaster or one of
        the channel's editors, and *access_token* belongs to that user.

        Raises:
            ClipFetchError: See the module docstring for the mapping.
        """
        data = await self._get(
            CLIP_DOWNLOADS_PATH,
            {
                "clip_id": clip_id,
                "broadcaster_id": broadcaster_id,
                "editor_id": editor_id,
            },
            access_token,
        )
        if not data:
            raise ClipFetchError("Download URL not found", upstream_status=404)
        raw = data[0]
        return ClipDownload(
            clip_id=str(raw.get("clip_id") or clip_id),
            landscape_download_url=raw.get("landscape_download_url"),
            portrait_download_url=raw.get("portrait_download_url"),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get(
        self,
        path: str,
        params: dict[str, Any],
        access_token: str,
    ) -> list[dict[str, Any]]:
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
                response = await client.get(path, params=params)
        except httpx.RequestError as exc:
            raise ClipFetchError(f"twitch: request error on {path}: {exc}") from exc

        if response.status_code == 429:
            retry_after = float(
                response.headers.get("Retry-After", DEFAULT_RETRY_AFTER_SECONDS)
            )
            logger.warning("twitch: rate limited on %s; retry_after=%ss", path, retry_after)
            raise ClipFetchError(
                f"twitch: rate limited on {path}; retry_after={retry_after}s",
                upstream_status=429,
                retry_after=retry_after,
            )

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ClipFetchError(
                f"twitch: HTTP {exc.response.status_code} on {path}",
                upstream_status=exc.response.status_code,
            ) from exc

        return response.json().get("data") or []
