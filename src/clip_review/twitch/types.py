"""Value objects returned by the Twitch clients."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TwitchTokens:
    """A Twitch user access token with its refresh token and expiry."""

    access_token: str
    refresh_token: str | None
    expires_at: datetime


@dataclass(frozen=True)
class TwitchProfile:
    """The subset of ``GET /helix/users`` used to create or refresh a user."""

    twitch_id: str
    display_name: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class ClipMetadata:
    """Display metadata of a clip from ``GET /helix/clips``."""

    clip_id: str
    title: str
    thumbnail_url: str | None
    embed_url: str | None
    broadcaster_id: str | None = None


@dataclass(frozen=True)
class ClipDownload:
    """Download URLs from ``GET /helix/clips/downloads``."""

    clip_id: str
    landscape_download_url: str | None
    portrait_download_url: str | None
