"""Twitch integration: OAuth login, token refresh, clip metadata and URL parsing."""

from __future__ import annotations

from clip_review.twitch.auth_client import TwitchAuthClient
from clip_review.twitch.clip_client import TwitchClipClient
from clip_review.twitch.clip_url import extract_clip_id
from clip_review.twitch.types import (
    ClipDownload,
    ClipMetadata,
    TwitchProfile,
    TwitchTokens,
)

__all__ = [
    "ClipDownload",
    "ClipMetadata",
    "TwitchAuthClient",
    "TwitchClipClient",
    "TwitchProfile",
    "TwitchTokens",
    "extract_clip_id",
]
