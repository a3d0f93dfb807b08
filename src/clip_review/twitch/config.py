"""Constants for the Twitch Helix and OAuth clients.

Base URLs, client credentials and the HTTP timeout come from
:class:`~clip_review.config.settings.Settings`; this module only holds the
values that do not vary between deployments.
"""

from __future__ import annotations

TOKEN_PATH: str = "/token"
"""OAuth 2.0 token endpoint (authorization-code and refresh grants)."""

USERS_PATH: str = "/users"
"""Helix endpoint returning the profile behind a user access token."""

CLIPS_PATH: str = "/clips"
"""Helix endpoint returning clip metadata by id."""

CLIP_DOWNLOADS_PATH: str = "/clips/downloads"
"""Helix endpoint returning download URLs for clips the caller may edit."""

DEFAULT_RETRY_AFTER_SECONDS: float = 60.0
"""Fallback wait reported on HTTP 429 when Twitch sends no ``Retry-After``."""

TOKEN_EXPIRY_MARGIN_SECONDS: int = 60
"""Access tokens expiring within this margin are refreshed before use."""

USER_AGENT: str = "ClipReview/1.0 (+twitch clip review)"
