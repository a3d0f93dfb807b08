"""Extract the Twitch clip id from a clip URL.

Supported shapes::

    https://clips.twitch.tv/<id>
    https://www.twitch.tv/<channel>/clip/<id>[/...][?...]
    https://<anything twitch.tv>/...?clip=<id>

Anything else (including strings that are not URLs) yields ``None``.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

_CLIPS_HOST = "clips.twitch.tv"
_EMBED_PATH = "embed"


def _is_twitch_host(host: str) -> bool:
    return host == "twitch.tv" or host.endswith(".twitch.tv")


def extract_clip_id(link: str | None) -> str | None:
    """Return the clip id encoded in *link*, or ``None`` if there is none."""
    if not link or not isinstance(link, str):
        return None
    try:
        parts = urlsplit(link.strip())
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    host = parts.hostname.lower()
    if not _is_twitch_host(host):
        return None

    if host == _CLIPS_HOST:
        clip_id = parts.path.strip("/").split("/")[0]
        if clip_id and clip_id != _EMBED_PATH:
            return clip_id

    if "/clip/" in parts.path:
        clip_id = parts.path.split("/clip/", 1)[1].split("/")[0]
        return clip_id or None

    values = parse_qs(parts.query).get("clip")
    if values and values[0]:
        return values[0]
    return None
