"""Configuration package for Clip Review.

Re-exports the settings symbols so that callers can write::

    from clip_review.config import get_settings
"""

from __future__ import annotations

from clip_review.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
