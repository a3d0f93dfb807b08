"""Clip lifecycle: vote-derived review status, edit claims and comments.

Everything in this package is a pure function over :class:`ClipState`
snapshots and plain vote/comment dicts.  Persistence and locking live in
``clip_review.core.clip_service``.
"""

from __future__ import annotations

from clip_review.core.lifecycle.states import (
    ClipState,
    ClipStatus,
    EditFilter,
    EditProgress,
    Participant,
    Role,
    VoteResult,
)

__all__ = [
    "ClipState",
    "ClipStatus",
    "EditFilter",
    "EditProgress",
    "Participant",
    "Role",
    "VoteResult",
]
