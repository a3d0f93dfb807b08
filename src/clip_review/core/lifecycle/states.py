"""Enumerations and value objects shared by the clip lifecycle functions.

The lifecycle functions in this package are pure: they never touch the
database.  They operate on :class:`ClipState`, an immutable snapshot of the
fields of a clip row that drive the two state machines, and on
:class:`Participant`, a snapshot of the acting user.  The service layer
builds both from ORM rows and writes the results back in one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Role(str, Enum):
    """User roles.  Only ``EXPERT`` counts toward consensus."""

    MEMBER = "MEMBER"
    EXPERT = "EXPERT"


class ClipStatus(str, Enum):
    """Review status of a clip, derived from expert votes."""

    PROPOSED = "PROPOSED"
    READY = "READY"
    DISCARDED = "DISCARDED"
    PUBLISHED = "PUBLISHED"
    ARCHIVED_PUBLISHED = "ARCHIVED_PUBLISHED"
    ARCHIVED_DISCARDED = "ARCHIVED_DISCARDED"

    @property
    def is_archived(self) -> bool:
        return self in ARCHIVED_STATUSES

    @property
    def is_frozen(self) -> bool:
        """True when votes no longer drive the status."""
        return self in FROZEN_STATUSES


ARCHIVED_STATUSES: frozenset[ClipStatus] = frozenset({
    ClipStatus.ARCHIVED_PUBLISHED,
    ClipStatus.ARCHIVED_DISCARDED,
})

FROZEN_STATUSES: frozenset[ClipStatus] = ARCHIVED_STATUSES | {ClipStatus.PUBLISHED}

ACTIVE_STATUSES: frozenset[ClipStatus] = frozenset({
    ClipStatus.PROPOSED,
    ClipStatus.READY,
    ClipStatus.DISCARDED,
    ClipStatus.PUBLISHED,
})


class EditProgress(str, Enum):
    """Progress of the optional post-production task."""

    UNSET = "UNSET"
    IN_PROGRESS = "IN_PROGRESS"
    TERMINATED = "TERMINATED"


class EditFilter(str, Enum):
    """Edit-state buckets offered by the clip listing.

    ``EDITABLE`` means "needs an editor": ``editable`` is set and nobody has
    claimed the task yet.
    """

    EDITABLE = "EDITABLE"
    IN_PROGRESS = "IN_PROGRESS"
    TERMINATED = "TERMINATED"


class VoteResult(str, Enum):
    """Allowed vote values."""

    OK = "OK"
    KO = "KO"
    TO_REVIEW = "TO_REVIEW"


@dataclass(frozen=True)
class Participant:
    """Snapshot of the user acting on a clip.

    Attributes:
        user_id: External (Twitch) user id.
        name: Display name at the time of the action.
        avatar_url: Avatar URL at the time of the action.
        role: Role at the time of the action.
    """

    user_id: str
    name: str
    avatar_url: str | None = None
    role: Role = Role.MEMBER

    @classmethod
    def from_user(cls, user: Any) -> Participant:
        """Build a participant from a ``User`` row (or any object with the same fields)."""
        return cls(
            user_id=user.twitch_id,
            name=user.username,
            avatar_url=user.avatar_url,
            role=Role(user.role),
        )


@dataclass(frozen=True)
class ClipState:
    """Snapshot of the state-machine fields of a clip.

    ``votes`` holds plain dicts exactly as they are stored in the ``votes``
    JSONB column; lifecycle functions never mutate it and always return new
    lists.
    """

    clip_id: str
    status: ClipStatus = ClipStatus.PROPOSED
    editable: bool = False
    edit_progress: EditProgress = EditProgress.UNSET
    editor_id: str | None = None
    votes: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_clip(cls, clip: Any) -> ClipState:
        """Build a snapshot from a ``Clip`` row."""
        return cls(
            clip_id=clip.clip_id,
            status=ClipStatus(clip.status),
            editable=bool(clip.editable),
            edit_progress=EditProgress(clip.edit_progress),
            editor_id=clip.editor_id,
            votes=tuple(clip.votes or ()),
        )
