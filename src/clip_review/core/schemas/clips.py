"""Pydantic request/response schemas for the clip routes.

Request schemas only check types.  Length and content rules (subject 2-100
characters, at least one tag, comment 2-400 characters, vote literals) are
enforced by the service layer so that they surface as 400 responses with
the same messages whatever the entry point.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ClipCreate(BaseModel):
    """Payload for proposing a clip.

    Attributes:
        link: Twitch clip URL.
        subject: Title of the proposal.
        tags: Free-form tags; duplicates are collapsed.
        editable: The clip needs post-production before it can go live.
        text: Optional first comment.
    """

    link: str
    subject: str
    tags: list[str] = Field(default_factory=list)
    editable: bool = False
    text: Optional[str] = None


class ClipUpdate(BaseModel):
    """Payload for the author's partial update.  Omitted fields are kept."""

    subject: Optional[str] = None
    tags: Optional[list[str]] = None
    editable: Optional[bool] = None
    text: Optional[str] = None


class VoteCreate(BaseModel):
    """Payload for casting a vote: ``OK``, ``KO`` or ``TO_REVIEW``."""

    vote: str


class CommentCreate(BaseModel):
    """Payload for adding a comment."""

    text: str


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class VoteRead(BaseModel):
    voter_id: str
    voter_name: Optional[str] = None
    voter_avatar: Optional[str] = None
    voter_role: Optional[str] = None
    result: str


class CommentRead(BaseModel):
    author_id: str
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None
    text: str
    created_at: datetime
    viewed_by: list[str] = Field(default_factory=list)


class ClipRead(BaseModel):
    """Full representation of a clip returned by every clip route."""

    model_config = ConfigDict(from_attributes=True)

    clip_id: str
    link: str
    image_url: Optional[str] = None
    embed_url: Optional[str] = None
    subject: str
    tags: list[str]
    author_id: str
    editable: bool
    editor_id: Optional[str] = None
    edit_progress: str
    status: str
    votes: list[VoteRead]
    comments: list[CommentRead]
    created_at: datetime
    published_at: Optional[datetime] = None


class ClipListResponse(BaseModel):
    count: int
    clips: list[ClipRead]


class ClipPreview(BaseModel):
    """Twitch metadata for a link that has not been proposed yet."""

    model_config = ConfigDict(from_attributes=True)

    clip_id: str
    title: str
    thumbnail_url: Optional[str] = None
    embed_url: Optional[str] = None
    broadcaster_id: Optional[str] = None


class ClipDownloadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    clip_id: str
    landscape_download_url: Optional[str] = None
    portrait_download_url: Optional[str] = None


class SweepResult(BaseModel):
    """Counts returned by the archival sweep."""

    published: int
    discarded: int
    total: int

    @classmethod
    def from_report(cls, report: Any) -> SweepResult:
        return cls(
            published=report.published_count,
            discarded=report.discarded_count,
            total=report.total,
        )
