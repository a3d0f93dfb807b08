"""Clip operations: one public method per request, one transaction per call.

Every mutating method follows the same shape:

1. load the clip with a row lock (``SELECT ... FOR UPDATE``),
2. check the guards,
3. compute the new state with the pure lifecycle functions,
4. assign the new values and commit.

Any exception before the commit leaves the row untouched; ``get_db`` rolls
the session back.  The expert roster is read from the database inside the
same transaction on every vote and every status recompute.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.clip_repository import ClipFilters, ClipRepository
from clip_review.core.exceptions import (
    ArchivedClipError,
    ClipNotFoundError,
    ConflictError,
    DuplicateClipError,
    EditStateError,
    ValidationError,
)
from clip_review.core.guards import (
    can_delete,
    can_publish,
    can_update,
    require,
)
from clip_review.core.lifecycle import comments as comment_ledger
from clip_review.core.lifecycle import editing, voting
from clip_review.core.lifecycle.states import (
    ClipState,
    ClipStatus,
    EditProgress,
    Participant,
    VoteResult,
)
from clip_review.core.models.base import utc_now
from clip_review.core.models.clips import Clip
from clip_review.core.models.users import User
from clip_review.core.user_repository import UserRepository
from clip_review.twitch.clip_client import TwitchClipClient
from clip_review.twitch.clip_url import extract_clip_id
from clip_review.twitch.token_service import TokenService
from clip_review.twitch.types import ClipDownload, ClipMetadata

logger = structlog.get_logger(__name__)

SUBJECT_MIN_LENGTH = 2
SUBJECT_MAX_LENGTH = 100

PUBLISHABLE_STATUSES: frozenset[ClipStatus] = frozenset({
    ClipStatus.PROPOSED,
    ClipStatus.READY,
})


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def sanitize_subject(subject: Any) -> str:
    """Trim a clip subject and check its length (2-100 characters)."""
    if not isinstance(subject, str):
        raise ValidationError("Subject must be a string", field="subject")
    cleaned = subject.strip()
    if not SUBJECT_MIN_LENGTH <= len(cleaned) <= SUBJECT_MAX_LENGTH:
        raise ValidationError(
            f"Subject must be between {SUBJECT_MIN_LENGTH} and "
            f"{SUBJECT_MAX_LENGTH} characters",
            field="subject",
        )
    return cleaned


def normalize_tags(tags: Any) -> list[str]:
    """Trim tags, drop blanks and duplicates, keep first-occurrence order.

    Raises:
        ValidationError: If *tags* is not a list of strings or nothing is left.
    """
    if not isinstance(tags, (list, tuple)):
        raise ValidationError("Tags must be a list of strings", field="tags")
    seen: dict[str, None] = {}
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError("Tags must be a list of strings", field="tags")
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    if not seen:
        raise ValidationError("At least one tag is required", field="tags")
    return list(seen)


def _has_text(text: Any) -> bool:
    return isinstance(text, str) and bool(text.strip())


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ClipService:
    """Orchestrates clip reads and writes for one database session.

    Args:
        db: Request-scoped session.  The service commits it.
        clip_client: Twitch clip client.  A default one is built when omitted.
        token_service: Twitch token resolver.  Built from *db* when omitted.
        clock: Returns "now"; injectable for tests.
    """

    def __init__(
        self,
        db: AsyncSession,
        clip_client: TwitchClipClient | None = None,
        token_service: TokenService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self.clips = ClipRepository(db)
        self.users = UserRepository(db)
        self._clip_client = clip_client or TwitchClipClient()
        self._tokens = token_service or TokenService(db)
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, clip_id: str) -> Clip:
        clip = await self.clips.get(clip_id)
        if clip is None:
            raise ClipNotFoundError(clip_id)
        return clip

    async def list_active(self, filters: ClipFilters | None = None) -> Sequence[Clip]:
        return await self.clips.list_active(filters)

    async def list_archived(self) -> Sequence[Clip]:
        return await self.clips.list_archived()

    # ------------------------------------------------------------------
    # Proposal
    # ------------------------------------------------------------------

    async def preview(self, user: User, link: str) -> ClipMetadata:
        """Resolve a link to Twitch metadata without creating anything.

        Raises:
            ValidationError: If no clip id can be extracted from *link*.
            DuplicateClipError: If the clip was already proposed.
            ExternalAuthError: If the user's Twitch session is gone.
            ClipFetchError: If Twitch does not return the clip.
        """
        clip_id = self._clip_id_from_link(link)
        if await self.clips.exists(clip_id):
            raise DuplicateClipError(clip_id)
        return await self._fetch_metadata(user, clip_id)

    async def propose(
        self,
        user: User,
        link: str,
        subject: str,
        tags: list[str],
        editable: bool = False,
        text: str | None = None,
    ) -> Clip:
        """Create a clip proposal seeded with the author's vote.

        The author votes ``OK``, or ``TO_REVIEW`` when the clip still needs
        editing.  Nothing is written when validation, the duplicate check or
        the Twitch lookup fails.
        """
        subject = sanitize_subject(subject)
        tags = normalize_tags(tags)
        comment_text = comment_ledger.sanitize_text(text) if _has_text(text) else None
        clip_id = self._clip_id_from_link(link)
        if await self.clips.exists(clip_id):
            raise DuplicateClipError(clip_id)

        metadata = await self._fetch_metadata(user, clip_id)

        now = self._clock()
        author = Participant.from_user(user)
        seed = VoteResult.TO_REVIEW if editable else VoteResult.OK
        votes = voting.upsert_vote([], author, seed)
        comments = (
            comment_ledger.add_comment([], author, comment_text, now)
            if comment_text
            else []
        )
        state = ClipState(clip_id=clip_id, editable=editable, votes=tuple(votes))
        status = voting.recompute_status(state, await self.users.list_expert_ids())

        clip = Clip(
            clip_id=clip_id,
            link=link.strip(),
            image_url=metadata.thumbnail_url,
            embed_url=metadata.embed_url,
            subject=subject,
            tags=tags,
            author_id=user.twitch_id,
            editable=editable,
            editor_id=None,
            edit_progress=EditProgress.UNSET.value,
            status=status.value,
            votes=votes,
            comments=comments,
            created_at=now,
            published_at=None,
        )
        try:
            await self.clips.add(clip)
        except IntegrityError as exc:
            await self._db.rollback()
            raise DuplicateClipError(clip_id) from exc
        await self._db.commit()
        logger.info(
            "clip.proposed",
            clip_id=clip_id,
            author_id=user.twitch_id,
            editable=editable,
            status=clip.status,
        )
        return clip

    async def update(
        self,
        user: User,
        clip_id: str,
        subject: str | None = None,
        tags: list[str] | None = None,
        editable: bool | None = None,
        text: str | None = None,
    ) -> Clip:
        """Let the author change subject, tags or the ``editable`` flag.

        Changing ``editable`` re-derives the status against the live expert
        roster (a clip held back only by the flag becomes ``READY`` once it is
        cleared).  Re-enabling ``editable`` after the edit was finished is
        rejected.
        """
        clip = await self._lock(clip_id)
        require(can_update(clip, user))
        self._reject_archived(clip, "modified")

        new_subject = sanitize_subject(subject) if subject is not None else None
        new_tags = normalize_tags(tags) if tags is not None else None
        comment_text = comment_ledger.sanitize_text(text) if _has_text(text) else None

        if new_subject is not None:
            clip.subject = new_subject
        if new_tags is not None:
            clip.tags = new_tags

        if editable is not None and editable != clip.editable:
            if editable and clip.edit_progress == EditProgress.TERMINATED.value:
                raise EditStateError("Editing is already finished for this clip")
            state = ClipState.from_clip(clip)
            status = voting.recompute_status(
                state,
                await self.users.list_expert_ids(),
                editable=editable,
            )
            clip.editable = editable
            clip.status = status.value

        if comment_text:
            clip.comments = comment_ledger.add_comment(
                clip.comments or [],
                Participant.from_user(user),
                comment_text,
                self._clock(),
            )

        await self._db.commit()
        logger.info("clip.updated", clip_id=clip_id, status=clip.status, editable=clip.editable)
        return clip

    async def delete(self, user: User, clip_id: str) -> None:
        """Delete a clip.  Allowed for its author and for experts."""
        clip = await self._lock(clip_id)
        self._reject_archived(clip, "deleted")
        require(can_delete(clip, user))
        await self.clips.delete(clip)
        await self._db.commit()
        logger.info("clip.deleted", clip_id=clip_id, by=user.twitch_id)

    # ------------------------------------------------------------------
    # Review
    # ------------------------------------------------------------------

    async def vote(self, user: User, clip_id: str, value: Any) -> Clip:
        """Record the user's vote and persist the resulting status."""
        clip = await self._lock(clip_id)
        outcome = voting.apply_vote(
            ClipState.from_clip(clip),
            await self.users.list_expert_ids(),
            Participant.from_user(user),
            value,
        )
        previous = clip.status
        clip.votes = outcome.votes
        clip.status = outcome.status.value
        await self._db.commit()
        logger.info(
            "clip.vote_recorded",
            clip_id=clip_id,
            voter_id=user.twitch_id,
            previous_status=previous,
            status=clip.status,
        )
        return clip

    async def publish(self, user: User, clip_id: str) -> Clip:
        """Mark a clip published.  Experts only, from ``PROPOSED`` or ``READY``."""
        require(can_publish(user))
        clip = await self._lock(clip_id)
        self._reject_archived(clip, "published")
        if ClipStatus(clip.status) not in PUBLISHABLE_STATUSES:
            raise ConflictError(f"Clip cannot be published from status {clip.status}")
        clip.status = ClipStatus.PUBLISHED.value
        if clip.published_at is None:
            clip.published_at = self._clock()
        await self._db.commit()
        logger.info("clip.published", clip_id=clip_id, by=user.twitch_id)
        return clip

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    async def claim_edit(self, user: User, clip_id: str) -> Clip:
        clip = await self._lock(clip_id)
        transition = editing.claim(ClipState.from_clip(clip), user.twitch_id)
        self._apply_transition(clip, transition)
        await self._db.commit()
        logger.info("clip.edit_claimed", clip_id=clip_id, editor_id=user.twitch_id)
        return clip

    async def release_edit(self, user: User, clip_id: str) -> Clip:
        clip = await self._lock(clip_id)
        transition = editing.release(ClipState.from_clip(clip), user.twitch_id)
        self._apply_transition(clip, transition)
        await self._db.commit()
        logger.info("clip.edit_released", clip_id=clip_id, editor_id=user.twitch_id)
        return clip

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    async def add_comment(self, user: User, clip_id: str, text: Any) -> Clip:
        clip = await self._lock(clip_id)
        clip.comments = comment_ledger.add_comment(
            clip.comments or [],
            Participant.from_user(user),
            text,
            self._clock(),
        )
        await self._db.commit()
        logger.info("clip.comment_added", clip_id=clip_id, author_id=user.twitch_id)
        return clip

    async def mark_comments_viewed(self, user: User, clip_id: str) -> Clip:
        clip = await self._lock(clip_id)
        comments, changed = comment_ledger.mark_all_viewed(clip.comments or [], user.twitch_id)
        if changed:
            clip.comments = comments
            await self._db.commit()
        return clip

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    async def download(self, user: User, clip_id: str) -> ClipDownload:
        """Return Twitch download URLs for a proposed clip.

        The user must be an editor of the broadcaster's channel on Twitch;
        otherwise Twitch answers 403 and a :class:`ClipFetchError` is raised.
        """
        await self.get(clip_id)
        access_token = await self._tokens.get_valid_access_token(user)
        metadata = await self._clip_client.fetch_clip(clip_id, access_token)
        return await self._clip_client.fetch_download(
            clip_id,
            broadcaster_id=metadata.broadcaster_id or "",
            editor_id=user.twitch_id,
            access_token=access_token,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _lock(self, clip_id: str) -> Clip:
        clip = await self.clips.get_for_update(clip_id)
        if clip is None:
            raise ClipNotFoundError(clip_id)
        return clip

    async def _fetch_metadata(self, user: User, clip_id: str) -> ClipMetadata:
        access_token = await self._tokens.get_valid_access_token(user)
        return await self._clip_client.fetch_clip(clip_id, access_token)

    @staticmethod
    def _clip_id_from_link(link: Any) -> str:
        clip_id = extract_clip_id(link)
        if clip_id is None:
            raise ValidationError("Invalid Twitch clip link", field="link")
        return clip_id

    @staticmethod
    def _reject_archived(clip: Clip, action: str) -> None:
        if ClipStatus(clip.status).is_archived:
            raise ArchivedClipError(clip.clip_id, action)

    @staticmethod
    def _apply_transition(clip: Clip, transition: editing.EditTransition) -> None:
        clip.edit_progress = transition.edit_progress.value
        clip.editor_id = transition.editor_id
        clip.editable = transition.editable
