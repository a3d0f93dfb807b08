"""Persistence of clips: point lookups, row locks, filtered listings, archival.

Listings are always newest-first by ``created_at``.  Every method flushes at
most; commits belong to the service layer.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import array
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.lifecycle.states import (
    ACTIVE_STATUSES,
    ARCHIVED_STATUSES,
    ClipStatus,
    EditFilter,
    EditProgress,
)
from clip_review.core.models.clips import Clip


@dataclass
class ClipFilters:
    """Optional filters of the active clip listing.

    Empty collections mean "no restriction".

    Attributes:
        tags: Keep clips carrying at least one of these tags.
        statuses: Keep clips in one of these statuses (archived ones are
            never part of the active listing).
        edit_states: Keep clips in one of these edit buckets.
        voted: ``True`` keeps clips *voter_id* voted on, ``False`` keeps the
            others, ``None`` disables the filter.
        voter_id: User the ``voted`` filter refers to.
    """

    tags: list[str] = field(default_factory=list)
    statuses: list[ClipStatus] = field(default_factory=list)
    edit_states: list[EditFilter] = field(default_factory=list)
    voted: bool | None = None
    voter_id: str | None = None


def _edit_state_clause(edit_state: EditFilter) -> sa.ColumnElement[bool]:
    if edit_state == EditFilter.EDITABLE:
        return sa.and_(
            Clip.editable.is_(True),
            Clip.edit_progress == EditProgress.UNSET.value,
        )
    return Clip.edit_progress == EditProgress(edit_state.value).value


def build_active_query(filters: ClipFilters | None = None) -> sa.Select:
    """Build the SELECT behind the active listing."""
    filters = filters or ClipFilters()

    statuses = set(ACTIVE_STATUSES)
    if filters.statuses:
        statuses &= {ClipStatus(s) for s in filters.statuses}
    stmt = select(Clip).where(Clip.status.in_(sorted(s.value for s in statuses)))

    if filters.tags:
        stmt = stmt.where(Clip.tags.has_any(array(list(filters.tags))))

    if filters.edit_states:
        stmt = stmt.where(sa.or_(*(_edit_state_clause(e) for e in filters.edit_states)))

    if filters.voted is not None and filters.voter_id:
        has_voted = Clip.votes.contains([{"voter_id": filters.voter_id}])
        stmt = stmt.where(has_voted if filters.voted else sa.not_(has_voted))

    return stmt.order_by(Clip.created_at.desc())


class ClipRepository:
    """Data access for :class:`Clip` rows bound to one session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, clip_id: str) -> Clip | None:
        return await self._db.get(Clip, clip_id)

    async def get_for_update(self, clip_id: str) -> Clip | None:
        """Load a clip and lock its row until the transaction ends.

        Concurrent votes and claims on the same clip serialize on this lock,
        so each read-modify-write sees the previous one's result.
        """
        stmt = (
            select(Clip)
            .where(Clip.clip_id == clip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, clip_id: str) -> bool:
        result = await self._db.execute(
            select(sa.literal(True)).where(Clip.clip_id == clip_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add(self, clip: Clip) -> Clip:
        """Insert a clip.  A duplicate id surfaces as ``IntegrityError`` on flush."""
        self._db.add(clip)
        await self._db.flush()
        return clip

    async def delete(self, clip: Clip) -> None:
        await self._db.delete(clip)
        await self._db.flush()

    async def list_active(self, filters: ClipFilters | None = None) -> Sequence[Clip]:
        result = await self._db.execute(build_active_query(filters))
        return result.scalars().all()

    async def list_archived(self) -> Sequence[Clip]:
        stmt = (
            select(Clip)
            .where(Clip.status.in_(sorted(s.value for s in ARCHIVED_STATUSES)))
            .order_by(Clip.created_at.desc())
        )
        result = await self._db.execute(stmt)
        return result.scalars().all()

    async def archive_stale(
        self,
        published_before: datetime,
        discarded_before: datetime,
    ) -> tuple[int, int]:
        """Move stale terminal clips into their archived status.

        - ``PUBLISHED`` with ``published_at < published_before``
          -> ``ARCHIVED_PUBLISHED``
        - ``DISCARDED`` with ``created_at < discarded_before``
          -> ``ARCHIVED_DISCARDED``

        Returns:
            ``(published_count, discarded_count)``.
        """
        published = await self._db.execute(
            update(Clip)
            .where(
                Clip.status == ClipStatus.PUBLISHED.value,
                Clip.published_at.is_not(None),
                Clip.published_at < published_before,
            )
            .values(status=ClipStatus.ARCHIVED_PUBLISHED.value)
            .execution_options(synchronize_session=False)
        )
        discarded = await self._db.execute(
            update(Clip)
            .where(
                Clip.status == ClipStatus.DISCARDED.value,
                Clip.created_at < discarded_before,
            )
            .values(status=ClipStatus.ARCHIVED_DISCARDED.value)
            .execution_options(synchronize_session=False)
        )
        return published.rowcount or 0, discarded.rowcount or 0
