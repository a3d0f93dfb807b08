"""Archival sweep: move stale terminal clips into the archived buckets.

Two bulk UPDATEs, one per bucket:

1. ``PUBLISHED`` clips published more than ``published_retention_days`` ago
   become ``ARCHIVED_PUBLISHED``.
2. ``DISCARDED`` clips created more than ``discarded_retention_days`` ago
   become ``ARCHIVED_DISCARDED``.

The sweep only touches clips in statuses that no vote or claim can change
any more, so it is safe to run alongside request traffic.  It is
idempotent: a second run right after the first moves nothing.

Usage::

    from clip_review.core.archival_service import ArchivalService

    report = await ArchivalService().sweep(db)
    report.total
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.clip_repository import ClipRepository
from clip_review.core.models.base import utc_now

logger = structlog.get_logger(__name__)

DEFAULT_PUBLISHED_RETENTION_DAYS = 14
DEFAULT_DISCARDED_RETENTION_DAYS = 7


@dataclass(frozen=True)
class SweepReport:
    """Counts of clips moved by one sweep."""

    published_count: int
    discarded_count: int

    @property
    def total(self) -> int:
        return self.published_count + self.discarded_count

    def as_dict(self) -> dict[str, int]:
        return {**asdict(self), "total": self.total}


class ArchivalService:
    """Stateless archival sweep.

    All methods accept the ``AsyncSession`` from the caller; the sweep
    commits its own transaction.
    """

    async def sweep(
        self,
        db: AsyncSession,
        published_retention_days: int = DEFAULT_PUBLISHED_RETENTION_DAYS,
        discarded_retention_days: int = DEFAULT_DISCARDED_RETENTION_DAYS,
        now: datetime | None = None,
    ) -> SweepReport:
        """Archive every stale ``PUBLISHED`` and ``DISCARDED`` clip.

        Args:
            db: Active async database session.
            published_retention_days: Age of ``published_at`` after which a
                published clip is archived.
            discarded_retention_days: Age of ``created_at`` after which a
                discarded clip is archived.
            now: Reference time.  Defaults to the current UTC time.

        Returns:
            A :class:`SweepReport` with the number of clips moved per bucket.
        """
        now = now or utc_now()
        published_before = now - timedelta(days=published_retention_days)
        discarded_before = now - timedelta(days=discarded_retention_days)

        published_count, discarded_count = await ClipRepository(db).archive_stale(
            published_before=published_before,
            discarded_before=discarded_before,
        )
        await db.commit()

        report = SweepReport(
            published_count=published_count,
            discarded_count=discarded_count,
        )
        logger.info(
            "archive.sweep_complete",
            published_before=published_before.isoformat(),
            discarded_before=discarded_before.isoformat(),
            **report.as_dict(),
        )
        return report
