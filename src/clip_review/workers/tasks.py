"""Periodic Celery tasks.

- ``archive_stale_clips``: runs the archival sweep with the retention
  windows from ``Settings``.

Tasks are synchronous Celery tasks that bridge to the async database layer
via ``asyncio.run()``.  Errors are logged and reported in the task result
instead of being re-raised: the next scheduled run picks up whatever this
one missed, and the sweep is idempotent.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from clip_review.config.settings import get_settings
from clip_review.core.archival_service import ArchivalService, SweepReport
from clip_review.core.database import AsyncSessionLocal
from clip_review.workers.beat_schedule import ARCHIVE_TASK_NAME
from clip_review.workers.celery_app import celery_app

logger = structlog.get_logger(__name__)

_archival_service = ArchivalService()


async def run_sweep(published_retention_days: int, discarded_retention_days: int) -> SweepReport:
    """Run one sweep in a fresh session."""
    async with AsyncSessionLocal() as db:
        return await _archival_service.sweep(
            db,
            published_retention_days=published_retention_days,
            discarded_retention_days=discarded_retention_days,
        )


@celery_app.task(name=ARCHIVE_TASK_NAME)
def archive_stale_clips() -> dict[str, Any]:
    """Archive stale PUBLISHED and DISCARDED clips.

    Returns:
        Dict with ``published``, ``discarded`` and ``total`` counts, or an
        ``error`` key when the sweep failed.
    """
    settings = get_settings()
    log = logger.bind(task="archive_stale_clips")
    log.info(
        "archive_stale_clips: starting",
        published_retention_days=settings.published_retention_days,
        discarded_retention_days=settings.discarded_retention_days,
    )
    try:
        report = asyncio.run(
            run_sweep(
                settings.published_retention_days,
                settings.discarded_retention_days,
            )
        )
    except (SQLAlchemyError, OSError) as exc:
        log.error("archive_stale_clips: error", error=str(exc), exc_info=True)
        return {"error": str(exc), "published": 0, "discarded": 0, "total": 0}

    summary = {
        "published": report.published_count,
        "discarded": report.discarded_count,
        "total": report.total,
    }
    log.info("archive_stale_clips: complete", **summary)
    return summary
