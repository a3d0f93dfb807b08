"""Celery Beat schedule.

+---------------------------+---------------------+------------------------------+
| Entry                     | When (UTC)          | What                         |
+===========================+=====================+==============================+
| archive_stale_clips       | daily, sweep hour   | Archive PUBLISHED clips      |
|                           | (default 04:00)     | after 14 days and DISCARDED  |
|                           |                     | clips after 7 days.          |
+---------------------------+---------------------+------------------------------+
"""

from __future__ import annotations

from celery.schedules import crontab

ARCHIVE_TASK_NAME = "clip_review.workers.tasks.archive_stale_clips"


def build_beat_schedule(sweep_hour: int = 4) -> dict[str, dict]:  # type: ignore[type-arg]
    """Return the Beat schedule with the sweep at *sweep_hour*:00."""
    return {
        "archive_stale_clips": {
            "task": ARCHIVE_TASK_NAME,
            "schedule": crontab(hour=sweep_hour, minute=0),
            "options": {
                "expires": 3_600,  # discard if not started within 1 hour
            },
        },
    }
