"""Celery application for Clip Review.

Runs the periodic archival sweep.  Broker and result backend come from
``Settings`` so nothing environment-specific is hard-coded here.

Usage (worker)::

    celery -A clip_review.workers.celery_app worker --loglevel=info

Usage (Beat scheduler)::

    celery -A clip_review.workers.celery_app beat --loglevel=info
"""

from __future__ import annotations

import logging

from celery import Celery
from celery.signals import task_postrun, worker_process_init
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

# Celery is started outside uvicorn; make .env values visible to Settings.
load_dotenv()

from clip_review.config.settings import get_settings  # noqa: E402
from clip_review.core.logging_config import configure_logging  # noqa: E402

settings = get_settings()
configure_logging(settings.log_level)

#: The global Celery application instance.
celery_app = Celery(
    "clip_review",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["clip_review.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=86_400,
    task_soft_time_limit=300,
    task_time_limit=600,
    beat_schedule_filename="celerybeat-schedule",
)

from clip_review.workers.beat_schedule import build_beat_schedule  # noqa: E402

celery_app.conf.beat_schedule = build_beat_schedule(settings.archive_sweep_hour)


# ---------------------------------------------------------------------------
# Engine disposal: asyncpg connections are bound to the event loop that
# opened them, and every task runs under its own ``asyncio.run()`` loop.
# ---------------------------------------------------------------------------
@worker_process_init.connect
def _dispose_engine_on_fork(**kwargs: object) -> None:  # noqa: ARG001
    """Drop pooled connections inherited from the parent process."""
    from clip_review.core import database as _db  # noqa: PLC0415

    _db.async_engine.sync_engine.dispose(close=False)
    _logger.debug("worker_process_init: async engine pool disposed")


@task_postrun.connect
def _dispose_engine_after_task(**kwargs: object) -> None:  # noqa: ARG001
    """Drop pooled connections bound to the finished task's event loop."""
    from clip_review.core import database as _db  # noqa: PLC0415

    _db.async_engine.sync_engine.dispose(close=False)
