"""Deep health check.

``GET /api/health`` verifies the process can reach the database
(``SELECT 1``).  Always returns HTTP 200; the ``status`` field is ``"ok"``
or ``"degraded"``.  The shallow liveness probe lives at ``/health`` in
``api/main.py``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import sqlalchemy as sa
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clip_review.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


async def _check_database() -> str:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(sa.text("SELECT 1"))
        return "ok"
    except (SQLAlchemyError, OSError):
        logger.exception("Health check: database unreachable")
        return "error"


@router.get("/api/health")
async def health_check() -> JSONResponse:
    database = await _check_database()
    return JSONResponse({
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    })
