"""User listing and administration.

Routes:
    GET   /users                        whitelisted users (any authenticated user).
    PATCH /users/{twitch_id}/role       set MEMBER / EXPERT (experts only).
    PATCH /users/{twitch_id}/whitelist  grant or revoke access (experts only).

Role changes take effect on the next vote of every clip: tallies always read
the live expert roster.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.api.dependencies import get_current_user, http_error, require_expert
from clip_review.core.database import get_db
from clip_review.core.exceptions import ClipReviewError
from clip_review.core.models.users import User
from clip_review.core.schemas.users import (
    RoleUpdate,
    UserListResponse,
    UserRead,
    WhitelistUpdate,
)
from clip_review.core.user_repository import UserRepository

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserListResponse:
    users = await UserRepository(db).list_whitelisted()
    return UserListResponse(
        count=len(users),
        users=[UserRead.model_validate(u) for u in users],
    )


@router.patch("/{twitch_id}/role", response_model=UserRead)
async def set_user_role(
    twitch_id: str,
    body: RoleUpdate,
    expert: Annotated[User, Depends(require_expert)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserRead:
    try:
        user = await UserRepository(db).set_role(twitch_id, body.role)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    await db.commit()
    logger.info("user.role_changed", twitch_id=twitch_id, role=user.role, by=expert.twitch_id)
    return UserRead.model_validate(user)


@router.patch("/{twitch_id}/whitelist", response_model=UserRead)
async def set_user_whitelist(
    twitch_id: str,
    body: WhitelistUpdate,
    expert: Annotated[User, Depends(require_expert)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserRead:
    try:
        user = await UserRepository(db).set_whitelist(twitch_id, body.whitelist)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    await db.commit()
    logger.info(
        "user.whitelist_changed",
        twitch_id=twitch_id,
        whitelist=user.whitelist,
        by=expert.twitch_id,
    )
    return UserRead.model_validate(user)
