"""Login through Twitch and app session token rotation.

Routes:
    POST /auth/twitch          exchange a Twitch OAuth code for an app session.
                                201 for a new user, 200 for a returning one.
    POST /auth/token/rotate    issue a new app session token; the old one
                                stops working immediately.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.api.dependencies import (
    get_current_user,
    get_twitch_auth_client,
    http_error,
)
from clip_review.core.database import get_db
from clip_review.core.exceptions import ClipReviewError
from clip_review.core.models.users import User
from clip_review.core.schemas.users import SessionRead, TwitchLogin
from clip_review.core.user_repository import UserRepository
from clip_review.twitch.auth_client import TwitchAuthClient

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/twitch", response_model=SessionRead, status_code=status.HTTP_200_OK)
async def login_with_twitch(
    body: TwitchLogin,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_client: Annotated[TwitchAuthClient, Depends(get_twitch_auth_client)],
) -> SessionRead:
    """Log a user in with the code from the Twitch OAuth redirect.

    Creates the user on first login.  Returning users keep their session
    token; their display name, avatar and Twitch tokens are refreshed.

    Raises:
        HTTPException 401: If Twitch rejects the code.
        HTTPException 403: If the user exists but is not whitelisted.
    """
    try:
        tokens = await auth_client.exchange_code(body.code)
        profile = await auth_client.get_user(tokens.access_token)
        user, created = await UserRepository(db).upsert_from_login(profile, tokens)
    except ClipReviewError as exc:
        logger.warning("auth.login_failed", error=str(exc))
        raise http_error(exc) from exc

    await db.commit()
    if created:
        response.status_code = status.HTTP_201_CREATED
    logger.info("auth.login", twitch_id=user.twitch_id, created=created)
    return SessionRead.model_validate(user)


@router.post("/token/rotate", response_model=SessionRead)
async def rotate_session_token(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SessionRead:
    """Replace the caller's app session token and return the new one."""
    await UserRepository(db).rotate_token(current_user)
    await db.commit()
    return SessionRead.model_validate(current_user)
