"""FastAPI dependency injection providers.

Dependency hierarchy::

    get_current_user    requires a known, whitelisted app session token
    require_expert      additionally requires role EXPERT

The session token is read, in order, from:

1. ``Authorization: Bearer <token>`` (a bare ``Authorization: <token>`` is
   accepted too),
2. the ``token`` query parameter.

A missing token answers 401.  An unknown token, or a user taken off the
whitelist, answers 403.

Also provides :func:`http_error`, which turns any
:class:`~clip_review.core.exceptions.ClipReviewError` into the matching
``HTTPException``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.core.clip_service import ClipService
from clip_review.core.database import get_db
from clip_review.core.exceptions import ClipFetchError, ClipReviewError
from clip_review.core.guards import can_administer_users, is_whitelisted
from clip_review.core.models.users import User
from clip_review.core.user_repository import UserRepository
from clip_review.twitch.auth_client import TwitchAuthClient


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def http_error(exc: ClipReviewError) -> HTTPException:
    """Build the ``HTTPException`` reported for a domain error.

    Usage::

        try:
            clip = await service.vote(user, clip_id, body.vote)
        except ClipReviewError as exc:
            raise http_error(exc) from exc
    """
    headers: dict[str, str] | None = None
    if isinstance(exc, ClipFetchError) and exc.retry_after is not None:
        headers = {"Retry-After": str(int(exc.retry_after))}
    return HTTPException(status_code=exc.status_code, detail=str(exc), headers=headers)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def extract_token(request: Request) -> str | None:
    """Return the app session token carried by *request*, if any."""
    header = request.headers.get("Authorization", "").strip()
    if header:
        scheme, _, value = header.partition(" ")
        if value and scheme.lower() == "bearer":
            return value.strip() or None
        if not value:
            return scheme
    return request.query_params.get("token") or None


async def get_current_user(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the app session token to a whitelisted :class:`User`.

    Raises:
        HTTPException 401: If no token is present.
        HTTPException 403: If the token is unknown or the user is not whitelisted.
    """
    token = extract_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await UserRepository(db).get_by_token(token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid token",
        )
    whitelisted = is_whitelisted(user)
    if not whitelisted:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=whitelisted.reason,
        )
    return user


async def require_expert(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Require a whitelisted user holding the ``EXPERT`` role.

    Raises:
        HTTPException 403: If the user is not an expert.
    """
    result = can_administer_users(user)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=result.reason,
        )
    return user


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def get_clip_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ClipService:
    """Build the request-scoped :class:`ClipService`."""
    return ClipService(db)


def get_twitch_auth_client() -> TwitchAuthClient:
    return TwitchAuthClient()
