"""Clip routes: proposal, review, editing, comments, archival.

Routes:
    GET    /clips/preview?link=              Twitch metadata for an unproposed link.
    POST   /clips                            propose a clip (201).
    GET    /clips                            active clips, newest first, filterable.
    GET    /clips/archived                   archived clips, newest first.
    POST   /clips/archive                    run the archival sweep now.
    GET    /clips/{clip_id}                  one clip.
    PUT    /clips/{clip_id}                  author update (subject, tags, editable).
    DELETE /clips/{clip_id}                  delete (author or expert).
    PUT    /clips/{clip_id}/vote             cast or change a vote.
    PUT    /clips/{clip_id}/publish          mark published (experts).
    PUT    /clips/{clip_id}/edit/claim       claim the edit task.
    PUT    /clips/{clip_id}/edit/release     finish the edit task (editor only).
    POST   /clips/{clip_id}/comments         add a comment.
    PUT    /clips/{clip_id}/comments/viewed  mark every comment read.
    GET    /clips/{clip_id}/download         Twitch download URLs.

All routes require a whitelisted user (``get_current_user``).  Domain
errors are mapped to HTTP statuses by :func:`http_error`.
"""

from __future__ import annotations

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clip_review.api.dependencies import get_clip_service, get_current_user, http_error
from clip_review.config.settings import get_settings
from clip_review.core.archival_service import ArchivalService
from clip_review.core.clip_repository import ClipFilters
from clip_review.core.clip_service import ClipService
from clip_review.core.database import get_db
from clip_review.core.exceptions import ClipReviewError
from clip_review.core.guards import can_run_sweep, require
from clip_review.core.lifecycle.states import ClipStatus, EditFilter
from clip_review.core.models.users import User
from clip_review.core.schemas.clips import (
    ClipCreate,
    ClipDownloadRead,
    ClipListResponse,
    ClipPreview,
    ClipRead,
    ClipUpdate,
    CommentCreate,
    SweepResult,
    VoteCreate,
)

logger = structlog.get_logger(__name__)

router = APIRouter()

CurrentUser = Annotated[User, Depends(get_current_user)]
Service = Annotated[ClipService, Depends(get_clip_service)]


# ---------------------------------------------------------------------------
# Collection routes (declared before /{clip_id} so they are not shadowed)
# ---------------------------------------------------------------------------


@router.get("/preview", response_model=ClipPreview)
async def preview_clip(
    link: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipPreview:
    try:
        metadata = await service.preview(current_user, link)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipPreview.model_validate(metadata)


@router.post("", response_model=ClipRead, status_code=status.HTTP_201_CREATED)
async def propose_clip(
    body: ClipCreate,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.propose(
            current_user,
            link=body.link,
            subject=body.subject,
            tags=body.tags,
            editable=body.editable,
            text=body.text,
        )
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.get("", response_model=ClipListResponse)
async def list_clips(
    current_user: CurrentUser,
    service: Service,
    tags: Annotated[list[str], Query()] = [],  # noqa: B006
    status_filter: Annotated[list[ClipStatus], Query(alias="status")] = [],  # noqa: B006
    edit: Annotated[list[EditFilter], Query()] = [],  # noqa: B006
    voted: Optional[bool] = None,
) -> ClipListResponse:
    """List active clips, newest first.

    ``tags`` keeps clips carrying any of the given tags.  ``status`` and
    ``edit`` accept several values.  ``voted=true`` keeps clips the caller
    voted on, ``voted=false`` the others.
    """
    filters = ClipFilters(
        tags=list(tags),
        statuses=list(status_filter),
        edit_states=list(edit),
        voted=voted,
        voter_id=current_user.twitch_id,
    )
    clips = await service.list_active(filters)
    return ClipListResponse(
        count=len(clips),
        clips=[ClipRead.model_validate(c) for c in clips],
    )


@router.get("/archived", response_model=ClipListResponse)
async def list_archived_clips(
    current_user: CurrentUser,
    service: Service,
) -> ClipListResponse:
    clips = await service.list_archived()
    return ClipListResponse(
        count=len(clips),
        clips=[ClipRead.model_validate(c) for c in clips],
    )


@router.post("/archive", response_model=SweepResult)
async def archive_clips(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SweepResult:
    """Run the archival sweep on demand."""
    try:
        require(can_run_sweep(current_user))
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    settings = get_settings()
    report = await ArchivalService().sweep(
        db,
        published_retention_days=settings.published_retention_days,
        discarded_retention_days=settings.discarded_retention_days,
    )
    logger.info("archive.triggered", by=current_user.twitch_id, total=report.total)
    return SweepResult.from_report(report)


# ---------------------------------------------------------------------------
# Single-clip routes
# ---------------------------------------------------------------------------


@router.get("/{clip_id}", response_model=ClipRead)
async def get_clip(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.get(clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.put("/{clip_id}", response_model=ClipRead)
async def update_clip(
    clip_id: str,
    body: ClipUpdate,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.update(
            current_user,
            clip_id,
            subject=body.subject,
            tags=body.tags,
            editable=body.editable,
            text=body.text,
        )
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.delete("/{clip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_clip(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> None:
    try:
        await service.delete(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc


@router.put("/{clip_id}/vote", response_model=ClipRead)
async def vote_on_clip(
    clip_id: str,
    body: VoteCreate,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.vote(current_user, clip_id, body.vote)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.put("/{clip_id}/publish", response_model=ClipRead)
async def publish_clip(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.publish(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.put("/{clip_id}/edit/claim", response_model=ClipRead)
async def claim_clip_edit(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.claim_edit(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.put("/{clip_id}/edit/release", response_model=ClipRead)
async def release_clip_edit(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.release_edit(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.post("/{clip_id}/comments", response_model=ClipRead, status_code=status.HTTP_201_CREATED)
async def add_clip_comment(
    clip_id: str,
    body: CommentCreate,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.add_comment(current_user, clip_id, body.text)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.put("/{clip_id}/comments/viewed", response_model=ClipRead)
async def mark_clip_comments_viewed(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipRead:
    try:
        clip = await service.mark_comments_viewed(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipRead.model_validate(clip)


@router.get("/{clip_id}/download", response_model=ClipDownloadRead)
async def get_clip_download(
    clip_id: str,
    current_user: CurrentUser,
    service: Service,
) -> ClipDownloadRead:
    try:
        download = await service.download(current_user, clip_id)
    except ClipReviewError as exc:
        raise http_error(exc) from exc
    return ClipDownloadRead.model_validate(download)
