"""Unit tests for ClipService.

Tests cover:
- propose(): validation order, duplicate rejection, seed vote, initial
  status, optional first comment, IntegrityError mapping, nothing written
  when the Twitch lookup fails
- update(): author-only, archived rejection, editable recompute
- delete(), vote(), publish()
- claim_edit() / release_edit()
- add_comment() / mark_comments_viewed()
- download()

Repositories are replaced by mocks on the service instance; the Twitch
client and token service are injected mocks.  No database or network.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from clip_review.core.clip_service import ClipService, normalize_tags, sanitize_subject
from clip_review.core.exceptions import (
    ArchivedClipError,
    AuthorizationError,
    ClipFetchError,
    ClipNotFoundError,
    ConflictError,
    DuplicateClipError,
    EditStateError,
    ExternalAuthError,
    ValidationError,
)
from clip_review.core.models.clips import Clip
from clip_review.twitch.types import ClipDownload, ClipMetadata
from tests.factories.clips import CommentEntryFactory, VoteEntryFactory

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
LINK = "https://clips.twitch.tv/AwkwardHelplessSalamander"
CLIP_ID = "AwkwardHelplessSalamander"

METADATA = ClipMetadata(
    clip_id=CLIP_ID,
    title="Clutch 1v3",
    thumbnail_url="https://clips-media-assets2.twitch.tv/preview.jpg",
    embed_url="https://clips.twitch.tv/embed?clip=AwkwardHelplessSalamander",
    broadcaster_id="67955580",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_service(
    session: MagicMock,
    *,
    clip: Clip | None = None,
    experts: set[str] | None = None,
    exists: bool = False,
    fetch_error: Exception | None = None,
) -> ClipService:
    """Build a ClipService whose collaborators are all mocks.

    Args:
        session: Mock AsyncSession.
        clip: Returned by ``get`` and ``get_for_update``.
        experts: Live expert roster returned by ``list_expert_ids``.
        exists: Result of the duplicate check.
        fetch_error: Raised by ``fetch_clip`` instead of returning metadata.
    """
    clip_client = MagicMock()
    if fetch_error is not None:
        clip_client.fetch_clip = AsyncMock(side_effect=fetch_error)
    else:
        clip_client.fetch_clip = AsyncMock(return_value=METADATA)
    clip_client.fetch_download = AsyncMock(
        return_value=ClipDownload(CLIP_ID, "https://dl/landscape.mp4", None)
    )
    token_service = MagicMock()
    token_service.get_valid_access_token = AsyncMock(return_value="access-token")

    service = ClipService(
        session,
        clip_client=clip_client,
        token_service=token_service,
        clock=lambda: NOW,
    )
    service.clips = MagicMock()
    service.clips.exists = AsyncMock(return_value=exists)
    service.clips.add = AsyncMock(side_effect=lambda c: c)
    service.clips.get = AsyncMock(return_value=clip)
    service.clips.get_for_update = AsyncMock(return_value=clip)
    service.clips.delete = AsyncMock()
    service.users = MagicMock()
    service.users.list_expert_ids = AsyncMock(return_value=set(experts or ()))
    return service


def _votes(**results: str) -> list[dict[str, Any]]:
    return [VoteEntryFactory.build(voter_id=vid, result=res) for vid, res in results.items()]


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class TestInputValidation:
    def test_subject_is_trimmed(self) -> None:
        assert sanitize_subject("  Big play  ") == "Big play"

    @pytest.mark.parametrize("subject", ["", "a", " a ", "x" * 101, None])
    def test_subject_length(self, subject: Any) -> None:
        with pytest.raises(ValidationError):
            sanitize_subject(subject)

    def test_tags_are_deduplicated_in_order(self) -> None:
        assert normalize_tags(["fail", " funny ", "fail", ""]) == ["fail", "funny"]

    @pytest.mark.parametrize("tags", [[], ["", "  "], "fail", [1]])
    def test_tags_need_one_string(self, tags: Any) -> None:
        with pytest.raises(ValidationError):
            normalize_tags(tags)


# ---------------------------------------------------------------------------
# propose()
# ---------------------------------------------------------------------------


class TestPropose:
    async def test_creates_clip_with_author_seed_vote(self, mock_session, member) -> None:
        service = _make_service(mock_session, experts={"2001", "2002"})

        clip = await service.propose(member, LINK, " Clutch 1v3 ", ["fps", "fps", "clutch"])

        assert clip.clip_id == CLIP_ID
        assert clip.subject == "Clutch 1v3"
        assert clip.tags == ["fps", "clutch"]
        assert clip.author_id == member.twitch_id
        assert clip.image_url == METADATA.thumbnail_url
        assert clip.embed_url == METADATA.embed_url
        assert clip.status == "PROPOSED"
        assert clip.edit_progress == "UNSET"
        assert clip.editor_id is None
        assert clip.created_at == NOW
        assert clip.published_at is None
        assert clip.votes == [
            {
                "voter_id": member.twitch_id,
                "voter_name": member.username,
                "voter_avatar": member.avatar_url,
                "voter_role": "MEMBER",
                "result": "OK",
            }
        ]
        assert clip.comments == []
        mock_session.commit.assert_awaited_once()

    async def test_editable_proposal_seeds_to_review(self, mock_session, member) -> None:
        service = _make_service(mock_session)

        clip = await service.propose(member, LINK, "Needs a cut", ["raw"], editable=True)

        assert clip.editable is True
        assert clip.votes[0]["result"] == "TO_REVIEW"

    async def test_sole_expert_author_makes_clip_ready(self, mock_session, expert) -> None:
        service = _make_service(mock_session, experts={expert.twitch_id})

        clip = await service.propose(expert, LINK, "Solo review", ["solo"])

        assert clip.status == "READY"

    async def test_first_comment_is_attached(self, mock_session, member) -> None:
        service = _make_service(mock_session)

        clip = await service.propose(member, LINK, "With note", ["x"], text="  watch 0:12 ")

        assert len(clip.comments) == 1
        assert clip.comments[0]["text"] == "watch 0:12"
        assert clip.comments[0]["viewed_by"] == [member.twitch_id]

    async def test_blank_comment_is_ignored(self, mock_session, member) -> None:
        service = _make_service(mock_session)

        clip = await service.propose(member, LINK, "No note", ["x"], text="   ")

        assert clip.comments == []

    async def test_invalid_link(self, mock_session, member) -> None:
        service = _make_service(mock_session)

        with pytest.raises(ValidationError, match="Invalid Twitch clip link"):
            await service.propose(member, "https://youtube.com/watch?v=1", "Subject", ["x"])
        service._clip_client.fetch_clip.assert_not_awaited()

    async def test_duplicate_rejected_before_twitch_lookup(self, mock_session, member) -> None:
        service = _make_service(mock_session, exists=True)

        with pytest.raises(DuplicateClipError) as exc_info:
            await service.propose(member, LINK, "Subject", ["x"])

        assert exc_info.value.status_code == 409
        service._clip_client.fetch_clip.assert_not_awaited()
        service.clips.add.assert_not_awaited()

    async def test_validation_runs_before_duplicate_check(self, mock_session, member) -> None:
        service = _make_service(mock_session, exists=True)

        with pytest.raises(ValidationError):
            await service.propose(member, LINK, "S", ["x"])
        service.clips.exists.assert_not_awaited()

    async def test_concurrent_duplicate_maps_integrity_error(self, mock_session, member) -> None:
        service = _make_service(mock_session)
        service.clips.add = AsyncMock(side_effect=IntegrityError("INSERT", {}, Exception("dup")))

        with pytest.raises(DuplicateClipError):
            await service.propose(member, LINK, "Subject", ["x"])

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.parametrize(
        "error",
        [
            ClipFetchError("Clip not found on Twitch", upstream_status=404),
            ClipFetchError("rate limited", upstream_status=429, retry_after=30),
            ExternalAuthError("Twitch session expired"),
        ],
    )
    async def test_twitch_failure_writes_nothing(self, mock_session, member, error) -> None:
        service = _make_service(mock_session, fetch_error=error)

        with pytest.raises(type(error)):
            await service.propose(member, LINK, "Subject", ["x"])

        service.clips.add.assert_not_awaited()
        mock_session.commit.assert_not_awaited()


class TestPreview:
    async def test_returns_metadata(self, mock_session, member) -> None:
        service = _make_service(mock_session)

        assert await service.preview(member, LINK) == METADATA

    async def test_rejects_already_proposed(self, mock_session, member) -> None:
        service = _make_service(mock_session, exists=True)

        with pytest.raises(DuplicateClipError):
            await service.preview(member, LINK)


# ---------------------------------------------------------------------------
# update() / delete()
# ---------------------------------------------------------------------------


class TestUpdate:
    async def test_author_updates_subject_and_tags(self, mock_session, member, make_clip) -> None:
        clip = make_clip(author_id=member.twitch_id)
        service = _make_service(mock_session, clip=clip)

        await service.update(member, clip.clip_id, subject=" New subject ", tags=["a", "a", "b"])

        assert clip.subject == "New subject"
        assert clip.tags == ["a", "b"]
        mock_session.commit.assert_awaited_once()

    async def test_non_author_is_rejected(self, mock_session, member, expert, make_clip) -> None:
        clip = make_clip(author_id=member.twitch_id)
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(AuthorizationError, match="not the author"):
            await service.update(expert, clip.clip_id, subject="Hijack")
        mock_session.commit.assert_not_awaited()

    async def test_archived_clip_is_read_only(self, mock_session, member, make_clip) -> None:
        clip = make_clip(author_id=member.twitch_id, status="ARCHIVED_PUBLISHED")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ArchivedClipError) as exc_info:
            await service.update(member, clip.clip_id, subject="Too late")
        assert exc_info.value.status_code == 403

    async def test_clearing_editable_makes_clip_ready(self, mock_session, member, make_clip) -> None:
        clip = make_clip(
            author_id=member.twitch_id,
            editable=True,
            votes=_votes(e1="OK", e2="OK", e3="OK"),
        )
        service = _make_service(mock_session, clip=clip, experts={"e1", "e2", "e3"})

        await service.update(member, clip.clip_id, editable=False)

        assert clip.editable is False
        assert clip.status == "READY"

    async def test_setting_editable_demotes_ready(self, mock_session, member, make_clip) -> None:
        clip = make_clip(
            author_id=member.twitch_id,
            status="READY",
            votes=_votes(e1="OK", e2="OK", e3="OK"),
        )
        service = _make_service(mock_session, clip=clip, experts={"e1", "e2", "e3"})

        await service.update(member, clip.clip_id, editable=True)

        assert clip.status == "PROPOSED"

    async def test_cannot_reopen_finished_edit(self, mock_session, member, make_clip) -> None:
        clip = make_clip(author_id=member.twitch_id, edit_progress="TERMINATED", editor_id="9")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(EditStateError):
            await service.update(member, clip.clip_id, editable=True)
        assert clip.editable is False

    async def test_unknown_clip(self, mock_session, member) -> None:
        service = _make_service(mock_session, clip=None)

        with pytest.raises(ClipNotFoundError):
            await service.update(member, "missing", subject="Whatever")


class TestDelete:
    async def test_author_deletes(self, mock_session, member, make_clip) -> None:
        clip = make_clip(author_id=member.twitch_id)
        service = _make_service(mock_session, clip=clip)

        await service.delete(member, clip.clip_id)

        service.clips.delete.assert_awaited_once_with(clip)
        mock_session.commit.assert_awaited_once()

    async def test_expert_deletes_someone_elses_clip(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(author_id="1001")
        service = _make_service(mock_session, clip=clip)

        await service.delete(expert, clip.clip_id)

        service.clips.delete.assert_awaited_once_with(clip)

    async def test_other_member_cannot_delete(self, mock_session, make_user, make_clip) -> None:
        clip = make_clip(author_id="1001")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(AuthorizationError):
            await service.delete(make_user(), clip.clip_id)
        service.clips.delete.assert_not_awaited()

    async def test_archived_clip_cannot_be_deleted(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(status="ARCHIVED_DISCARDED")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ArchivedClipError):
            await service.delete(expert, clip.clip_id)


# ---------------------------------------------------------------------------
# vote() / publish()
# ---------------------------------------------------------------------------


class TestVote:
    async def test_vote_uses_live_expert_roster(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(votes=_votes(e1="OK"))
        service = _make_service(mock_session, clip=clip, experts={"e1", expert.twitch_id})

        await service.vote(expert, clip.clip_id, "OK")

        assert clip.status == "READY"
        assert len(clip.votes) == 2
        service.users.list_expert_ids.assert_awaited_once()
        mock_session.commit.assert_awaited_once()

    async def test_ko_majority_discards(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(votes=_votes(e1="KO"))
        service = _make_service(mock_session, clip=clip, experts={"e1", expert.twitch_id, "e3"})

        await service.vote(expert, clip.clip_id, "KO")

        assert clip.status == "DISCARDED"

    async def test_invalid_vote_changes_nothing(self, mock_session, expert, make_clip) -> None:
        clip = make_clip()
        service = _make_service(mock_session, clip=clip, experts={expert.twitch_id})

        with pytest.raises(ValidationError):
            await service.vote(expert, clip.clip_id, "MAYBE")
        assert clip.votes == []
        mock_session.commit.assert_not_awaited()

    async def test_archived_clip_rejects_vote(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(status="ARCHIVED_PUBLISHED")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ArchivedClipError):
            await service.vote(expert, clip.clip_id, "OK")

    async def test_unknown_clip(self, mock_session, expert) -> None:
        service = _make_service(mock_session, clip=None)

        with pytest.raises(ClipNotFoundError):
            await service.vote(expert, "missing", "OK")


class TestPublish:
    async def test_expert_publishes_ready_clip(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(status="READY")
        service = _make_service(mock_session, clip=clip)

        await service.publish(expert, clip.clip_id)

        assert clip.status == "PUBLISHED"
        assert clip.published_at == NOW

    async def test_member_cannot_publish(self, mock_session, member, make_clip) -> None:
        clip = make_clip(status="READY")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(AuthorizationError, match="Only experts"):
            await service.publish(member, clip.clip_id)
        assert clip.status == "READY"

    @pytest.mark.parametrize("status", ["DISCARDED", "PUBLISHED"])
    async def test_publish_from_other_status_conflicts(self, mock_session, expert, make_clip, status) -> None:
        clip = make_clip(status=status)
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ConflictError):
            await service.publish(expert, clip.clip_id)

    async def test_archived_clip_cannot_be_published(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(status="ARCHIVED_DISCARDED")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ArchivedClipError):
            await service.publish(expert, clip.clip_id)


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


class TestEditing:
    async def test_claim_then_release(self, mock_session, member, make_clip) -> None:
        clip = make_clip(editable=True)
        service = _make_service(mock_session, clip=clip)

        await service.claim_edit(member, clip.clip_id)
        assert clip.edit_progress == "IN_PROGRESS"
        assert clip.editor_id == member.twitch_id

        await service.release_edit(member, clip.clip_id)
        assert clip.edit_progress == "TERMINATED"
        assert clip.editable is False
        assert mock_session.commit.await_count == 2

    async def test_second_claimer_gets_conflict(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(editable=True, edit_progress="IN_PROGRESS", editor_id="1001")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ConflictError):
            await service.claim_edit(expert, clip.clip_id)
        assert clip.editor_id == "1001"

    async def test_claim_on_non_editable_clip(self, mock_session, member, make_clip) -> None:
        clip = make_clip(editable=False)
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(AuthorizationError):
            await service.claim_edit(member, clip.clip_id)

    async def test_only_editor_releases(self, mock_session, expert, make_clip) -> None:
        clip = make_clip(editable=True, edit_progress="IN_PROGRESS", editor_id="1001")
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(AuthorizationError):
            await service.release_edit(expert, clip.clip_id)
        assert clip.edit_progress == "IN_PROGRESS"


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------


class TestComments:
    async def test_add_comment(self, mock_session, member, make_clip) -> None:
        clip = make_clip(comments=[CommentEntryFactory.build()])
        service = _make_service(mock_session, clip=clip)

        await service.add_comment(member, clip.clip_id, "Nice one")

        assert len(clip.comments) == 2
        assert clip.comments[-1]["author_id"] == member.twitch_id
        assert clip.comments[-1]["created_at"] == NOW.isoformat()

    async def test_add_comment_on_archived_clip_is_allowed(self, mock_session, member, make_clip) -> None:
        clip = make_clip(status="ARCHIVED_PUBLISHED")
        service = _make_service(mock_session, clip=clip)

        await service.add_comment(member, clip.clip_id, "Still great")

        assert len(clip.comments) == 1

    async def test_invalid_comment(self, mock_session, member, make_clip) -> None:
        clip = make_clip()
        service = _make_service(mock_session, clip=clip)

        with pytest.raises(ValidationError):
            await service.add_comment(member, clip.clip_id, "x")
        mock_session.commit.assert_not_awaited()

    async def test_mark_viewed_commits_only_on_change(self, mock_session, member, make_clip) -> None:
        clip = make_clip(comments=[CommentEntryFactory.build()])
        service = _make_service(mock_session, clip=clip)

        await service.mark_comments_viewed(member, clip.clip_id)
        await service.mark_comments_viewed(member, clip.clip_id)

        assert member.twitch_id in clip.comments[0]["viewed_by"]
        mock_session.commit.assert_awaited_once()


# ---------------------------------------------------------------------------
# download()
# ---------------------------------------------------------------------------


class TestDownload:
    async def test_download_uses_caller_as_editor(self, mock_session, member, make_clip) -> None:
        clip = make_clip(clip_id=CLIP_ID)
        service = _make_service(mock_session, clip=clip)

        download = await service.download(member, CLIP_ID)

        assert download.landscape_download_url == "https://dl/landscape.mp4"
        service._clip_client.fetch_download.assert_awaited_once_with(
            CLIP_ID,
            broadcaster_id="67955580",
            editor_id=member.twitch_id,
            access_token="access-token",
        )

    async def test_download_unknown_clip(self, mock_session, member) -> None:
        service = _make_service(mock_session, clip=None)

        with pytest.raises(ClipNotFoundError):
            await service.download(member, "missing")
        service._clip_client.fetch_clip.assert_not_awaited()
