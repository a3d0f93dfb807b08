"""Comment ledger: append-only remarks with per-comment read receipts."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from clip_review.core.exceptions import ValidationError
from clip_review.core.lifecycle.states import Participant

COMMENT_MIN_LENGTH = 2
COMMENT_MAX_LENGTH = 400


def sanitize_text(text: Any) -> str:
    """Trim a comment and check its length.

    Raises:
        ValidationError: Unless the trimmed text is 2-400 characters long.
    """
    if not isinstance(text, str):
        raise ValidationError("Comment text must be a string", field="text")
    cleaned = text.strip()
    if not COMMENT_MIN_LENGTH <= len(cleaned) <= COMMENT_MAX_LENGTH:
        raise ValidationError(
            f"Comment must be between {COMMENT_MIN_LENGTH} and "
            f"{COMMENT_MAX_LENGTH} characters",
            field="text",
        )
    return cleaned


def add_comment(
    comments: Sequence[dict[str, Any]],
    author: Participant,
    text: Any,
    now: datetime,
) -> list[dict[str, Any]]:
    """Return a new comment list with one comment appended.

    The author is recorded as having viewed their own comment.
    """
    cleaned = sanitize_text(text)
    return [
        *(dict(c) for c in comments),
        {
            "author_id": author.user_id,
            "author_name": author.name,
            "author_avatar": author.avatar_url,
            "text": cleaned,
            "created_at": now.isoformat(),
            "viewed_by": [author.user_id],
        },
    ]


def mark_all_viewed(
    comments: Sequence[dict[str, Any]],
    user_id: str,
) -> tuple[list[dict[str, Any]], bool]:
    """Add *user_id* to ``viewed_by`` of every comment.

    Returns:
        The new comment list and whether any comment changed.
    """
    changed = False
    updated: list[dict[str, Any]] = []
    for comment in comments:
        viewed_by = list(comment.get("viewed_by") or [])
        if user_id not in viewed_by:
            viewed_by.append(user_id)
            changed = True
        updated.append({**comment, "viewed_by": viewed_by})
    return updated, changed
