"""Authorization guards for clip operations.

Each predicate returns a :class:`GuardResult` instead of raising, so that
operations can combine them (``any_of``) before deciding.  ``require``
turns a failed result into an :class:`AuthorizationError` carrying the
reason shown to the user.

Usage::

    require(any_of(is_author(clip, user.twitch_id), is_expert(user)))

Per-operation policies are collected at the bottom of the module so the
service layer never branches on roles itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from clip_review.core.exceptions import AuthorizationError
from clip_review.core.lifecycle.states import EditProgress, Role


@dataclass(frozen=True)
class GuardResult:
    """Outcome of an authorization predicate."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


_ALLOWED = GuardResult(allowed=True)


def is_author(clip: Any, user_id: str) -> GuardResult:
    """Pass when *user_id* proposed the clip."""
    if clip.author_id == user_id:
        return _ALLOWED
    return GuardResult(False, "You are not the author of this clip")


def is_expert(user: Any) -> GuardResult:
    """Pass when the user holds the ``EXPERT`` role.  Whitelist is not checked."""
    if user.role == Role.EXPERT.value:
        return _ALLOWED
    return GuardResult(False, "Only experts can perform this action")


def is_edit_claim_owner(clip: Any, user_id: str) -> GuardResult:
    """Pass when *user_id* holds the active edit claim of the clip."""
    if clip.edit_progress == EditProgress.IN_PROGRESS.value and clip.editor_id == user_id:
        return _ALLOWED
    return GuardResult(False, "You are not the editor of this clip")


def is_whitelisted(user: Any) -> GuardResult:
    """Pass when the user is on the whitelist."""
    if user.whitelist:
        return _ALLOWED
    return GuardResult(False, "User is not whitelisted")


def any_of(*results: GuardResult) -> GuardResult:
    """Pass when at least one result passes; otherwise keep the first reason."""
    for result in results:
        if result.allowed:
            return _ALLOWED
    reason = results[0].reason if results else "Forbidden"
    return GuardResult(False, reason)


def require(result: GuardResult) -> None:
    """Raise :class:`AuthorizationError` unless *result* passes."""
    if not result.allowed:
        raise AuthorizationError(result.reason or "Forbidden")


# ---------------------------------------------------------------------------
# Per-operation policies
# ---------------------------------------------------------------------------


def can_delete(clip: Any, user: Any) -> GuardResult:
    return any_of(is_author(clip, user.twitch_id), is_expert(user))


def can_publish(user: Any) -> GuardResult:
    return is_expert(user)


def can_update(clip: Any, user: Any) -> GuardResult:
    return is_author(clip, user.twitch_id)


def can_run_sweep(user: Any) -> GuardResult:
    return is_whitelisted(user)


def can_administer_users(user: Any) -> GuardResult:
    return is_expert(user)
