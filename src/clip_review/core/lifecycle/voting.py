"""Vote tally engine.

Pure functions that turn a clip's votes, the live expert roster and a new
vote into the next vote list and review status.  Nothing here reads the
database; the roster is always passed in by the caller so it reflects the
membership at the time of the call.

Status rule, first match wins:

1. every current expert has voted, the clip is not ``editable`` and
   ``ok >= threshold``  -> ``READY``
2. ``ko >= threshold``  -> ``DISCARDED`` (before full participation too)
3. otherwise  -> ``PROPOSED``

``threshold`` is a strict majority of the whole roster
(``total_experts // 2 + 1``), never of the votes cast.  With no experts the
threshold is 1 and cannot be reached, so the clip stays ``PROPOSED``.

Votes cast by users who are no longer experts stay in the list but do not
count.  ``PUBLISHED`` and the archived statuses are frozen: the status rule
does not apply to them.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from clip_review.core.exceptions import ArchivedClipError, InvalidVoteError
from clip_review.core.lifecycle.states import (
    ClipState,
    ClipStatus,
    Participant,
    VoteResult,
)

# Older clients send camelCase for the review vote.
_LEGACY_VOTE_ALIASES: dict[str, VoteResult] = {
    "toReview": VoteResult.TO_REVIEW,
}


@dataclass(frozen=True)
class Tally:
    """Expert vote counts for one clip.

    Attributes:
        total_experts: Size of the live expert roster.
        ok: Expert ``OK`` votes.
        ko: Expert ``KO`` votes.
        all_experts_voted: Every roster member has a vote on file
            (vacuously True for an empty roster).
        majority_threshold: ``total_experts // 2 + 1``.
    """

    total_experts: int
    ok: int
    ko: int
    all_experts_voted: bool
    majority_threshold: int


@dataclass(frozen=True)
class VoteOutcome:
    """Result of applying a vote: the new vote list and the new status."""

    votes: list[dict[str, Any]]
    status: ClipStatus


def normalize_vote(value: Any) -> VoteResult:
    """Validate a vote literal and return it as a :class:`VoteResult`.

    Raises:
        InvalidVoteError: If *value* is not ``OK``, ``KO`` or ``TO_REVIEW``
            (``toReview`` is accepted as an alias).
    """
    if isinstance(value, VoteResult):
        return value
    if isinstance(value, str):
        if value in _LEGACY_VOTE_ALIASES:
            return _LEGACY_VOTE_ALIASES[value]
        try:
            return VoteResult(value)
        except ValueError:
            pass
    raise InvalidVoteError(value)


def upsert_vote(
    votes: Sequence[dict[str, Any]],
    voter: Participant,
    result: VoteResult,
) -> list[dict[str, Any]]:
    """Return a new vote list with *voter*'s vote set to *result*.

    An existing entry for the voter is overwritten in place, keeping its
    position.  Otherwise a new entry is appended carrying a snapshot of the
    voter's name, avatar and role.  The input sequence is not modified.
    """
    updated: list[dict[str, Any]] = []
    found = False
    for entry in votes:
        if entry.get("voter_id") == voter.user_id and not found:
            updated.append({**entry, "result": result.value})
            found = True
        elif entry.get("voter_id") == voter.user_id:
            # Collapse stray duplicates left by concurrent legacy writes.
            continue
        else:
            updated.append(dict(entry))
    if not found:
        updated.append({
            "voter_id": voter.user_id,
            "voter_name": voter.name,
            "voter_avatar": voter.avatar_url,
            "voter_role": voter.role.value,
            "result": result.value,
        })
    return updated


def tally(votes: Iterable[dict[str, Any]], expert_ids: Iterable[str]) -> Tally:
    """Count the votes of the current experts."""
    experts = set(expert_ids)
    expert_votes = [v for v in votes if v.get("voter_id") in experts]
    voted = {v["voter_id"] for v in expert_votes}
    return Tally(
        total_experts=len(experts),
        ok=sum(1 for v in expert_votes if v.get("result") == VoteResult.OK.value),
        ko=sum(1 for v in expert_votes if v.get("result") == VoteResult.KO.value),
        all_experts_voted=experts <= voted,
        majority_threshold=len(experts) // 2 + 1,
    )


def next_status(
    counts: Tally,
    editable: bool,
    current_status: ClipStatus = ClipStatus.PROPOSED,
) -> ClipStatus:
    """Derive the review status from a tally.

    Frozen statuses (``PUBLISHED`` and archived) are returned unchanged.
    """
    current_status = ClipStatus(current_status)
    if current_status.is_frozen:
        return current_status
    if (
        counts.all_experts_voted
        and not editable
        and counts.ok >= counts.majority_threshold
    ):
        return ClipStatus.READY
    if counts.ko >= counts.majority_threshold:
        return ClipStatus.DISCARDED
    return ClipStatus.PROPOSED


def apply_vote(
    state: ClipState,
    expert_ids: Iterable[str],
    voter: Participant,
    value: Any,
) -> VoteOutcome:
    """Record *voter*'s vote on a clip and compute the clip's next status.

    Args:
        state: Current clip snapshot.
        expert_ids: Ids of every user currently holding the ``EXPERT`` role.
        voter: The voting user.
        value: Raw vote literal.

    Returns:
        The updated vote list and status, to be persisted together.

    Raises:
        ArchivedClipError: If the clip is archived.
        InvalidVoteError: If *value* is not an allowed literal.
    """
    if state.status.is_archived:
        raise ArchivedClipError(state.clip_id, "voted on")
    result = normalize_vote(value)
    votes = upsert_vote(state.votes, voter, result)
    status = next_status(tally(votes, expert_ids), state.editable, state.status)
    return VoteOutcome(votes=votes, status=status)


def recompute_status(
    state: ClipState,
    expert_ids: Iterable[str],
    editable: bool | None = None,
) -> ClipStatus:
    """Re-derive the status without a new vote.

    Used when ``editable`` changes.  Pass the new flag as *editable* to
    evaluate against it instead of ``state.editable``.
    """
    flag = state.editable if editable is None else editable
    return next_status(tally(state.votes, expert_ids), flag, state.status)
