"""Edit claim workflow.

Single-owner claim/release for the optional post-production step::

    UNSET --claim--> IN_PROGRESS --release (editor only)--> TERMINATED

``TERMINATED`` is final and clears ``editable``.  There is no way back to
``UNSET``.  The workflow is independent of the review status: it does not
look at ``status`` at all.
"""

from __future__ import annotations

from dataclasses import dataclass

from clip_review.core.exceptions import (
    AuthorizationError,
    ConflictError,
    EditStateError,
)
from clip_review.core.lifecycle.states import ClipState, EditProgress


@dataclass(frozen=True)
class EditTransition:
    """New values of the edit fields after a claim or release."""

    edit_progress: EditProgress
    editor_id: str | None
    editable: bool


def claim(state: ClipState, user_id: str) -> EditTransition:
    """Claim the edit task of a clip for *user_id*.

    Claiming again as the current editor is a no-op.

    Raises:
        AuthorizationError: If the clip is not ``editable``.
        ConflictError: If another user already holds the claim.
    """
    if not state.editable:
        raise AuthorizationError("Editing not allowed for this clip")
    if state.edit_progress == EditProgress.IN_PROGRESS and state.editor_id != user_id:
        raise ConflictError("Clip is already being edited by another user")
    return EditTransition(
        edit_progress=EditProgress.IN_PROGRESS,
        editor_id=user_id,
        editable=True,
    )


def release(state: ClipState, user_id: str) -> EditTransition:
    """Mark the edit task finished.

    Raises:
        EditStateError: If the clip is not ``IN_PROGRESS``.
        AuthorizationError: If *user_id* is not the recorded editor.
    """
    if state.edit_progress != EditProgress.IN_PROGRESS:
        raise EditStateError("Clip is not currently being edited")
    if state.editor_id != user_id:
        raise AuthorizationError("You are not the editor of this clip")
    return EditTransition(
        edit_progress=EditProgress.TERMINATED,
        editor_id=state.editor_id,
        editable=False,
    )
