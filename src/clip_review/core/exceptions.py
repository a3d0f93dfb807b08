"""Application-wide exception hierarchy for Clip Review.

All custom exceptions subclass ``ClipReviewError``.  Each class carries the
HTTP ``status_code`` the route layer reports when the error escapes a
service call, so that the mapping from domain failure to transport error is
declared once, next to the failure itself.

Hierarchy::

    ClipReviewError
    ├── ValidationError              400
    │   └── InvalidVoteError         400
    ├── NotFoundError                404
    │   ├── ClipNotFoundError
    │   └── UserNotFoundError
    ├── AuthorizationError           403  (reason: str)
    ├── ConflictError                409
    │   ├── DuplicateClipError       409
    │   ├── ArchivedClipError        403
    │   └── EditStateError           400
    └── UpstreamError                502  (upstream_status: int | None)
        ├── ClipFetchError           upstream status (404, 429, ...)
        └── ExternalAuthError        401

None of these trigger an automatic retry inside the core; a failed
operation leaves no state change behind.
"""

from __future__ import annotations


class ClipReviewError(Exception):
    """Base class for all Clip Review exceptions.

    Attributes:
        status_code: HTTP status reported by the API layer for this error.
    """

    status_code: int = 500


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationError(ClipReviewError):
    """Raised for malformed, missing, or out-of-range input.

    Always recoverable by the caller; no state has been changed.

    Args:
        message: Human-readable description of the invalid input.
        field: Name of the offending input field, when there is one.
    """

    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class InvalidVoteError(ValidationError):
    """Raised when a vote value is not one of ``OK``, ``KO``, ``TO_REVIEW``."""

    def __init__(self, value: object) -> None:
        super().__init__(
            f"Invalid vote value {value!r}. Must be OK, KO, or TO_REVIEW",
            field="vote",
        )
        self.value = value


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFoundError(ClipReviewError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class ClipNotFoundError(NotFoundError):
    """Raised when no clip exists for the given external clip id."""

    def __init__(self, clip_id: str) -> None:
        super().__init__(f"Clip not found: {clip_id}")
        self.clip_id = clip_id


class UserNotFoundError(NotFoundError):
    """Raised when no user exists for the given Twitch id."""

    def __init__(self, twitch_id: str) -> None:
        super().__init__(f"User not found: {twitch_id}")
        self.twitch_id = twitch_id


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class AuthorizationError(ClipReviewError):
    """Raised when a role or ownership predicate fails.

    Args:
        reason: User-visible explanation (e.g. "You are not the author of
            this clip").
    """

    status_code = 403

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------


class ConflictError(ClipReviewError):
    """Raised when a request conflicts with the current state of a record."""

    status_code = 409


class DuplicateClipError(ConflictError):
    """Raised when a proposal targets an external clip id already on file."""

    def __init__(self, clip_id: str) -> None:
        super().__init__(f"Clip already proposed: {clip_id}")
        self.clip_id = clip_id


class ArchivedClipError(ConflictError):
    """Raised on any attempt to mutate a clip in an ``ARCHIVED_*`` status.

    Reported as 403: archived clips are read-only for every caller.
    """

    status_code = 403

    def __init__(self, clip_id: str, action: str) -> None:
        super().__init__(f"Archived clips cannot be {action}")
        self.clip_id = clip_id
        self.action = action


class EditStateError(ConflictError):
    """Raised when an edit-claim transition is not valid from the current state."""

    status_code = 400


# ---------------------------------------------------------------------------
# Upstream (Twitch)
# ---------------------------------------------------------------------------


class UpstreamError(ClipReviewError):
    """Raised when a call to the external streaming platform fails.

    Args:
        message: Human-readable description of the failure.
        upstream_status: HTTP status returned by Twitch, if any.
    """

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class ClipFetchError(UpstreamError):
    """Raised when clip metadata cannot be fetched from Twitch.

    The reported status mirrors the upstream one for the cases a client can
    act on (404 unknown clip, 429 rate limited); everything else is a 502.

    Args:
        message: Human-readable description of the failure.
        upstream_status: HTTP status returned by Twitch, if any.
        retry_after: Seconds suggested by Twitch before retrying (429 only).
    """

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, upstream_status=upstream_status)
        self.retry_after = retry_after
        if upstream_status in (404, 429):
            self.status_code = upstream_status


class ExternalAuthError(UpstreamError):
    """Raised when a Twitch token exchange or refresh fails.

    On refresh failure the user's stored Twitch tokens have already been
    cleared; the client must log in again.
    """

    status_code = 401
