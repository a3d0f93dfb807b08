"""Pydantic schemas for request/response validation.

Sub-modules:
    clips: ClipCreate/Update/Read, VoteCreate, CommentCreate, SweepResult
    users: TwitchLogin, SessionRead, UserRead, RoleUpdate, WhitelistUpdate
"""

from __future__ import annotations
