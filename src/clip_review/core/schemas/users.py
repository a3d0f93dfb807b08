"""Pydantic request/response schemas for login and user administration."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from clip_review.core.lifecycle.states import Role


class TwitchLogin(BaseModel):
    """Authorization code returned by the Twitch OAuth redirect."""

    code: str


class RoleUpdate(BaseModel):
    role: Role


class WhitelistUpdate(BaseModel):
    whitelist: bool


class UserRead(BaseModel):
    """Public view of a user.  Never exposes any token."""

    model_config = ConfigDict(from_attributes=True)

    twitch_id: str
    username: str
    avatar_url: Optional[str] = None
    role: str
    whitelist: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class SessionRead(BaseModel):
    """Login response: the user plus their app session token."""

    model_config = ConfigDict(from_attributes=True)

    twitch_id: str
    username: str
    avatar_url: Optional[str] = None
    role: str
    token: str


class UserListResponse(BaseModel):
    count: int
    users: list[UserRead]
