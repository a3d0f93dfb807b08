"""Factory Boy model factories for test data generation.

Available factories
-------------------
UserFactory              whitelisted member dict
ExpertUserFactory        expert dict
BannedUserFactory        member taken off the whitelist
ClipFactory              freshly proposed clip dict
VoteEntryFactory         one entry of ``Clip.votes``
CommentEntryFactory      one entry of ``Clip.comments``
"""

from __future__ import annotations

from tests.factories.clips import ClipFactory, CommentEntryFactory, VoteEntryFactory
from tests.factories.users import BannedUserFactory, ExpertUserFactory, UserFactory

__all__ = [
    "BannedUserFactory",
    "ClipFactory",
    "CommentEntryFactory",
    "ExpertUserFactory",
    "UserFactory",
    "VoteEntryFactory",
]
