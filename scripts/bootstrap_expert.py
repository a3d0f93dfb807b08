#!/usr/bin/env python
"""Promote the first expert.

Role changes go through ``PATCH /users/{twitch_id}/role``, which only an
expert may call.  A fresh deployment has none, so run this **once** after
the future expert has logged in through Twitch (which creates their user
row).  The user is given the ``EXPERT`` role and put back on the whitelist.

Usage::

    python scripts/bootstrap_expert.py 141981764

or, with ``FIRST_EXPERT_TWITCH_ID`` set in the environment or .env::

    python scripts/bootstrap_expert.py

Requires the package to be installed (``pip install -e .``).

Exit codes:
    0 - Success (user promoted, or already an expert).
    1 - No Twitch id given, or no user with that id.
"""

from __future__ import annotations

import asyncio
import sys

from clip_review.config.settings import get_settings
from clip_review.core.database import AsyncSessionLocal
from clip_review.core.exceptions import UserNotFoundError
from clip_review.core.lifecycle.states import Role
from clip_review.core.user_repository import UserRepository


async def _bootstrap(twitch_id: str) -> int:
    """Promote *twitch_id* and return the process exit code."""
    async with AsyncSessionLocal() as session:
        repo = UserRepository(session)
        try:
            user = await repo.require(twitch_id)
        except UserNotFoundError:
            print(
                f"[bootstrap_expert] ERROR: no user with Twitch id {twitch_id}. "
                "Log in through Twitch once, then re-run.",
                file=sys.stderr,
            )
            return 1

        changed: list[str] = []
        if user.role != Role.EXPERT.value:
            await repo.set_role(twitch_id, Role.EXPERT)
            changed.append("role -> EXPERT")
        if not user.whitelist:
            await repo.set_whitelist(twitch_id, True)
            changed.append("whitelist -> True")
        await session.commit()

    if changed:
        print(f"[bootstrap_expert] User {twitch_id} ({user.username}) updated: " + ", ".join(changed))
    else:
        print(f"[bootstrap_expert] User {twitch_id} is already a whitelisted expert.  Nothing to do.")
    return 0


def main() -> None:
    """Entry point: resolve the Twitch id and run the async promotion."""
    twitch_id = sys.argv[1] if len(sys.argv) > 1 else get_settings().first_expert_twitch_id
    if not twitch_id:
        print(
            "[bootstrap_expert] ERROR: pass a Twitch user id or set FIRST_EXPERT_TWITCH_ID.",
            file=sys.stderr,
        )
        sys.exit(1)
    sys.exit(asyncio.run(_bootstrap(twitch_id)))


if __name__ == "__main__":
    main()
