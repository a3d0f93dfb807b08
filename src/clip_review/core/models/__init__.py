"""SQLAlchemy ORM models for Clip Review.

All models are imported here so that:
1. Alembic autogenerate can discover them via Base.metadata.
2. Application code can do ``from clip_review.core.models import Clip``
   without knowing which sub-module a model lives in.
"""

from __future__ import annotations

from clip_review.core.models.base import Base, utc_now
from clip_review.core.models.clips import Clip
from clip_review.core.models.users import User

__all__ = [
    "Base",
    "Clip",
    "User",
    "utc_now",
]
