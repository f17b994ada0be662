"""Account record model.

Defaults are resolved here, once, when a record is built. Engine operations
never mutate an account; they return a copy made with ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_REFERRAL_REWARD = 10


class UserRole(str, Enum):
    GUEST = "guest"
    USER = "user"
    ADMIN = "admin"


class UserAccount(BaseModel):
    """A user's account as seen by the rewards engine."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    email: str
    password_hash: str | None = None
    role: UserRole = UserRole.USER
    avatar_url: str = ""

    balance: int = Field(0, ge=0)
    referral_code: str = Field(..., min_length=1)
    referral_reward_amount: int = Field(DEFAULT_REFERRAL_REWARD, ge=0)
    achievements: tuple[str, ...] = ()
    last_daily_claim_at: datetime | None = None
    course_progress: dict[str, int] = Field(default_factory=dict)

    created_at: datetime | None = None

    @field_validator("referral_reward_amount", mode="before")
    @classmethod
    def default_referral_reward(cls, v: int | None) -> int:
        """An unset reward falls back to the default amount.

        Only None counts as unset: an explicit 0 is kept, so a referrer can
        offer no bonus to the people they refer and still earn their own.
        """
        return DEFAULT_REFERRAL_REWARD if v is None else v

    @field_validator("last_daily_claim_at", "created_at")
    @classmethod
    def require_timezone(cls, v: datetime | None) -> datetime | None:
        """Stored timestamps are compared with an aware ``now``, so naive ones are rejected."""
        if v is not None and (v.tzinfo is None or v.utcoffset() is None):
            msg = "timestamp must be timezone-aware"
            raise ValueError(msg)
        return v

    @field_validator("achievements", mode="before")
    @classmethod
    def dedupe_achievements(cls, v: object) -> tuple[str, ...]:
        """Store achievements once each, keeping first-seen order."""
        if v is None:
            return ()
        return tuple(dict.fromkeys(v))  # type: ignore[call-overload]

    @field_validator("course_progress", mode="before")
    @classmethod
    def coerce_progress(cls, v: object) -> dict[str, int]:
        """Progress values arrive as ints or numeric strings; negatives are rejected."""
        if v is None:
            return {}
        progress = {str(course_id): int(count) for course_id, count in dict(v).items()}  # type: ignore[call-overload]
        if any(count < 0 for count in progress.values()):
            msg = "course progress must not be negative"
            raise ValueError(msg)
        return progress

    def has_achievement(self, achievement_id: str) -> bool:
        return achievement_id in self.achievements

    def progress_for(self, course_id: str) -> int:
        return self.course_progress.get(course_id, 0)
