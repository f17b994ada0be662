"""ORM models for the rewards service.

The schema is created by the Alembic migration in alembic/versions/.
Tests build it directly from Base.metadata.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cmk.db.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# User accounts
# ---------------------------------------------------------------------------


class UserAccountRow(Base):
    """Maps to the 'user_accounts' table. One row per account."""

    __tablename__ = "user_accounts"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    avatar_url: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")

    # --- Rewards ---
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    referral_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    referral_reward_amount: Mapped[int] = mapped_column(
        Integer, nullable=False, default=10, server_default="10"
    )
    achievements: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    last_daily_claim_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    course_progress: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
