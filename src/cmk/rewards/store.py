"""Account store: loads and saves UserAccount records via SQLAlchemy.

Reads return detached UserAccount models; writes take complete records and
replace every rewards field. No field-level partial updates happen here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from cmk.db.models import UserAccountRow
from cmk.rewards.accounts import UserAccount, UserRole

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalize to UTC. SQLite hands back naive datetimes; they were stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_account(row: UserAccountRow) -> UserAccount:
    """Build a UserAccount from an ORM row."""
    return UserAccount(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=UserRole(row.role),
        avatar_url=row.avatar_url or "",
        balance=row.balance,
        referral_code=row.referral_code,
        referral_reward_amount=row.referral_reward_amount,
        achievements=row.achievements or [],
        last_daily_claim_at=_as_utc(row.last_daily_claim_at),
        course_progress=row.course_progress or {},
        created_at=_as_utc(row.created_at),
    )


def _apply(row: UserAccountRow, account: UserAccount, now: datetime) -> None:
    row.name = account.name
    row.email = account.email
    row.password_hash = account.password_hash
    row.role = account.role.value
    row.avatar_url = account.avatar_url
    row.balance = account.balance
    row.referral_code = account.referral_code
    row.referral_reward_amount = account.referral_reward_amount
    row.achievements = list(account.achievements)
    row.last_daily_claim_at = _as_utc(account.last_daily_claim_at)
    row.course_progress = dict(account.course_progress)
    row.updated_at = now


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_account(db: AsyncSession, account_id: str, *, for_update: bool = False) -> UserAccount | None:
    """Fetch one account. ``for_update`` locks the row until the transaction ends."""
    stmt = select(UserAccountRow).where(UserAccountRow.id == account_id)
    if for_update:
        # Refresh an already-loaded row with what the locked read returns
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(stmt)
    row = result.scalar_one_or_none()
    return to_account(row) if row else None


async def get_account_by_email(db: AsyncSession, email: str) -> UserAccount | None:
    """Fetch an account by email (case-insensitive)."""
    result = await db.execute(
        select(UserAccountRow).where(func.lower(UserAccountRow.email) == email.lower())
    )
    row = result.scalar_one_or_none()
    return to_account(row) if row else None


async def load_population(db: AsyncSession) -> list[UserAccount]:
    """Snapshot of every account, in creation order."""
    result = await db.execute(
        select(UserAccountRow).order_by(UserAccountRow.created_at, UserAccountRow.id)
    )
    return [to_account(row) for row in result.scalars()]


async def count_accounts(db: AsyncSession) -> int:
    result = await db.execute(select(func.count(UserAccountRow.id)))
    return result.scalar() or 0


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def save_accounts(db: AsyncSession, *accounts: UserAccount) -> None:
    """Insert or fully replace each record. The caller commits."""
    now = datetime.now(timezone.utc)
    for account in accounts:
        row = await db.get(UserAccountRow, account.id)
        if row is None:
            row = UserAccountRow(id=account.id, created_at=_as_utc(account.created_at) or now)
            db.add(row)
        _apply(row, account, now)
    await db.flush()
