"""Rewards service: runs ledger operations against the account store.

Each mutating call follows the same shape: take the account lock(s), read the
current record(s), run the pure ledger function, persist what it returned,
commit. Callers supply ``now``; nothing in here samples the clock for
business decisions.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from cmk.auth.password import hash_password, validate_password_strength
from cmk.rewards import ledger, progress
from cmk.rewards.accounts import UserAccount
from cmk.rewards.catalog import get_course
from cmk.rewards.errors import AccountNotFoundError, DuplicateAccountError, InvalidInputError
from cmk.rewards.locks import REGISTRATION_KEY, AccountLocks
from cmk.rewards.referral import preview_referral_bonus, resolve_referrer
from cmk.rewards.store import get_account, get_account_by_email, load_population, save_accounts

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_locks = AccountLocks()


def get_account_locks() -> AccountLocks:
    """Process-wide lock registry shared by every service instance."""
    return _locks


class RewardsService:
    """Loyalty engine bound to one database session."""

    def __init__(self, db: AsyncSession, locks: AccountLocks | None = None) -> None:
        self.db = db
        self.locks = locks if locks is not None else get_account_locks()

    # --- Reads ---

    async def get_account(self, account_id: str) -> UserAccount:
        account = await get_account(self.db, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def referral_preview(self, code: str) -> tuple[bool, int]:
        """Whether ``code`` resolves, and the bonus a registrant would receive for it."""
        population = await load_population(self.db)
        return resolve_referrer(code, population) is not None, preview_referral_bonus(code, population)

    # --- Registration ---

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        referral_code: str | None,
        now: datetime,
    ) -> ledger.RegistrationResult:
        """Create an account from scratch, applying registration bonuses.

        Raises:
            PasswordStrengthError: If the password is too weak.
            DuplicateAccountError: If the email is already registered.
        """
        validate_password_strength(password)
        password_hash = hash_password(password)

        async with self.locks.hold(REGISTRATION_KEY):
            if await get_account_by_email(self.db, email) is not None:
                msg = "An account with this email already exists"
                raise DuplicateAccountError(msg)

            population = await load_population(self.db)
            draft = ledger.new_account_draft(name, email, population, password_hash=password_hash)
            draft = draft.model_copy(update={"created_at": now})

            referrer = resolve_referrer(referral_code, population, registrant_email=email)
            referrer_keys = [referrer.id] if referrer else []

            async with self.locks.hold(*referrer_keys):
                if referrer is not None:
                    # The snapshot was taken before the referrer lock; re-read its row
                    fresh = await get_account(self.db, referrer.id, for_update=True)
                    population = [a for a in population if a.id != referrer.id]
                    if fresh is not None:
                        population.append(fresh)

                try:
                    result = ledger.register(draft, referral_code, population)
                except InvalidInputError:
                    await self.db.rollback()
                    raise
                await self._commit(*result.records)

        logger.info(
            "account_registered",
            account_id=result.account.id,
            early_adopter=result.early_adopter,
            referrer_id=result.referrer.id if result.referrer else None,
            referral_bonus=result.referral_bonus,
        )
        return result

    async def insert_account(self, account: UserAccount) -> UserAccount:
        """Administrative insertion: stores a pre-populated account, no bonus rules."""
        async with self.locks.hold(REGISTRATION_KEY):
            population = await load_population(self.db)
            for existing in population:
                if existing.id == account.id:
                    msg = f"Account id already exists: {account.id}"
                    raise DuplicateAccountError(msg)
                if existing.email.lower() == account.email.lower():
                    msg = "An account with this email already exists"
                    raise DuplicateAccountError(msg)
                if existing.referral_code == account.referral_code:
                    msg = f"Referral code already in use: {account.referral_code}"
                    raise DuplicateAccountError(msg)
            await self._commit(account)

        logger.info("account_inserted", account_id=account.id, balance=account.balance)
        return await self.get_account(account.id)

    # --- Single-account mutations ---

    async def claim_daily_bonus(self, account_id: str, now: datetime) -> ledger.ClaimResult:
        async with self.locks.hold(account_id):
            account = await self._load_for_update(account_id)
            try:
                result = ledger.claim_daily_bonus(account, now)
            except InvalidInputError:
                await self.db.rollback()
                raise
            if result.granted:
                await self._commit(result.account)
            else:
                await self.db.rollback()

        if result.outcome is ledger.ClaimOutcome.CLOCK_ROLLBACK:
            logger.warning(
                "daily_bonus_clock_rollback",
                account_id=account_id,
                last_claim_at=account.last_daily_claim_at.isoformat() if account.last_daily_claim_at else None,
                now=now.isoformat(),
            )
        else:
            logger.info("daily_bonus_claim", account_id=account_id, outcome=result.outcome.value)
        return result

    async def complete_lesson(self, account_id: str, course_id: str) -> progress.LessonResult:
        course = get_course(course_id)
        async with self.locks.hold(account_id):
            account = await self._load_for_update(account_id)
            try:
                result = progress.complete_lesson(account, course.id, course.lessons)
            except InvalidInputError:
                await self.db.rollback()
                raise
            if result.outcome is progress.LessonOutcome.ADVANCED:
                await self._commit(result.account)
            else:
                await self.db.rollback()

        logger.info(
            "lesson_completed",
            account_id=account_id,
            course_id=course.id,
            outcome=result.outcome.value,
            progress=result.progress,
            achievement_unlocked=result.achievement_unlocked,
        )
        return result

    async def credit_points(self, account_id: str, amount: int) -> UserAccount:
        async with self.locks.hold(account_id):
            account = await self._load_for_update(account_id)
            try:
                updated = ledger.credit_points(account, amount)
            except InvalidInputError:
                await self.db.rollback()
                raise
            await self._commit(updated)

        logger.info("points_credited", account_id=account_id, amount=amount, balance=updated.balance)
        return updated

    # --- Helpers ---

    async def _load_for_update(self, account_id: str) -> UserAccount:
        account = await get_account(self.db, account_id, for_update=True)
        if account is None:
            await self.db.rollback()
            raise AccountNotFoundError(account_id)
        return account

    async def _commit(self, *accounts: UserAccount) -> None:
        """Persist complete records in one transaction, or none of them."""
        try:
            await save_accounts(self.db, *accounts)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            msg = "Account conflicts with an existing id, email or referral code"
            raise DuplicateAccountError(msg) from e
