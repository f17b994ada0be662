"""Integration tests for RewardsService against the SQLite account store."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from cmk.auth.password import PasswordStrengthError, verify_password
from cmk.rewards.catalog import EARLY_ADOPTER, KNOWLEDGE_SEEKER
from cmk.rewards.errors import AccountNotFoundError, DuplicateAccountError, InvalidInputError
from cmk.rewards.ledger import ClaimOutcome
from cmk.rewards.progress import LessonOutcome
from cmk.rewards.service import RewardsService
from cmk.rewards.store import get_account, save_accounts
from tests.conftest import T0, make_account, make_population


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_with_referral(self, service: RewardsService, seeded_accounts, db_session: AsyncSession):
        result = await service.register("Alice", "alice@example.com", "Secret123", "PROMO2025", T0)

        assert result.early_adopter is True
        assert result.referral_bonus == 50
        assert result.account.balance == 1000 + 50

        stored = await get_account(db_session, result.account.id)
        assert stored.balance == 1050
        assert EARLY_ADOPTER in stored.achievements
        assert stored.created_at == T0
        assert verify_password("Secret123", stored.password_hash)

        referrer = await get_account(db_session, "ref")
        assert referrer.balance == 100 + 25

    @pytest.mark.asyncio
    async def test_register_unknown_code(self, service: RewardsService, seeded_accounts, db_session: AsyncSession):
        result = await service.register("Bob", "bob@example.com", "Secret123", "NOPE", T0)
        assert result.referrer is None
        assert result.account.balance == 1000
        assert (await get_account(db_session, "ref")).balance == 100

    @pytest.mark.asyncio
    async def test_register_after_1000_accounts(self, service: RewardsService, db_session: AsyncSession):
        await save_accounts(db_session, *make_population(1000))
        await db_session.commit()

        result = await service.register("Late", "late@example.com", "Secret123", None, T0)
        assert result.early_adopter is False
        assert result.account.balance == 0

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, service: RewardsService, seeded_accounts):
        with pytest.raises(DuplicateAccountError):
            await service.register("Again", "PLAIN@example.com", "Secret123", None, T0)

    @pytest.mark.asyncio
    async def test_existing_email_cannot_use_own_code(self, service: RewardsService, db_session: AsyncSession):
        """Re-registering an existing email with its own code is refused and pays nothing."""
        await save_accounts(db_session, make_account("old", email="me@example.com", referral_code="MINE"))
        await db_session.commit()
        with pytest.raises(DuplicateAccountError):
            await service.register("Me", "me@example.com", "Secret123", "MINE", T0)
        assert (await get_account(db_session, "old")).balance == 0

    @pytest.mark.asyncio
    async def test_weak_password_writes_nothing(self, service: RewardsService, seeded_accounts, db_session):
        with pytest.raises(PasswordStrengthError):
            await service.register("Weak", "weak@example.com", "short", "PROMO2025", T0)
        assert (await get_account(db_session, "ref")).balance == 100


class TestInsertAccount:
    @pytest.mark.asyncio
    async def test_insert_grants_nothing(self, service: RewardsService):
        account = await service.insert_account(make_account("admin", balance=9999, achievements=[EARLY_ADOPTER]))
        assert account.balance == 9999
        assert account.achievements == (EARLY_ADOPTER,)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "clash",
        [
            {"account_id": "ref"},
            {"account_id": "x", "email": "REF@example.com"},
            {"account_id": "x", "referral_code": "PROMO2025"},
        ],
    )
    async def test_insert_rejects_duplicates(self, service: RewardsService, seeded_accounts, clash):
        with pytest.raises(DuplicateAccountError):
            await service.insert_account(make_account(**clash))


class TestDailyClaim:
    @pytest.mark.asyncio
    async def test_claim_then_too_soon(self, service: RewardsService, seeded_accounts, db_session):
        first = await service.claim_daily_bonus("plain", T0)
        second = await service.claim_daily_bonus("plain", T0 + timedelta(hours=1))

        assert first.outcome is ClaimOutcome.GRANTED
        assert second.outcome is ClaimOutcome.TOO_SOON
        assert second.retry_after == timedelta(hours=23)

        stored = await get_account(db_session, "plain")
        assert stored.balance == 20
        assert stored.last_daily_claim_at == T0

    @pytest.mark.asyncio
    async def test_claim_next_day(self, service: RewardsService, seeded_accounts, db_session):
        await service.claim_daily_bonus("plain", T0)
        result = await service.claim_daily_bonus("plain", T0 + timedelta(hours=24))
        assert result.granted
        assert (await get_account(db_session, "plain")).balance == 25

    @pytest.mark.asyncio
    async def test_clock_rollback_leaves_record(self, service: RewardsService, seeded_accounts, db_session):
        await service.claim_daily_bonus("plain", T0)
        result = await service.claim_daily_bonus("plain", T0 - timedelta(days=1))
        assert result.outcome is ClaimOutcome.CLOCK_ROLLBACK
        stored = await get_account(db_session, "plain")
        assert stored.balance == 20
        assert stored.last_daily_claim_at == T0

    @pytest.mark.asyncio
    async def test_unknown_account(self, service: RewardsService):
        with pytest.raises(AccountNotFoundError):
            await service.claim_daily_bonus("ghost", T0)

    @pytest.mark.asyncio
    async def test_unknown_accounts_leave_no_locks_behind(self, service: RewardsService):
        for i in range(500):
            with pytest.raises(AccountNotFoundError):
                await service.claim_daily_bonus(f"ghost-{i}", T0)
        assert len(service.locks) == 0

    @pytest.mark.asyncio
    async def test_naive_now_rolls_back(self, service: RewardsService, seeded_accounts, db_session):
        with pytest.raises(InvalidInputError):
            await service.claim_daily_bonus("plain", datetime(2026, 3, 1, 12, 0, 0))
        assert not db_session.in_transaction()
        assert not service.locks.is_locked("plain")


class TestCompleteLesson:
    @pytest.mark.asyncio
    async def test_intro_course_completion(self, service: RewardsService, seeded_accounts, db_session):
        results = [await service.complete_lesson("plain", "1") for _ in range(6)]

        assert [r.progress for r in results] == [1, 2, 3, 4, 5, 5]
        assert results[4].achievement_unlocked is True
        assert results[5].outcome is LessonOutcome.ALREADY_COMPLETE

        stored = await get_account(db_session, "plain")
        assert stored.course_progress == {"1": 5}
        assert KNOWLEDGE_SEEKER in stored.achievements
        assert stored.balance == 15 + 1000

    @pytest.mark.asyncio
    async def test_unknown_course(self, service: RewardsService, seeded_accounts):
        with pytest.raises(InvalidInputError):
            await service.complete_lesson("plain", "99")

    @pytest.mark.asyncio
    async def test_unknown_account(self, service: RewardsService):
        with pytest.raises(AccountNotFoundError):
            await service.complete_lesson("ghost", "1")


class TestCreditPoints:
    @pytest.mark.asyncio
    async def test_credit(self, service: RewardsService, seeded_accounts, db_session):
        updated = await service.credit_points("plain", 85)
        assert updated.balance == 100
        assert (await get_account(db_session, "plain")).balance == 100

    @pytest.mark.asyncio
    async def test_negative_credit(self, service: RewardsService, seeded_accounts, db_session):
        with pytest.raises(InvalidInputError):
            await service.credit_points("plain", -1)
        assert not db_session.in_transaction()
        assert (await get_account(db_session, "plain")).balance == 15


class TestReferralPreview:
    @pytest.mark.asyncio
    async def test_known_code(self, service: RewardsService, seeded_accounts):
        assert await service.referral_preview("PROMO2025") == (True, 50)

    @pytest.mark.asyncio
    async def test_unknown_code(self, service: RewardsService, seeded_accounts):
        assert await service.referral_preview("NOPE") == (False, 0)


@pytest_asyncio.fixture
async def zero_reward_referrer(db_session: AsyncSession):
    await save_accounts(db_session, make_account("zero", referral_code="ZERO", referral_reward_amount=0))
    await db_session.commit()


class TestZeroRewardReferrer:
    @pytest.mark.asyncio
    async def test_zero_reward_still_pays_referrer(self, service: RewardsService, zero_reward_referrer, db_session):
        result = await service.register("Zed", "zed@example.com", "Secret123", "ZERO", T0)
        assert result.referral_bonus == 0
        assert result.account.balance == 1000
        assert (await get_account(db_session, "zero")).balance == 25

    @pytest.mark.asyncio
    async def test_preview_reports_valid(self, service: RewardsService, zero_reward_referrer):
        assert await service.referral_preview("ZERO") == (True, 0)
