"""Demo account seed data: the storefront's built-in admin and test client."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from cmk.auth.password import hash_password
from cmk.config import get_settings
from cmk.rewards.accounts import UserAccount, UserRole
from cmk.rewards.catalog import EARLY_ADOPTER
from cmk.rewards.store import get_account, get_account_by_email, save_accounts

logger = logging.getLogger(__name__)

DEMO_ACCOUNT_SEED_DATA: list[dict] = [
    {
        "id": "1",
        "name": "Admin User",
        "email": "admin@crypto.kz",
        "role": UserRole.ADMIN,
        "balance": 9999,
        "referral_code": "ADMIN01",
        "referral_reward_amount": 50,
        "achievements": [EARLY_ADOPTER],
    },
    {
        "id": "2",
        "name": "Test Client",
        "email": "client@test.com",
        "role": UserRole.USER,
        "balance": 15,
        "referral_code": "CLIENT77",
        "referral_reward_amount": 10,
        "achievements": [],
    },
]


async def seed_demo_accounts(db: AsyncSession) -> int:
    """Insert any missing demo accounts. Returns the number inserted.

    Existing accounts are left untouched so balances earned since the last
    start survive a restart.
    """
    password_hash = hash_password(get_settings().demo_password)
    inserted = 0
    for data in DEMO_ACCOUNT_SEED_DATA:
        if await get_account(db, data["id"]) or await get_account_by_email(db, data["email"]):
            continue
        await save_accounts(db, UserAccount(password_hash=password_hash, **data))
        inserted += 1

    await db.commit()
    logger.info("Seeded %d demo accounts", inserted)
    return inserted
