"""Reward ledger: registration bonuses, daily claims and point credits.

Every function here is pure. It takes the current record(s), validates its
input before building anything, and returns new records together with an
outcome. Callers persist what is returned; nothing is written on their behalf.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from cmk.rewards.accounts import UserAccount
from cmk.rewards.catalog import EARLY_ADOPTER
from cmk.rewards.errors import DuplicateAccountError, InvalidInputError
from cmk.rewards.referral import generate_unique_referral_code, resolve_referrer

EARLY_ADOPTER_LIMIT = 1000
EARLY_ADOPTER_BONUS = 1000
REFERRER_BONUS = 25
DAILY_BONUS = 5
DAILY_CLAIM_INTERVAL = timedelta(hours=24)


class ClaimOutcome(str, Enum):
    GRANTED = "granted"
    TOO_SOON = "too_soon"
    CLOCK_ROLLBACK = "clock_rollback"


@dataclass(frozen=True)
class RegistrationResult:
    account: UserAccount
    referrer: UserAccount | None = None
    early_adopter: bool = False
    referral_bonus: int = 0

    @property
    def records(self) -> list[UserAccount]:
        """Records the caller must persist, referrer first."""
        return [r for r in (self.referrer, self.account) if r is not None]


@dataclass(frozen=True)
class ClaimResult:
    account: UserAccount
    outcome: ClaimOutcome
    retry_after: timedelta | None = None

    @property
    def granted(self) -> bool:
        return self.outcome is ClaimOutcome.GRANTED


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def new_account_draft(
    name: str,
    email: str,
    population: Sequence[UserAccount],
    password_hash: str | None = None,
) -> UserAccount:
    """Build a zero-balance draft with a fresh id and an unused referral code."""
    taken = {a.referral_code for a in population}
    return UserAccount(
        id=str(uuid.uuid4()),
        name=name,
        email=email,
        password_hash=password_hash,
        referral_code=generate_unique_referral_code(taken),
    )


def register(
    draft: UserAccount,
    referral_code: str | None,
    population: Sequence[UserAccount],
) -> RegistrationResult:
    """Finalize a new account, applying early-adopter and referral bonuses.

    ``population`` is the snapshot of existing accounts, without the draft.
    The early-adopter check uses its size before insertion. A referral code
    that resolves credits both sides, or neither when it does not resolve.
    """
    if any(a.id == draft.id for a in population):
        msg = f"Account id already exists: {draft.id}"
        raise DuplicateAccountError(msg)
    if any(a.referral_code == draft.referral_code for a in population):
        msg = f"Referral code already in use: {draft.referral_code}"
        raise DuplicateAccountError(msg)

    balance = draft.balance
    achievements = list(draft.achievements)
    early_adopter = False

    if len(population) < EARLY_ADOPTER_LIMIT and EARLY_ADOPTER not in achievements:
        achievements.append(EARLY_ADOPTER)
        balance += EARLY_ADOPTER_BONUS
        early_adopter = True

    referrer = resolve_referrer(referral_code, population, registrant_email=draft.email)
    updated_referrer = None
    referral_bonus = 0
    if referrer is not None:
        referral_bonus = referrer.referral_reward_amount
        balance += referral_bonus
        updated_referrer = referrer.model_copy(update={"balance": referrer.balance + REFERRER_BONUS})

    account = draft.model_copy(update={"balance": balance, "achievements": tuple(achievements)})
    return RegistrationResult(
        account=account,
        referrer=updated_referrer,
        early_adopter=early_adopter,
        referral_bonus=referral_bonus,
    )


# ---------------------------------------------------------------------------
# Daily claim
# ---------------------------------------------------------------------------


def _require_aware(value: datetime, name: str = "now") -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        msg = f"{name} must be timezone-aware"
        raise InvalidInputError(msg)


def next_claim_at(account: UserAccount) -> datetime | None:
    """When the next daily bonus unlocks. None means it is available now."""
    if account.last_daily_claim_at is None:
        return None
    return account.last_daily_claim_at + DAILY_CLAIM_INTERVAL


def time_until_next_claim(account: UserAccount, now: datetime) -> timedelta:
    """Remaining cooldown, zero once a claim is possible.

    A stored timestamp later than ``now`` reports the full interval counted
    from that timestamp; the claim itself will still be refused.
    """
    _require_aware(now)
    if account.last_daily_claim_at is not None:
        _require_aware(account.last_daily_claim_at, "last_daily_claim_at")
    unlock_at = next_claim_at(account)
    if unlock_at is None or now >= unlock_at:
        return timedelta(0)
    return unlock_at - now


def claim_daily_bonus(account: UserAccount, now: datetime) -> ClaimResult:
    """Grant the daily bonus at most once per 24 hours.

    A stored claim time in the future means the caller's clock went backward;
    that is refused as CLOCK_ROLLBACK rather than treated as a fresh window.
    """
    _require_aware(now)
    last = account.last_daily_claim_at

    if last is not None:
        _require_aware(last, "last_daily_claim_at")
        if last > now:
            return ClaimResult(account, ClaimOutcome.CLOCK_ROLLBACK)
        elapsed = now - last
        if elapsed < DAILY_CLAIM_INTERVAL:
            return ClaimResult(account, ClaimOutcome.TOO_SOON, retry_after=DAILY_CLAIM_INTERVAL - elapsed)

    updated = account.model_copy(
        update={"balance": account.balance + DAILY_BONUS, "last_daily_claim_at": now}
    )
    return ClaimResult(updated, ClaimOutcome.GRANTED)


# ---------------------------------------------------------------------------
# Direct credits
# ---------------------------------------------------------------------------


def credit_points(account: UserAccount, amount: int) -> UserAccount:
    """Add ``amount`` points. Balances only grow, so negative amounts are rejected."""
    if amount < 0:
        msg = f"Credit amount must not be negative: {amount}"
        raise InvalidInputError(msg)
    return account.model_copy(update={"balance": account.balance + amount})
