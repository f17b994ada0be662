"""Referral code generation and referrer resolution.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side with a
cryptographic random source. Lookup is exact and case-sensitive, so codes
typed by an administrator in another case are distinct codes.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Collection, Iterable

from cmk.rewards.accounts import UserAccount

REFERRAL_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
REFERRAL_CODE_LENGTH = 8


def generate_referral_code() -> str:
    """Generate a cryptographically random 8-character referral code."""
    return "".join(secrets.choice(REFERRAL_CHARSET) for _ in range(REFERRAL_CODE_LENGTH))


def generate_unique_referral_code(taken: Collection[str], attempts: int = 10) -> str:
    """Generate a referral code that is not in ``taken``."""
    for _ in range(attempts):
        code = generate_referral_code()
        if code not in taken:
            return code
    msg = f"Failed to generate unique referral code after {attempts} attempts"
    raise RuntimeError(msg)


def resolve_referrer(
    code: str | None,
    population: Iterable[UserAccount],
    registrant_email: str | None = None,
) -> UserAccount | None:
    """Find the account owning ``code``.

    Accounts sharing the registrant's email are never returned, so nobody can
    refer themselves. No match is not an error: the result is simply None.
    """
    if not code:
        return None
    for account in population:
        if account.referral_code != code:
            continue
        if registrant_email is not None and account.email == registrant_email:
            continue
        return account
    return None


def preview_referral_bonus(code: str | None, population: Iterable[UserAccount]) -> int:
    """Points a new registrant would receive for ``code`` (0 if it does not resolve)."""
    referrer = resolve_referrer(code, population)
    return referrer.referral_reward_amount if referrer else 0
