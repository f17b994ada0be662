"""Achievement evaluation.

An achievement is unlocked when it was granted explicitly (it sits in the
account's achievements) or when its catalog entry carries a balance threshold
the account has reached. Threshold unlocks are derived on every read and never
written back.
"""

from __future__ import annotations

from collections.abc import Mapping

from cmk.rewards.accounts import UserAccount
from cmk.rewards.catalog import ACHIEVEMENTS, Achievement


def is_achievement_unlocked(
    account: UserAccount,
    achievement_id: str,
    catalog: Mapping[str, Achievement] = ACHIEVEMENTS,
) -> bool:
    if account.has_achievement(achievement_id):
        return True
    entry = catalog.get(achievement_id)
    if entry is None or entry.threshold is None:
        return False
    return account.balance >= entry.threshold


def unlocked_achievements(
    account: UserAccount,
    catalog: Mapping[str, Achievement] = ACHIEVEMENTS,
) -> list[str]:
    """Unlocked catalog ids in catalog order."""
    return [a_id for a_id in catalog if is_achievement_unlocked(account, a_id, catalog)]
