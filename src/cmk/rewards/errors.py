"""Rewards engine exceptions.

Business outcomes (too-soon claims, finished courses, unknown referral codes)
are returned as values. These exceptions cover precondition violations only.
"""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised when an operation receives input it must not act on."""


class AccountNotFoundError(InvalidInputError):
    """Raised when an account id is not present in the store."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account not found: {account_id}")
        self.account_id = account_id


class DuplicateAccountError(InvalidInputError):
    """Raised when an id, email or referral code is already taken."""
