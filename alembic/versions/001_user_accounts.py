"""User accounts table for the rewards engine.

Revision ID: 001_user_accounts
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_user_accounts"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_accounts (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(128) NOT NULL DEFAULT '',
            email VARCHAR(320) NOT NULL UNIQUE,
            password_hash VARCHAR(256),
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            avatar_url TEXT NOT NULL DEFAULT '',
            balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0),
            referral_code VARCHAR(32) NOT NULL UNIQUE,
            referral_reward_amount INTEGER NOT NULL DEFAULT 10 CHECK (referral_reward_amount >= 0),
            achievements JSONB NOT NULL DEFAULT '[]',
            last_daily_claim_at TIMESTAMPTZ,
            course_progress JSONB NOT NULL DEFAULT '{}',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_accounts_created_at
        ON user_accounts(created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_user_accounts_email_lower
        ON user_accounts(lower(email))
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_accounts CASCADE")
