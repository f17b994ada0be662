"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database. The FastAPI session
dependency is overridden to use it; Redis is never initialized, so rate
limiting is bypassed.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

os.environ.setdefault("CMK_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CMK_SEED_DEMO_ACCOUNTS", "false")
os.environ.setdefault("CMK_LOG_FORMAT", "console")
os.environ.setdefault("CMK_ADMIN_API_KEY", "test-admin-key")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cmk.database import get_session
from cmk.db.base import Base
from cmk.main import create_app
from cmk.rewards.accounts import UserAccount
from cmk.rewards.locks import AccountLocks
from cmk.rewards.service import RewardsService
from cmk.rewards.store import save_accounts

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
ADMIN_HEADERS = {"X-Admin-Key": os.environ["CMK_ADMIN_API_KEY"]}


def make_account(
    account_id: str = "u1",
    *,
    email: str | None = None,
    referral_code: str | None = None,
    **fields: object,
) -> UserAccount:
    """Build an account with predictable unique fields."""
    return UserAccount(
        id=account_id,
        name=f"User {account_id}",
        email=email or f"{account_id}@example.com",
        referral_code=referral_code or f"CODE{account_id.upper()}",
        **fields,
    )


def make_population(size: int) -> list[UserAccount]:
    return [make_account(f"p{i}") for i in range(size)]


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def service(db_session: AsyncSession) -> RewardsService:
    """RewardsService with its own lock registry."""
    return RewardsService(db_session, AccountLocks())


@pytest_asyncio.fixture
async def seeded_accounts(db_session: AsyncSession) -> dict[str, UserAccount]:
    """Two stored accounts: a referrer with a custom reward and a plain user."""
    referrer = make_account("ref", referral_code="PROMO2025", referral_reward_amount=50, balance=100)
    plain = make_account("plain", balance=15)
    await save_accounts(db_session, referrer, plain)
    await db_session.commit()
    return {"referrer": referrer, "plain": plain}


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, with the DB dependency overridden."""
    app = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def t0() -> datetime:
    """A fixed, timezone-aware 'now'."""
    return T0
