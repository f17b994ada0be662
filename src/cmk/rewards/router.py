"""Rewards API endpoints.

Business outcomes (too-soon claims, clock rollback, finished courses) come
back as 200 responses with an ``outcome`` field. Precondition violations are
raised as rewards errors and mapped to 4xx by the global error handlers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cmk.auth.dependencies import require_admin
from cmk.auth.password import hash_password
from cmk.database import get_session
from cmk.rewards.accounts import UserAccount
from cmk.rewards.achievements import is_achievement_unlocked, unlocked_achievements
from cmk.rewards.catalog import ACHIEVEMENTS, COURSES
from cmk.rewards.ledger import ClaimOutcome, next_claim_at, time_until_next_claim
from cmk.rewards.progress import course_status
from cmk.rewards.ranks import compute_rank
from cmk.rewards.referral import generate_unique_referral_code
from cmk.rewards.schemas import (
    AccountResponse,
    AchievementEntry,
    AchievementStatusResponse,
    AdminAccountCreateRequest,
    AllAchievementsResponse,
    AllCoursesResponse,
    ClaimResponse,
    CourseEntry,
    CourseStatusEntry,
    CreditRequest,
    DailyClaimStatus,
    LessonCompleteResponse,
    ProfileResponse,
    RankResponse,
    ReferralPreviewResponse,
    RegisterRequest,
    RegisterResponse,
)
from cmk.rewards.service import RewardsService
from cmk.rewards.store import load_population

router = APIRouter(prefix="/api/v1", tags=["Rewards"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_rewards_service(db: AsyncSession = Depends(get_session)) -> RewardsService:
    return RewardsService(db)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _account_response(account: UserAccount) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        name=account.name,
        email=account.email,
        role=account.role,
        balance=account.balance,
        referral_code=account.referral_code,
        referral_reward_amount=account.referral_reward_amount,
        achievements=list(account.achievements),
        last_daily_claim_at=account.last_daily_claim_at,
        course_progress=dict(account.course_progress),
        created_at=account.created_at,
    )


# ── Catalogs ──


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements() -> AllAchievementsResponse:
    """All achievement definitions."""
    return AllAchievementsResponse(
        achievements=[
            AchievementEntry(
                id=a.id, title=a.title, description=a.description, icon=a.icon, threshold=a.threshold
            )
            for a in ACHIEVEMENTS.values()
        ]
    )


@router.get("/courses", response_model=AllCoursesResponse)
async def list_courses() -> AllCoursesResponse:
    """All courses with their lesson counts."""
    return AllCoursesResponse(
        courses=[
            CourseEntry(id=c.id, title=c.title, level=c.level, lessons=c.lessons, price=c.price)
            for c in COURSES.values()
        ]
    )


@router.get("/referrals/{code}/preview", response_model=ReferralPreviewResponse)
async def referral_preview(
    code: str,
    service: RewardsService = Depends(get_rewards_service),
) -> ReferralPreviewResponse:
    """Bonus a new registrant would receive for this code."""
    valid, bonus = await service.referral_preview(code)
    return ReferralPreviewResponse(code=code, valid=valid, bonus=bonus)


# ── Accounts ──


@router.post("/accounts/register", response_model=RegisterResponse, status_code=201)
async def register_account(
    body: RegisterRequest,
    service: RewardsService = Depends(get_rewards_service),
) -> RegisterResponse:
    """Register a new account, applying early-adopter and referral bonuses."""
    result = await service.register(
        name=body.name,
        email=body.email,
        password=body.password,
        referral_code=body.referral_code,
        now=_utcnow(),
    )
    return RegisterResponse(
        account=_account_response(result.account),
        early_adopter=result.early_adopter,
        referral_bonus=result.referral_bonus,
        referrer_id=result.referrer.id if result.referrer else None,
    )


@router.get("/accounts/{account_id}", response_model=ProfileResponse)
async def get_profile(
    account_id: str,
    service: RewardsService = Depends(get_rewards_service),
) -> ProfileResponse:
    """Account with rank, unlocked achievements and daily claim status."""
    account = await service.get_account(account_id)
    now = _utcnow()
    remaining = time_until_next_claim(account, now)
    rollback = account.last_daily_claim_at is not None and account.last_daily_claim_at > now
    return ProfileResponse(
        account=_account_response(account),
        rank=RankResponse(**compute_rank(account.balance)),
        unlocked_achievements=unlocked_achievements(account),
        daily_claim=DailyClaimStatus(
            available=remaining == timedelta(0) and not rollback,
            next_claim_at=next_claim_at(account),
            seconds_remaining=int(remaining.total_seconds()),
        ),
        courses=[CourseStatusEntry(**course_status(account, c)) for c in COURSES.values()],
    )


@router.post("/accounts/{account_id}/daily-claim", response_model=ClaimResponse)
async def claim_daily_bonus(
    account_id: str,
    service: RewardsService = Depends(get_rewards_service),
) -> ClaimResponse:
    """Claim the daily bonus. Repeated calls within 24 hours return too_soon."""
    result = await service.claim_daily_bonus(account_id, _utcnow())
    retry_after = None
    if result.outcome is ClaimOutcome.TOO_SOON and result.retry_after is not None:
        retry_after = int(result.retry_after.total_seconds())
    return ClaimResponse(
        outcome=result.outcome.value,
        granted=result.granted,
        balance=result.account.balance,
        last_daily_claim_at=result.account.last_daily_claim_at,
        retry_after_seconds=retry_after,
    )


@router.post(
    "/accounts/{account_id}/courses/{course_id}/lessons/complete",
    response_model=LessonCompleteResponse,
)
async def complete_lesson(
    account_id: str,
    course_id: str,
    service: RewardsService = Depends(get_rewards_service),
) -> LessonCompleteResponse:
    """Mark the next lesson of a course complete."""
    result = await service.complete_lesson(account_id, course_id)
    return LessonCompleteResponse(
        outcome=result.outcome.value,
        course_id=course_id,
        progress=result.progress,
        total_lessons=COURSES[course_id].lessons,
        achievement_unlocked=result.achievement_unlocked,
        points_awarded=result.points_awarded,
        balance=result.account.balance,
    )


@router.get(
    "/accounts/{account_id}/achievements/{achievement_id}",
    response_model=AchievementStatusResponse,
)
async def achievement_status(
    account_id: str,
    achievement_id: str,
    service: RewardsService = Depends(get_rewards_service),
) -> AchievementStatusResponse:
    """Whether one achievement is unlocked for the account."""
    account = await service.get_account(account_id)
    return AchievementStatusResponse(
        achievement_id=achievement_id,
        unlocked=is_achievement_unlocked(account, achievement_id, ACHIEVEMENTS),
    )


# ── Admin ──


@admin_router.post("/accounts", response_model=AccountResponse, status_code=201)
async def admin_create_account(
    body: AdminAccountCreateRequest,
    service: RewardsService = Depends(get_rewards_service),
) -> AccountResponse:
    """Insert a pre-populated account. No registration bonuses apply."""
    referral_code = body.referral_code
    if referral_code is None:
        taken = {a.referral_code for a in await load_population(service.db)}
        referral_code = generate_unique_referral_code(taken)

    account = UserAccount(
        id=body.id or str(uuid.uuid4()),
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password) if body.password else None,
        role=body.role,
        balance=body.balance,
        referral_code=referral_code,
        referral_reward_amount=body.referral_reward_amount,
        achievements=body.achievements,
        created_at=_utcnow(),
    )
    return _account_response(await service.insert_account(account))


@admin_router.post("/accounts/{account_id}/credit", response_model=AccountResponse)
async def admin_credit_points(
    account_id: str,
    body: CreditRequest,
    service: RewardsService = Depends(get_rewards_service),
) -> AccountResponse:
    """Credit points to an account."""
    return _account_response(await service.credit_points(account_id, body.amount))
