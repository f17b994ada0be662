"""Pydantic request/response models for rewards endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from cmk.rewards.accounts import UserRole

# --- Requests ---


class RegisterRequest(BaseModel):
    """Self-service registration. The referral code is optional."""

    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    referral_code: str | None = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()

    @field_validator("referral_code")
    @classmethod
    def blank_code_is_none(cls, v: str | None) -> str | None:
        """Codes are case-sensitive; only surrounding whitespace is dropped."""
        if v is None:
            return None
        return v.strip() or None


class AdminAccountCreateRequest(BaseModel):
    """Administrative insertion of a pre-populated account."""

    id: str | None = Field(None, min_length=1, max_length=64)
    name: str = Field("", max_length=128)
    email: EmailStr
    password: str | None = Field(None, min_length=1, max_length=128)
    role: UserRole = UserRole.USER
    balance: int = Field(0, ge=0)
    referral_code: str | None = Field(None, min_length=1, max_length=32)
    referral_reward_amount: int | None = Field(None, ge=0)
    achievements: list[str] = []

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class CreditRequest(BaseModel):
    amount: int = Field(..., ge=0)


# --- Responses ---


class AccountResponse(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    balance: int
    referral_code: str
    referral_reward_amount: int
    achievements: list[str]
    last_daily_claim_at: datetime | None = None
    course_progress: dict[str, int] = {}
    created_at: datetime | None = None


class RankResponse(BaseModel):
    rank: int
    title: str
    icon: str
    next_title: str | None = None
    next_threshold: int | None = None
    points_to_next: int
    progress_percent: float


class DailyClaimStatus(BaseModel):
    available: bool
    next_claim_at: datetime | None = None
    seconds_remaining: int = 0


class CourseStatusEntry(BaseModel):
    course_id: str
    title: str
    total_lessons: int
    completed_lessons: int
    percent: int
    completed: bool


class ProfileResponse(BaseModel):
    account: AccountResponse
    rank: RankResponse
    unlocked_achievements: list[str]
    daily_claim: DailyClaimStatus
    courses: list[CourseStatusEntry]


class RegisterResponse(BaseModel):
    account: AccountResponse
    early_adopter: bool
    referral_bonus: int
    referrer_id: str | None = None


class ClaimResponse(BaseModel):
    outcome: str
    granted: bool
    balance: int
    last_daily_claim_at: datetime | None = None
    retry_after_seconds: int | None = None


class LessonCompleteResponse(BaseModel):
    outcome: str
    course_id: str
    progress: int
    total_lessons: int
    achievement_unlocked: bool
    points_awarded: int
    balance: int


class AchievementStatusResponse(BaseModel):
    achievement_id: str
    unlocked: bool


class AchievementEntry(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    threshold: int | None = None


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementEntry]


class CourseEntry(BaseModel):
    id: str
    title: str
    level: str
    lessons: int
    price: int


class AllCoursesResponse(BaseModel):
    courses: list[CourseEntry]


class ReferralPreviewResponse(BaseModel):
    code: str
    valid: bool
    bonus: int
