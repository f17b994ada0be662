"""Course progress tracking and the course-completion achievement."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cmk.rewards.accounts import UserAccount
from cmk.rewards.catalog import INTRO_COURSE_ID, KNOWLEDGE_SEEKER, Course
from cmk.rewards.errors import InvalidInputError

INTRO_COURSE_COMPLETION_BONUS = 1000


class LessonOutcome(str, Enum):
    ADVANCED = "advanced"
    ALREADY_COMPLETE = "already_complete"


@dataclass(frozen=True)
class LessonResult:
    account: UserAccount
    outcome: LessonOutcome
    progress: int
    achievement_unlocked: bool = False
    points_awarded: int = 0


def complete_lesson(account: UserAccount, course_id: str, total_lessons: int) -> LessonResult:
    """Advance progress in ``course_id`` by one lesson, capped at ``total_lessons``.

    Reaching the cap unlocks knowledge_seeker, plus a one-time bonus when the
    course is the free introductory one. The grant is keyed on the achievement
    id, so replaying a course after its progress was reset grants nothing.
    """
    if not course_id:
        msg = "course_id must not be empty"
        raise InvalidInputError(msg)
    if total_lessons < 0:
        msg = f"total_lessons must not be negative: {total_lessons}"
        raise InvalidInputError(msg)

    current = account.progress_for(course_id)
    if current >= total_lessons:
        return LessonResult(account, LessonOutcome.ALREADY_COMPLETE, progress=current)

    progress = current + 1
    balance = account.balance
    achievements = account.achievements
    unlocked = False
    points = 0

    if progress >= total_lessons and KNOWLEDGE_SEEKER not in achievements:
        achievements = (*achievements, KNOWLEDGE_SEEKER)
        unlocked = True
        if course_id == INTRO_COURSE_ID:
            points = INTRO_COURSE_COMPLETION_BONUS
            balance += points

    updated = account.model_copy(
        update={
            "balance": balance,
            "achievements": achievements,
            "course_progress": {**account.course_progress, course_id: progress},
        }
    )
    return LessonResult(
        updated,
        LessonOutcome.ADVANCED,
        progress=progress,
        achievement_unlocked=unlocked,
        points_awarded=points,
    )


def course_status(account: UserAccount, course: Course) -> dict:
    """Progress summary for one course."""
    completed = min(account.progress_for(course.id), course.lessons)
    return {
        "course_id": course.id,
        "title": course.title,
        "total_lessons": course.lessons,
        "completed_lessons": completed,
        "percent": round(completed / course.lessons * 100) if course.lessons > 0 else 0,
        "completed": completed >= course.lessons,
    }
