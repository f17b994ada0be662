"""Static achievement and course catalogs.

These values MUST match the storefront's profile and education pages.
"""

from __future__ import annotations

from dataclasses import dataclass

from cmk.rewards.errors import InvalidInputError

EARLY_ADOPTER = "early_adopter"
KNOWLEDGE_SEEKER = "knowledge_seeker"
SHOPAHOLIC = "shopaholic"
RICH_GUY = "rich_guy"

INTRO_COURSE_ID = "1"


@dataclass(frozen=True)
class Achievement:
    """A badge. ``threshold`` is None for badges granted by an event."""

    id: str
    title: str
    description: str
    icon: str
    threshold: int | None = None


@dataclass(frozen=True)
class Course:
    id: str
    title: str
    level: str
    lessons: int
    price: int

    @property
    def is_free(self) -> bool:
        return self.price == 0


ACHIEVEMENTS: dict[str, Achievement] = {
    a.id: a
    for a in (
        Achievement(EARLY_ADOPTER, "Early Adopter", "Registered among the first users", "zap"),
        Achievement(KNOWLEDGE_SEEKER, "Knowledge Seeker", "Finish one course", "book"),
        Achievement(SHOPAHOLIC, "Shopaholic", "Make a first purchase", "shopping-cart"),
        Achievement(RICH_GUY, "Big Saver", "Save up 10,000 points", "trending-up", threshold=10_000),
    )
}

COURSES: dict[str, Course] = {
    c.id: c
    for c in (
        Course(INTRO_COURSE_ID, "Crypto for Beginners", "Beginner", lessons=5, price=0),
        Course("2", "Advanced Trading", "Advanced", lessons=10, price=50_000),
        Course("3", "DeFi and Staking", "Expert", lessons=8, price=35_000),
    )
}


def get_course(course_id: str) -> Course:
    """Look up a course, rejecting ids the catalog does not know."""
    course = COURSES.get(course_id)
    if course is None:
        msg = f"Unknown course: {course_id}"
        raise InvalidInputError(msg)
    return course
