"""Course progress tests: capping, completion achievement and the intro bonus."""

import pytest

from cmk.rewards.catalog import COURSES, KNOWLEDGE_SEEKER
from cmk.rewards.errors import InvalidInputError
from cmk.rewards.progress import (
    INTRO_COURSE_COMPLETION_BONUS,
    LessonOutcome,
    complete_lesson,
    course_status,
)
from tests.conftest import make_account


def _run_lessons(account, course_id, total, times):
    results = []
    for _ in range(times):
        result = complete_lesson(account, course_id, total)
        account = result.account
        results.append(result)
    return account, results


class TestIntroCourse:
    def test_five_lessons_unlock_achievement_and_bonus(self):
        account, results = _run_lessons(make_account(), "1", 5, 5)

        assert [r.progress for r in results] == [1, 2, 3, 4, 5]
        assert [r.achievement_unlocked for r in results] == [False, False, False, False, True]
        assert account.progress_for("1") == 5
        assert KNOWLEDGE_SEEKER in account.achievements
        assert account.balance == INTRO_COURSE_COMPLETION_BONUS

    def test_sixth_call_is_capped(self):
        account, results = _run_lessons(make_account(), "1", 5, 6)

        assert results[-1].outcome is LessonOutcome.ALREADY_COMPLETE
        assert results[-1].account is results[-2].account
        assert account.progress_for("1") == 5
        assert account.balance == 1000

    def test_many_extra_calls_never_exceed_total(self):
        account, _ = _run_lessons(make_account(), "1", 5, 20)
        assert account.progress_for("1") == 5
        assert account.balance == 1000
        assert account.achievements.count(KNOWLEDGE_SEEKER) == 1

    def test_reset_and_replay_grants_nothing_twice(self):
        account, _ = _run_lessons(make_account(), "1", 5, 5)
        reset = account.model_copy(update={"course_progress": {}})

        replayed, results = _run_lessons(reset, "1", 5, 5)

        assert not any(r.achievement_unlocked for r in results)
        assert replayed.balance == 1000
        assert replayed.progress_for("1") == 5

    def test_bonus_added_to_existing_balance(self):
        account, _ = _run_lessons(make_account(balance=15), "1", 5, 5)
        assert account.balance == 1015


class TestOtherCourses:
    def test_paid_course_unlocks_achievement_without_points(self):
        account, results = _run_lessons(make_account(balance=3), "2", 10, 10)

        assert results[-1].achievement_unlocked is True
        assert results[-1].points_awarded == 0
        assert KNOWLEDGE_SEEKER in account.achievements
        assert account.balance == 3

    def test_second_course_completion_does_not_regrant(self):
        account, _ = _run_lessons(make_account(), "3", 8, 8)
        account, results = _run_lessons(account, "1", 5, 5)

        assert not any(r.achievement_unlocked for r in results)
        assert account.balance == 0

    def test_courses_progress_independently(self):
        account = complete_lesson(make_account(), "2", 10).account
        account = complete_lesson(account, "3", 8).account
        account = complete_lesson(account, "3", 8).account
        assert account.course_progress == {"2": 1, "3": 2}

    def test_original_record_untouched(self):
        account = make_account()
        complete_lesson(account, "1", 5)
        assert account.course_progress == {}


class TestEdgeCases:
    def test_zero_total_is_already_complete(self):
        account = make_account()
        result = complete_lesson(account, "1", 0)
        assert result.outcome is LessonOutcome.ALREADY_COMPLETE
        assert result.account == account

    def test_progress_above_total_is_left_alone(self):
        account = make_account(course_progress={"2": 12})
        result = complete_lesson(account, "2", 10)
        assert result.outcome is LessonOutcome.ALREADY_COMPLETE
        assert result.progress == 12

    def test_empty_course_id_rejected(self):
        with pytest.raises(InvalidInputError):
            complete_lesson(make_account(), "", 5)

    def test_negative_total_rejected(self):
        with pytest.raises(InvalidInputError):
            complete_lesson(make_account(), "1", -1)


class TestCourseStatus:
    def test_fresh_account(self):
        status = course_status(make_account(), COURSES["1"])
        assert status["completed_lessons"] == 0
        assert status["total_lessons"] == 5
        assert status["percent"] == 0
        assert status["completed"] is False

    def test_partial_progress(self):
        status = course_status(make_account(course_progress={"3": 2}), COURSES["3"])
        assert status["completed_lessons"] == 2
        assert status["percent"] == 25

    def test_completed_course(self):
        status = course_status(make_account(course_progress={"1": 5}), COURSES["1"])
        assert status["completed"] is True
        assert status["percent"] == 100
