from __future__ import annotations

import pytest

from quizmaster.core.errors import PipelineAlreadyRun, StoreUnavailable
from quizmaster.core.models import AttemptResult, ProfileCounters, ProfileDelta
from quizmaster.core.services.completion_pipeline import CompletionStep
from quizmaster.core.services.memory_store import InMemoryAchievementStore

from conftest import make_quiz


def _result(score=120, user_id="user-1") -> AttemptResult:
    return AttemptResult(
        quiz_id="quiz-1",
        user_id=user_id,
        score=score,
        total_questions=3,
        correct_answers=1,
        time_spent_seconds=40,
        answers=(),
    )


def test_first_completion_grants_first_steps_once(make_session, stores):
    session = make_session(make_quiz(question_count=3))
    for _ in range(3):
        session.select_answer(1)
        session.advance()

    assert [grant.achievement_id for grant in stores.achievements.get_grants("user-1")] == [
        "first-steps"
    ]
    assert stores.notifications.notifications == [
        ("user-1", "Achievement Unlocked!", "First Steps - Complete your first quiz")
    ]
    assert [a.name for a in session.completion_report.granted] == ["First Steps"]

    repeat = make_session(make_quiz(question_count=3))
    for _ in range(3):
        repeat.advance()

    assert len(stores.achievements.get_grants("user-1")) == 1
    assert len(stores.notifications.notifications) == 1
    assert repeat.completion_report.granted == []
    assert repeat.completion_report.counters_before.total_quizzes == 1


def test_profile_counters_are_incremented(make_pipeline, stores):
    stores.profiles.apply_delta("user-1", ProfileDelta(quizzes=2, score=50, xp=70))
    make_pipeline().run(_result(score=120))
    assert stores.profiles.read_counters("user-1") == ProfileCounters(
        total_quizzes=3, total_score=170, xp=190
    )


def test_pipeline_runs_at_most_once(make_pipeline, stores):
    pipeline = make_pipeline()
    pipeline.run(_result())
    with pytest.raises(PipelineAlreadyRun):
        pipeline.run(_result())
    assert len(stores.attempts.get_attempts()) == 1


def test_failed_save_leaves_nothing_written(make_pipeline, stores):
    stores.attempts.fail_next("save_attempt")
    pipeline = make_pipeline()
    with pytest.raises(StoreUnavailable):
        pipeline.run(_result())

    report = pipeline.report
    assert report.completed_steps == []
    assert report.failed_step is CompletionStep.SAVE_ATTEMPT
    assert not report.attempt_saved
    assert stores.profiles.read_counters("user-1") == ProfileCounters()


def test_failed_profile_update_is_observable_and_resumable(make_pipeline, stores):
    stores.profiles.fail_next("apply_delta")
    pipeline = make_pipeline()
    with pytest.raises(StoreUnavailable) as excinfo:
        pipeline.run(_result(score=80))

    report = pipeline.report
    assert report.error is excinfo.value
    assert report.attempt_saved
    assert report.failed_step is CompletionStep.UPDATE_PROFILE
    assert stores.profiles.read_counters("user-1") == ProfileCounters()
    assert stores.achievements.get_grants("user-1") == []

    report = pipeline.resume()
    assert report.is_complete
    assert report.failed_step is None
    assert len(stores.attempts.get_attempts()) == 1
    assert stores.profiles.read_counters("user-1").total_score == 80
    assert len(stores.achievements.get_grants("user-1")) == 1


def test_failure_during_session_completion_propagates(make_session, stores):
    stores.achievements.fail_next("find_achievement_by_name")
    session = make_session(make_quiz(question_count=1))
    with pytest.raises(StoreUnavailable):
        session.advance()

    assert session.is_completed
    report = session.completion_report
    assert report.failed_step is CompletionStep.GRANT_ACHIEVEMENTS
    assert report.completed_steps == [CompletionStep.SAVE_ATTEMPT, CompletionStep.UPDATE_PROFILE]

    session.resume_completion()
    assert session.completion_report.is_complete
    assert stores.profiles.read_counters("user-1").total_quizzes == 1


def test_resume_after_success_does_nothing(make_pipeline, stores):
    pipeline = make_pipeline()
    pipeline.run(_result())
    assert pipeline.resume().is_complete
    assert len(stores.attempts.get_attempts()) == 1


def test_resume_before_run_is_an_error(make_pipeline):
    with pytest.raises(RuntimeError):
        make_pipeline().resume()


def test_already_held_achievement_is_not_requested_again(make_pipeline, stores):
    stores.achievements.grant("user-1", "first-steps")
    report = make_pipeline().run(_result())
    assert report.granted == []
    assert stores.notifications.notifications == []


def test_unknown_achievement_is_skipped(make_pipeline, stores):
    stores.achievements = InMemoryAchievementStore()
    report = make_pipeline().run(_result())
    assert report.is_complete
    assert report.granted == []


class _BrokenSink:
    def notify(self, user_id: str, title: str, message: str) -> None:
        raise RuntimeError("sink offline")


def test_failing_notification_sink_does_not_abort_grant_step(make_pipeline, stores, caplog):
    stores.notifications = _BrokenSink()
    report = make_pipeline().run(_result())

    assert report.is_complete
    assert report.failed_step is None
    assert [a.name for a in report.granted] == ["First Steps"]
    assert len(stores.achievements.get_grants("user-1")) == 1
    assert "Notification sink failed" in caplog.text
