from __future__ import annotations

from typing import Callable

import pytest

from quizmaster.core.clock import ManualClock
from quizmaster.core.models import Question, QuizConfig, QuizDefinition
from quizmaster.core.quiz_manager import StoreBundle
from quizmaster.core.services.completion_pipeline import CompletionPipeline
from quizmaster.core.services.memory_store import (
    CollectingNotificationSink,
    InMemoryAchievementStore,
    InMemoryAttemptStore,
    InMemoryProfileStore,
)
from quizmaster.core.services.quiz_session import QuizSession


def make_question(
    question_id: str = "q1",
    correct_option_index: int = 1,
    points: int = 100,
    order_index: int = 0,
    options: tuple[str, ...] = ("A", "B", "C", "D"),
) -> Question:
    return Question(
        id=question_id,
        question_text=f"Question {question_id}?",
        options=options,
        correct_option_index=correct_option_index,
        points=points,
        order_index=order_index,
    )


def make_quiz(question_count: int = 1, budget: int = 30, points: int = 100) -> QuizDefinition:
    questions = tuple(
        make_question(question_id=f"q{i + 1}", points=points, order_index=i)
        for i in range(question_count)
    )
    config = QuizConfig(id="quiz-1", title="Test Quiz", time_per_question_seconds=budget)
    return QuizDefinition(config=config, questions=questions)


@pytest.fixture()
def stores() -> StoreBundle:
    return StoreBundle(
        attempts=InMemoryAttemptStore(),
        profiles=InMemoryProfileStore(),
        achievements=InMemoryAchievementStore.with_default_catalogue(),
        notifications=CollectingNotificationSink(),
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def make_pipeline(stores: StoreBundle) -> Callable[[], CompletionPipeline]:
    def factory() -> CompletionPipeline:
        return CompletionPipeline(
            attempts=stores.attempts,
            profiles=stores.profiles,
            achievements=stores.achievements,
            notifications=stores.notifications,
        )

    return factory


@pytest.fixture()
def make_session(clock: ManualClock, make_pipeline) -> Callable[..., QuizSession]:
    def factory(quiz: QuizDefinition | None = None, user_id: str = "user-1") -> QuizSession:
        session = QuizSession(quiz or make_quiz(), user_id, clock, make_pipeline())
        session.start()
        return session

    return factory
