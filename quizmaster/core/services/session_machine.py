"""Pure transition logic for one timed quiz attempt.

States are ``AwaitingAnswer(i)`` (``completed`` is False, ``current_index`` is
``i``) and ``Completed``. Every transition takes the current snapshot and an
event and returns the next snapshot plus the effects the driver must carry
out, in order. Nothing here touches a clock or a store.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Union

from quizmaster.constants.quiz_constants import MIN_OPTION_COUNT, NO_ANSWER
from quizmaster.core.errors import InvalidConfiguration, InvalidSelection
from quizmaster.core.models import (
    AnswerRecord,
    AttemptResult,
    Question,
    QuizConfig,
    QuizDefinition,
    SessionState,
)
from quizmaster.core.scoring import count_correct_answers, score_answer


@dataclass(frozen=True, slots=True)
class SelectAnswer:
    option_index: int


@dataclass(frozen=True, slots=True)
class Advance:
    pass


@dataclass(frozen=True, slots=True)
class Tick:
    pass


Event = Union[SelectAnswer, Advance, Tick]


@dataclass(frozen=True, slots=True)
class ArmClock:
    duration_seconds: int


@dataclass(frozen=True, slots=True)
class DisarmClock:
    pass


@dataclass(frozen=True, slots=True)
class CompleteAttempt:
    result: AttemptResult


Effect = Union[ArmClock, DisarmClock, CompleteAttempt]


class TransitionOutcome(Enum):
    SELECTED = auto()
    TICKED = auto()
    ADVANCED = auto()
    COMPLETED = auto()
    ALREADY_COMPLETED = auto()


@dataclass(frozen=True, slots=True)
class Transition:
    state: SessionState
    effects: tuple[Effect, ...]
    outcome: TransitionOutcome


def validate_quiz(config: QuizConfig, questions: list[Question] | tuple[Question, ...]) -> QuizDefinition:
    """Check that a quiz is playable and return it with questions in order."""
    if config.time_per_question_seconds <= 0:
        raise InvalidConfiguration("Time per question must be a positive integer.")
    if not questions:
        raise InvalidConfiguration(f"Quiz '{config.id}' has no questions.")

    seen_ids: set[str] = set()
    for question in questions:
        if question.id in seen_ids:
            raise InvalidConfiguration(f"Duplicate question id '{question.id}'.")
        seen_ids.add(question.id)
        if len(question.options) < MIN_OPTION_COUNT:
            raise InvalidConfiguration(
                f"Question '{question.id}' needs at least {MIN_OPTION_COUNT} options."
            )
        if not 0 <= question.correct_option_index < len(question.options):
            raise InvalidConfiguration(
                f"Question '{question.id}' has an out-of-range correct option."
            )
        if question.points <= 0:
            raise InvalidConfiguration(f"Question '{question.id}' must award positive points.")

    ordered = tuple(sorted(questions, key=lambda q: q.order_index))
    return QuizDefinition(config=config, questions=ordered)


def start_state(config: QuizConfig) -> SessionState:
    return SessionState(current_index=0, remaining_seconds=config.time_per_question_seconds)


def transition(quiz: QuizDefinition, user_id: str, state: SessionState, event: Event) -> Transition:
    """Apply ``event`` to ``state``. Events on a completed session change nothing."""
    if state.completed:
        return Transition(state, (), TransitionOutcome.ALREADY_COMPLETED)

    if isinstance(event, SelectAnswer):
        return _select(quiz, state, event.option_index)
    if isinstance(event, Tick):
        return _tick(quiz, user_id, state)
    if isinstance(event, Advance):
        return _advance(quiz, user_id, state)
    raise TypeError(f"Unsupported event: {event!r}")


def _select(quiz: QuizDefinition, state: SessionState, option_index: int) -> Transition:
    question = quiz.questions[state.current_index]
    if not 0 <= option_index < len(question.options):
        raise InvalidSelection(
            f"Option {option_index} does not exist on question '{question.id}'."
        )
    return Transition(
        replace(state, selected_option_index=option_index), (), TransitionOutcome.SELECTED
    )


def _tick(quiz: QuizDefinition, user_id: str, state: SessionState) -> Transition:
    remaining = max(state.remaining_seconds - 1, 0)
    ticked = replace(state, remaining_seconds=remaining)
    if remaining > 0:
        return Transition(ticked, (), TransitionOutcome.TICKED)
    # Out of time: finalize with whatever is currently selected.
    return _advance(quiz, user_id, ticked)


def _advance(quiz: QuizDefinition, user_id: str, state: SessionState) -> Transition:
    budget = quiz.config.time_per_question_seconds
    question = quiz.questions[state.current_index]
    remaining = min(max(state.remaining_seconds, 0), budget)
    selected = state.selected_option_index
    if selected is None:
        selected = NO_ANSWER

    awarded = score_answer(question, selected, remaining, budget)
    record = AnswerRecord(
        question_id=question.id,
        selected_option_index=selected,
        time_spent_seconds=budget - remaining,
    )
    answers = state.answers + (record,)
    score = state.score + awarded
    next_index = state.current_index + 1

    if next_index >= quiz.question_count:
        finished = SessionState(
            current_index=state.current_index,
            remaining_seconds=remaining,
            score=score,
            answers=answers,
            selected_option_index=None,
            completed=True,
        )
        result = build_attempt_result(quiz, user_id, finished)
        return Transition(
            finished, (DisarmClock(), CompleteAttempt(result)), TransitionOutcome.COMPLETED
        )

    next_state = SessionState(
        current_index=next_index,
        remaining_seconds=budget,
        score=score,
        answers=answers,
        selected_option_index=None,
        completed=False,
    )
    return Transition(next_state, (ArmClock(budget),), TransitionOutcome.ADVANCED)


def build_attempt_result(quiz: QuizDefinition, user_id: str, state: SessionState) -> AttemptResult:
    return AttemptResult(
        quiz_id=quiz.config.id,
        user_id=user_id,
        score=state.score,
        total_questions=quiz.question_count,
        correct_answers=count_correct_answers(quiz.questions, state.answers),
        time_spent_seconds=sum(answer.time_spent_seconds for answer in state.answers),
        answers=state.answers,
    )
