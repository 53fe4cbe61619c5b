"""Time-weighted scoring for a single finalized answer."""

from __future__ import annotations

from quizmaster.constants.quiz_constants import NO_ANSWER, TIME_BONUS_DIVISOR
from quizmaster.core.errors import InvalidConfiguration
from quizmaster.core.models import AnswerRecord, Question


def score_answer(
    question: Question,
    selected_option_index: int | None,
    remaining_seconds: int,
    time_budget_seconds: int,
) -> int:
    """Return the points awarded for an answer.

    A correct answer earns the question's points plus a time bonus of up to
    half the points, proportional to the unused share of the budget. Wrong
    answers and the ``NO_ANSWER`` sentinel earn nothing.
    """
    if time_budget_seconds <= 0:
        raise InvalidConfiguration("Time budget must be a positive number of seconds.")
    if selected_option_index is None or selected_option_index == NO_ANSWER:
        return 0
    if selected_option_index != question.correct_option_index:
        return 0

    clamped = min(max(remaining_seconds, 0), time_budget_seconds)
    # Integer floor of points * 0.5 * clamped / budget.
    bonus = (question.points * clamped) // (TIME_BONUS_DIVISOR * time_budget_seconds)
    return question.points + bonus


def count_correct_answers(questions: tuple[Question, ...], answers: tuple[AnswerRecord, ...]) -> int:
    """Derive the number of correct answers from the answer log."""
    correct_by_id = {question.id: question.correct_option_index for question in questions}
    return sum(
        1
        for answer in answers
        if answer.answered and correct_by_id.get(answer.question_id) == answer.selected_option_index
    )
