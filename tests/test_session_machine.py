from __future__ import annotations

import pytest

from quizmaster.constants.quiz_constants import NO_ANSWER
from quizmaster.core.errors import InvalidConfiguration, InvalidSelection
from quizmaster.core.models import QuizConfig
from quizmaster.core.services.session_machine import (
    Advance,
    ArmClock,
    CompleteAttempt,
    DisarmClock,
    SelectAnswer,
    Tick,
    TransitionOutcome,
    start_state,
    transition,
    validate_quiz,
)

from conftest import make_question, make_quiz


def _run(quiz, events, user_id="user-1"):
    state = start_state(quiz.config)
    transitions = []
    for event in events:
        step = transition(quiz, user_id, state, event)
        transitions.append(step)
        state = step.state
    return state, transitions


def test_start_state_awaits_first_question():
    quiz = make_quiz(question_count=2, budget=20)
    state = start_state(quiz.config)
    assert state.current_index == 0
    assert state.remaining_seconds == 20
    assert state.answers == ()
    assert not state.completed


def test_select_answer_keeps_answer_log_untouched():
    quiz = make_quiz(question_count=2)
    state, steps = _run(quiz, [SelectAnswer(0), SelectAnswer(2)])
    assert steps[-1].outcome is TransitionOutcome.SELECTED
    assert steps[-1].effects == ()
    assert state.selected_option_index == 2
    assert state.answers == ()


def test_select_out_of_range_option_raises():
    quiz = make_quiz()
    with pytest.raises(InvalidSelection):
        transition(quiz, "user-1", start_state(quiz.config), SelectAnswer(4))
    with pytest.raises(InvalidSelection):
        transition(quiz, "user-1", start_state(quiz.config), SelectAnswer(-1))


def test_advance_moves_to_next_question_and_rearms():
    quiz = make_quiz(question_count=2, budget=30)
    state, steps = _run(quiz, [Tick(), Tick(), SelectAnswer(1), Advance()])
    assert steps[-1].outcome is TransitionOutcome.ADVANCED
    assert steps[-1].effects == (ArmClock(30),)
    assert state.current_index == 1
    assert state.remaining_seconds == 30
    assert state.selected_option_index is None
    assert state.score == 100 + (100 * 28) // 60
    (record,) = state.answers
    assert record.question_id == "q1"
    assert record.selected_option_index == 1
    assert record.time_spent_seconds == 2


def test_tick_decrements_remaining_time():
    quiz = make_quiz(budget=3)
    state, steps = _run(quiz, [Tick()])
    assert steps[0].outcome is TransitionOutcome.TICKED
    assert state.remaining_seconds == 2


def test_expiry_finalizes_with_no_answer():
    quiz = make_quiz(question_count=2, budget=2)
    state, steps = _run(quiz, [Tick(), Tick()])
    assert steps[-1].outcome is TransitionOutcome.ADVANCED
    (record,) = state.answers
    assert record.selected_option_index == NO_ANSWER
    assert record.time_spent_seconds == 2
    assert state.score == 0


def test_expiry_uses_tentative_selection():
    quiz = make_quiz(question_count=1, budget=2)
    state, steps = _run(quiz, [SelectAnswer(1), Tick(), Tick()])
    assert steps[-1].outcome is TransitionOutcome.COMPLETED
    assert state.score == 100
    assert state.answers[0].selected_option_index == 1


def test_completion_disarms_before_completing():
    quiz = make_quiz(question_count=1)
    state, steps = _run(quiz, [SelectAnswer(1), Advance()])
    final = steps[-1]
    assert final.outcome is TransitionOutcome.COMPLETED
    assert isinstance(final.effects[0], DisarmClock)
    assert isinstance(final.effects[1], CompleteAttempt)
    result = final.effects[1].result
    assert result.score == 150
    assert result.correct_answers == 1
    assert result.total_questions == 1
    assert result.user_id == "user-1"
    assert state.completed


def test_events_after_completion_return_same_state():
    quiz = make_quiz(question_count=1)
    state, _ = _run(quiz, [Advance()])
    for event in (Advance(), Tick(), SelectAnswer(0)):
        step = transition(quiz, "user-1", state, event)
        assert step.outcome is TransitionOutcome.ALREADY_COMPLETED
        assert step.state is state
        assert step.effects == ()


def test_n_advances_complete_quiz_in_order_with_monotonic_score():
    quiz = make_quiz(question_count=5)
    state = start_state(quiz.config)
    scores = [state.score]
    for i in range(5):
        assert len(state.answers) == state.current_index == i
        state = transition(quiz, "user-1", state, SelectAnswer(i % 2)).state
        state = transition(quiz, "user-1", state, Advance()).state
        scores.append(state.score)
    assert state.completed
    assert [record.question_id for record in state.answers] == ["q1", "q2", "q3", "q4", "q5"]
    assert scores == sorted(scores)


def test_validate_quiz_orders_questions():
    config = QuizConfig(id="quiz", title="Quiz", time_per_question_seconds=10)
    questions = [make_question("b", order_index=2), make_question("a", order_index=1)]
    quiz = validate_quiz(config, questions)
    assert [question.id for question in quiz.questions] == ["a", "b"]


@pytest.mark.parametrize(
    ("budget", "questions"),
    [
        (30, []),
        (0, [make_question()]),
        (-5, [make_question()]),
        (30, [make_question(options=("only",), correct_option_index=0)]),
        (30, [make_question(correct_option_index=4)]),
        (30, [make_question(points=0)]),
        (30, [make_question("dup"), make_question("dup", order_index=1)]),
    ],
)
def test_validate_quiz_rejects_unplayable_quizzes(budget, questions):
    config = QuizConfig(id="quiz", title="Quiz", time_per_question_seconds=budget)
    with pytest.raises(InvalidConfiguration):
        validate_quiz(config, questions)
