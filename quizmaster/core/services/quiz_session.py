"""Service driving one learner through one timed quiz attempt."""

from __future__ import annotations

import logging

from quizmaster.core.clock import Clock
from quizmaster.core.models import AttemptResult, Question, QuizDefinition, SessionState
from quizmaster.core.services.completion_pipeline import CompletionPipeline, CompletionReport
from quizmaster.core.services.session_machine import (
    Advance,
    ArmClock,
    CompleteAttempt,
    DisarmClock,
    Event,
    SelectAnswer,
    Tick,
    TransitionOutcome,
    start_state,
    transition,
    validate_quiz,
)

logger = logging.getLogger(__name__)


class QuizSession:
    """Owns the state of an attempt and applies transition effects.

    Events (answer selection, explicit advance, clock ticks) are processed one
    at a time on the caller's thread; the clock must deliver ticks on the same
    scheduler that handles user actions.
    """

    def __init__(
        self,
        quiz: QuizDefinition,
        user_id: str,
        clock: Clock,
        pipeline: CompletionPipeline,
    ) -> None:
        self._quiz = validate_quiz(quiz.config, quiz.questions)
        self._user_id = user_id
        self._clock = clock
        self._pipeline = pipeline
        self._state = start_state(self._quiz.config)
        self._result: AttemptResult | None = None
        self._started = False

    @property
    def quiz(self) -> QuizDefinition:
        return self._quiz

    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_completed(self) -> bool:
        return self._state.completed

    @property
    def current_question(self) -> Question:
        return self._quiz.questions[self._state.current_index]

    @property
    def result(self) -> AttemptResult | None:
        return self._result

    @property
    def completion_report(self) -> CompletionReport | None:
        return self._pipeline.report if self._pipeline.has_run else None

    def start(self) -> None:
        """Arm the clock for the first question. Starting twice is a no-op."""
        if self._started or self._state.completed:
            return
        self._started = True
        self._clock.arm(self._state.remaining_seconds, self.tick)
        logger.info(
            "Session started: user=%s quiz=%s questions=%s budget=%ss",
            self._user_id,
            self._quiz.config.id,
            self._quiz.question_count,
            self._quiz.config.time_per_question_seconds,
        )

    def select_answer(self, option_index: int) -> TransitionOutcome:
        return self._dispatch(SelectAnswer(option_index))

    def advance(self) -> TransitionOutcome:
        return self._dispatch(Advance())

    def tick(self) -> TransitionOutcome:
        return self._dispatch(Tick())

    def stop(self) -> None:
        """Abandon the attempt: silence the clock without running completion."""
        self._clock.disarm()

    def resume_completion(self) -> CompletionReport:
        return self._pipeline.resume()

    def _dispatch(self, event: Event) -> TransitionOutcome:
        step = transition(self._quiz, self._user_id, self._state, event)
        if step.outcome is TransitionOutcome.ALREADY_COMPLETED:
            logger.debug("Ignoring %s on completed session", type(event).__name__)
            return step.outcome

        self._state = step.state
        for effect in step.effects:
            if isinstance(effect, ArmClock):
                self._clock.arm(effect.duration_seconds, self.tick)
            elif isinstance(effect, DisarmClock):
                self._clock.disarm()
            elif isinstance(effect, CompleteAttempt):
                self._result = effect.result
                self._pipeline.run(effect.result)
        return step.outcome
