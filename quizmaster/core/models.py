"""Domain models for the timed quiz session engine."""

from __future__ import annotations

from dataclasses import dataclass

from quizmaster.constants.quiz_constants import NO_ANSWER


@dataclass(frozen=True, slots=True)
class Question:
    """Multiple-choice question with a fixed position in its quiz."""

    id: str
    question_text: str
    options: tuple[str, ...]
    correct_option_index: int
    points: int
    order_index: int


@dataclass(frozen=True, slots=True)
class QuizConfig:
    """Quiz-wide settings loaded alongside the questions."""

    id: str
    title: str
    time_per_question_seconds: int


@dataclass(frozen=True, slots=True)
class QuizDefinition:
    """A quiz config together with its ordered question list."""

    config: QuizConfig
    questions: tuple[Question, ...]

    @property
    def question_count(self) -> int:
        return len(self.questions)


@dataclass(frozen=True, slots=True)
class AnswerRecord:
    """Finalized answer for one question. Written once, never mutated."""

    question_id: str
    selected_option_index: int
    time_spent_seconds: int

    @property
    def answered(self) -> bool:
        return self.selected_option_index != NO_ANSWER

    def to_payload(self) -> dict[str, object]:
        return {
            "question_id": self.question_id,
            "answer": self.selected_option_index,
            "time_spent": self.time_spent_seconds,
        }


@dataclass(frozen=True, slots=True)
class SessionState:
    """Snapshot of one attempt. Transitions return new snapshots."""

    current_index: int
    remaining_seconds: int
    score: int = 0
    answers: tuple[AnswerRecord, ...] = ()
    selected_option_index: int | None = None  # Tentative, not yet finalized
    completed: bool = False


@dataclass(frozen=True, slots=True)
class AttemptResult:
    """Write-once record of a finished attempt."""

    quiz_id: str
    user_id: str
    score: int
    total_questions: int
    correct_answers: int
    time_spent_seconds: int
    answers: tuple[AnswerRecord, ...]

    @property
    def accuracy_percent(self) -> int:
        if self.total_questions <= 0:
            return 0
        return round(self.correct_answers / self.total_questions * 100)

    def to_payload(self) -> dict[str, object]:
        return {
            "quiz_id": self.quiz_id,
            "user_id": self.user_id,
            "score": self.score,
            "total_questions": self.total_questions,
            "correct_answers": self.correct_answers,
            "time_spent": self.time_spent_seconds,
            "accuracy": self.accuracy_percent,
            "answers": [answer.to_payload() for answer in self.answers],
        }


@dataclass(frozen=True, slots=True)
class ProfileCounters:
    """Aggregate counters kept on a user's profile."""

    total_quizzes: int = 0
    total_score: int = 0
    xp: int = 0

    def apply(self, delta: ProfileDelta) -> ProfileCounters:
        return ProfileCounters(
            total_quizzes=self.total_quizzes + delta.quizzes,
            total_score=self.total_score + delta.score,
            xp=self.xp + delta.xp,
        )


@dataclass(frozen=True, slots=True)
class ProfileDelta:
    """Increments applied to a profile after a completed attempt."""

    quizzes: int
    score: int
    xp: int

    @classmethod
    def from_attempt(cls, result: AttemptResult) -> ProfileDelta:
        return cls(quizzes=1, score=result.score, xp=result.score)


@dataclass(frozen=True, slots=True)
class Achievement:
    """Achievement definition as known to the achievement store."""

    id: str
    name: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class AchievementGrant:
    """A (user, achievement) pair. At most one per user per achievement."""

    user_id: str
    achievement_id: str
