"""In-memory implementations of the external store contracts.

These back the demo server and the test-suite. Each store can be told to fail
its next call(s) to a given method, which is how partially completed attempts
are reproduced.
"""

from __future__ import annotations

from collections import Counter
import logging
from pathlib import Path
from uuid import uuid4

from quizmaster.constants.quiz_constants import (
    FIRST_QUIZ_ACHIEVEMENT_DESCRIPTION,
    FIRST_QUIZ_ACHIEVEMENT_NAME,
)
from quizmaster.core.errors import DuplicateGrant, QuizNotFound, StoreUnavailable
from quizmaster.core.models import (
    Achievement,
    AchievementGrant,
    AttemptResult,
    ProfileCounters,
    ProfileDelta,
    Question,
    QuizConfig,
    QuizDefinition,
)
from quizmaster.core.quiz_importer import load_quiz_from_file
from quizmaster.core.services.session_machine import validate_quiz

logger = logging.getLogger(__name__)


class _FailureInjection:
    def __init__(self) -> None:
        self._pending_failures: Counter[str] = Counter()

    def fail_next(self, method: str, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise ``StoreUnavailable``."""
        self._pending_failures[method] += times

    def _check_available(self, method: str) -> None:
        if self._pending_failures[method] > 0:
            self._pending_failures[method] -= 1
            raise StoreUnavailable(f"{type(self).__name__}.{method} is unavailable.")


class InMemoryQuizLoader(_FailureInjection):
    """Holds validated quizzes keyed by id."""

    def __init__(self) -> None:
        super().__init__()
        self._quizzes: dict[str, QuizDefinition] = {}

    def add_quiz(self, config: QuizConfig, questions: list[Question] | tuple[Question, ...]) -> QuizDefinition:
        quiz = validate_quiz(config, questions)
        self._quizzes[config.id] = quiz
        return quiz

    def load_quiz(self, quiz_id: str) -> QuizDefinition:
        self._check_available("load_quiz")
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFound(quiz_id)
        return quiz


class FileQuizLoader:
    """Loads ``<quiz_id>.quiz`` files from a directory on every request."""

    SUFFIX = ".quiz"

    def __init__(self, directory: Path) -> None:
        self._directory = directory.resolve()

    def load_quiz(self, quiz_id: str) -> QuizDefinition:
        file_path = self._directory / f"{quiz_id}{self.SUFFIX}"
        # Reject ids that would escape the quiz directory.
        if file_path.parent != self._directory or not file_path.is_file():
            raise QuizNotFound(quiz_id)
        imported = load_quiz_from_file(file_path, quiz_id=quiz_id)
        return validate_quiz(imported.quiz.config, imported.quiz.questions)

    def list_quiz_ids(self) -> list[str]:
        return sorted(path.stem for path in self._directory.glob(f"*{self.SUFFIX}"))


class InMemoryAttemptStore(_FailureInjection):
    def __init__(self) -> None:
        super().__init__()
        self._attempts: dict[str, AttemptResult] = {}

    def save_attempt(self, result: AttemptResult) -> None:
        self._check_available("save_attempt")
        attempt_id = uuid4().hex
        self._attempts[attempt_id] = result
        logger.debug("Stored attempt %s for user %s", attempt_id, result.user_id)

    def get_attempts(self, user_id: str | None = None) -> list[AttemptResult]:
        return [
            attempt
            for attempt in self._attempts.values()
            if user_id is None or attempt.user_id == user_id
        ]


class InMemoryProfileStore(_FailureInjection):
    """Profile counters per user. Unknown users read as all zeros."""

    def __init__(self) -> None:
        super().__init__()
        self._counters: dict[str, ProfileCounters] = {}

    def read_counters(self, user_id: str) -> ProfileCounters:
        self._check_available("read_counters")
        return self._counters.get(user_id, ProfileCounters())

    def apply_delta(self, user_id: str, delta: ProfileDelta) -> None:
        self._check_available("apply_delta")
        current = self._counters.get(user_id, ProfileCounters())
        self._counters[user_id] = current.apply(delta)


class InMemoryAchievementStore(_FailureInjection):
    """Achievement catalogue plus the set of grants, unique per user and achievement."""

    def __init__(self, achievements: list[Achievement] | None = None) -> None:
        super().__init__()
        self._by_name: dict[str, Achievement] = {}
        self._grants: set[AchievementGrant] = set()
        for achievement in achievements or []:
            self.add_achievement(achievement)

    @classmethod
    def with_default_catalogue(cls) -> InMemoryAchievementStore:
        return cls(
            [
                Achievement(
                    id="first-steps",
                    name=FIRST_QUIZ_ACHIEVEMENT_NAME,
                    description=FIRST_QUIZ_ACHIEVEMENT_DESCRIPTION,
                )
            ]
        )

    def add_achievement(self, achievement: Achievement) -> None:
        self._by_name[achievement.name] = achievement

    def find_achievement_by_name(self, name: str) -> Achievement | None:
        self._check_available("find_achievement_by_name")
        return self._by_name.get(name)

    def has_grant(self, user_id: str, achievement_id: str) -> bool:
        self._check_available("has_grant")
        return AchievementGrant(user_id, achievement_id) in self._grants

    def grant(self, user_id: str, achievement_id: str) -> None:
        self._check_available("grant")
        grant = AchievementGrant(user_id, achievement_id)
        if grant in self._grants:
            raise DuplicateGrant(f"User {user_id} already holds achievement {achievement_id}.")
        self._grants.add(grant)

    def get_grants(self, user_id: str) -> list[AchievementGrant]:
        return sorted(
            (grant for grant in self._grants if grant.user_id == user_id),
            key=lambda grant: grant.achievement_id,
        )


class CollectingNotificationSink:
    """Keeps every notification, newest last."""

    def __init__(self) -> None:
        self.notifications: list[tuple[str, str, str]] = []

    def notify(self, user_id: str, title: str, message: str) -> None:
        self.notifications.append((user_id, title, message))


class LoggingNotificationSink:
    def notify(self, user_id: str, title: str, message: str) -> None:
        logger.info("Notify %s: %s %s", user_id, title, message)
