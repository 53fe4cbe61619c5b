"""Contracts for the external collaborators the session engine talks to.

Implementations live outside the engine; ``memory_store`` ships in-memory
versions. Every store method may raise ``StoreUnavailable``; the engine never
retries on its own.
"""

from __future__ import annotations

from typing import Protocol

from quizmaster.core.models import (
    Achievement,
    AttemptResult,
    ProfileCounters,
    ProfileDelta,
    QuizDefinition,
)


class QuizLoader(Protocol):
    def load_quiz(self, quiz_id: str) -> QuizDefinition:
        """Return the quiz or raise ``QuizNotFound``."""
        ...


class AttemptStore(Protocol):
    def save_attempt(self, result: AttemptResult) -> None: ...


class ProfileStore(Protocol):
    def read_counters(self, user_id: str) -> ProfileCounters: ...

    def apply_delta(self, user_id: str, delta: ProfileDelta) -> None: ...


class AchievementStore(Protocol):
    def find_achievement_by_name(self, name: str) -> Achievement | None: ...

    def has_grant(self, user_id: str, achievement_id: str) -> bool: ...

    def grant(self, user_id: str, achievement_id: str) -> None: ...


class NotificationSink(Protocol):
    def notify(self, user_id: str, title: str, message: str) -> None: ...
