"""Registry of live quiz sessions shared between the server and other front ends."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock
from typing import Callable
from uuid import uuid4

from quizmaster.core.clock import Clock
from quizmaster.core.services.completion_pipeline import CompletionPipeline, CompletionReport
from quizmaster.core.services.memory_store import (
    InMemoryAchievementStore,
    InMemoryAttemptStore,
    InMemoryProfileStore,
    LoggingNotificationSink,
)
from quizmaster.core.services.quiz_session import QuizSession
from quizmaster.core.services.session_machine import TransitionOutcome
from quizmaster.core.stores import (
    AchievementStore,
    AttemptStore,
    NotificationSink,
    ProfileStore,
    QuizLoader,
)

logger = logging.getLogger(__name__)

ClockFactory = Callable[[], Clock]


class SessionNotFound(LookupError):
    """Raised when a session id is unknown to the manager."""


@dataclass(slots=True)
class StoreBundle:
    """The external collaborators a completed attempt is written to."""

    attempts: AttemptStore
    profiles: ProfileStore
    achievements: AchievementStore
    notifications: NotificationSink

    @classmethod
    def in_memory(cls) -> StoreBundle:
        return cls(
            attempts=InMemoryAttemptStore(),
            profiles=InMemoryProfileStore(),
            achievements=InMemoryAchievementStore.with_default_catalogue(),
            notifications=LoggingNotificationSink(),
        )


class QuizSessionManager:
    """Facade that creates sessions and routes user actions to them by id.

    Sessions, completed ones included, stay registered until the client calls
    ``discard_session`` (``DELETE /sessions/{id}``); the manager never evicts
    them on its own, so a completed result stays readable until then.
    """

    def __init__(self, loader: QuizLoader, stores: StoreBundle, clock_factory: ClockFactory) -> None:
        self._lock = Lock()
        self._loader = loader
        self._stores = stores
        self._clock_factory = clock_factory
        self._sessions: dict[str, QuizSession] = {}

    @property
    def stores(self) -> StoreBundle:
        return self._stores

    def start_session(self, user_id: str, quiz_id: str) -> tuple[str, QuizSession]:
        quiz = self._loader.load_quiz(quiz_id)
        pipeline = CompletionPipeline(
            attempts=self._stores.attempts,
            profiles=self._stores.profiles,
            achievements=self._stores.achievements,
            notifications=self._stores.notifications,
        )
        session = QuizSession(quiz, user_id, self._clock_factory(), pipeline)
        session_id = uuid4().hex
        with self._lock:
            self._sessions[session_id] = session
        session.start()
        logger.info("Session %s created for user %s", session_id, user_id)
        return session_id, session

    def get_session(self, session_id: str) -> QuizSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"Session '{session_id}' does not exist.")
        return session

    def select_answer(self, session_id: str, option_index: int) -> TransitionOutcome:
        return self.get_session(session_id).select_answer(option_index)

    def advance(self, session_id: str) -> TransitionOutcome:
        return self.get_session(session_id).advance()

    def resume_completion(self, session_id: str) -> CompletionReport:
        return self.get_session(session_id).resume_completion()

    def discard_session(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFound(f"Session '{session_id}' does not exist.")
        if not session.is_completed:
            # Abandoned attempts are never completed.
            session.stop()

    def get_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)
