"""Exception hierarchy for the quiz session engine."""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for all errors raised by the engine."""


class InvalidConfiguration(QuizEngineError, ValueError):
    """Raised when a quiz cannot be played (no questions, bad time budget, ...)."""


class InvalidSelection(QuizEngineError, ValueError):
    """Raised when an option index does not exist on the active question."""


class QuizNotFound(QuizEngineError, LookupError):
    """Raised by a quiz loader when the requested quiz does not exist."""

    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz '{quiz_id}' was not found.")
        self.quiz_id = quiz_id


class StoreError(QuizEngineError):
    """Raised by an external store collaborator."""


class StoreUnavailable(StoreError):
    """The store could not complete the request."""


class DuplicateGrant(StoreError):
    """The user already holds the achievement."""


class PipelineAlreadyRun(QuizEngineError, RuntimeError):
    """Raised when the completion pipeline is started a second time."""
