"""Application entry point for the QuizMaster session server."""

from __future__ import annotations

from pathlib import Path

from quizmaster.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quizmaster.core.clock import AsyncioClock
from quizmaster.core.quiz_manager import QuizSessionManager, StoreBundle
from quizmaster.core.services.memory_store import FileQuizLoader
from quizmaster.server.api_server import start_api_server
from quizmaster.utils.logging_config import configure_logging

_QUIZ_DIRECTORY = Path(__file__).resolve().parent / "quizmaster" / "data" / "quizzes"


def main() -> None:
    """Initialize logging and serve quiz sessions until interrupted."""
    logger = configure_logging()
    logger.info("Starting QuizMaster session server...")

    loader = FileQuizLoader(_QUIZ_DIRECTORY)
    logger.info("Quizzes available: %s", ", ".join(loader.list_quiz_ids()) or "none")

    manager = QuizSessionManager(
        loader=loader,
        stores=StoreBundle.in_memory(),
        clock_factory=AsyncioClock,
    )
    server_thread = start_api_server(manager=manager, host=DEFAULT_HOST, port=DEFAULT_PORT)
    try:
        server_thread.join()
    except KeyboardInterrupt:
        logger.info("Shutting down.")


if __name__ == "__main__":
    main()
