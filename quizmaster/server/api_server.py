"""FastAPI server that exposes quiz sessions to a presentation layer.

Endpoints are ``async`` so request handling and asyncio clock ticks share the
server's event loop and are never processed concurrently.
"""

from __future__ import annotations

import logging
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException, Response
from pydantic import BaseModel, Field
import uvicorn

from quizmaster.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quizmaster.core.errors import InvalidConfiguration, InvalidSelection, QuizNotFound, StoreError
from quizmaster.core.markdown_math_renderer import renderer
from quizmaster.core.quiz_manager import QuizSessionManager, SessionNotFound
from quizmaster.core.services.quiz_session import QuizSession

logger = logging.getLogger(__name__)


class StartPayload(BaseModel):
    """Payload schema for starting an attempt."""

    user_id: str = Field(min_length=1)
    quiz_id: str = Field(min_length=1)


class AnswerPayload(BaseModel):
    """Payload schema for selecting an option on the active question."""

    selected_option_index: int


def _get_manager_dependency(manager: QuizSessionManager):
    def dependency() -> QuizSessionManager:
        return manager

    return dependency


def _session_payload(session_id: str, session: QuizSession) -> dict[str, object]:
    state = session.state
    config = session.quiz.config
    payload: dict[str, object] = {
        "session_id": session_id,
        "quiz_id": config.id,
        "title": config.title,
        "user_id": session.user_id,
        "question_count": session.quiz.question_count,
        "question_index": state.current_index,
        "time_per_question_seconds": config.time_per_question_seconds,
        "remaining_seconds": state.remaining_seconds,
        "score": state.score,
        "answered_count": len(state.answers),
        "completed": state.completed,
        "question": None,
        "result": None,
        "completion": None,
    }
    if not state.completed:
        question = session.current_question
        # The correct option is only revealed through the result once complete.
        payload["question"] = {
            "id": question.id,
            "question_html": renderer.render_fragment(question.question_text),
            "options": [renderer.render_inline(option) for option in question.options],
            "points": question.points,
            "selected_option_index": state.selected_option_index,
        }
        return payload

    if session.result is not None:
        payload["result"] = session.result.to_payload()
    report = session.completion_report
    if report is not None:
        payload["completion"] = report.to_payload()
    return payload


def _store_failure(exc: StoreError, session: QuizSession) -> HTTPException:
    report = session.completion_report
    return HTTPException(
        status_code=503,
        detail={
            "message": str(exc),
            "completion": report.to_payload() if report is not None else None,
        },
    )


def create_api_app(manager: QuizSessionManager) -> FastAPI:
    """Create a FastAPI application wired to the provided session manager."""
    app = FastAPI(title="QuizMaster Session API", version="0.1.0")
    manager_dep = _get_manager_dependency(manager)

    def _lookup(manager: QuizSessionManager, session_id: str) -> QuizSession:
        try:
            return manager.get_session(session_id)
        except SessionNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/sessions", status_code=201)
    async def start_session(
        payload: StartPayload,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            session_id, session = manager.start_session(payload.user_id, payload.quiz_id)
        except QuizNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except InvalidConfiguration as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _session_payload(session_id, session)

    @app.get("/sessions/{session_id}")
    async def get_session(
        session_id: str,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _session_payload(session_id, _lookup(manager, session_id))

    @app.post("/sessions/{session_id}/answer")
    async def select_answer(
        session_id: str,
        payload: AnswerPayload,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _lookup(manager, session_id)
        try:
            session.select_answer(payload.selected_option_index)
        except InvalidSelection as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _session_payload(session_id, session)

    @app.post("/sessions/{session_id}/advance")
    async def advance(
        session_id: str,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _lookup(manager, session_id)
        try:
            session.advance()
        except StoreError as exc:
            raise _store_failure(exc, session) from exc
        return _session_payload(session_id, session)

    @app.post("/sessions/{session_id}/completion/resume")
    async def resume_completion(
        session_id: str,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> dict[str, object]:
        session = _lookup(manager, session_id)
        if not session.is_completed:
            raise HTTPException(status_code=409, detail="Session has not completed yet.")
        try:
            session.resume_completion()
        except StoreError as exc:
            raise _store_failure(exc, session) from exc
        return _session_payload(session_id, session)

    @app.delete("/sessions/{session_id}", status_code=204)
    async def discard_session(
        session_id: str,
        manager: QuizSessionManager = Depends(manager_dep),
    ) -> Response:
        try:
            manager.discard_session(session_id)
        except SessionNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return Response(status_code=204)

    return app


def start_api_server(
    manager: QuizSessionManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="QuizApiServer", daemon=True)
    thread.start()
    logger.info("API server listening on %s:%s", host, port)
    return thread
