"""Project Lead assistant endpoints.

Each session is an explicit ``StudioSession`` held in memory by id.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from superarchitect.api.dependencies import error_response, get_generator
from superarchitect.errors import GenerationError
from superarchitect.generators.base import Generator
from superarchitect.models.contracts import (
    AssistantMessageRequest,
    AssistantMessageResponse,
    AvatarResponse,
    CreateSessionResponse,
    ErrorResponse,
)
from superarchitect.session import StudioSession

logger = structlog.get_logger()

router = APIRouter(tags=["sessions"])

_sessions: dict[str, StudioSession] = {}

_NOT_FOUND = ("session_not_found", "Session not found")


@router.post("/sessions", status_code=201, response_model=CreateSessionResponse)
async def create_session(generator: Generator = Depends(get_generator)) -> CreateSessionResponse:
    session = StudioSession(generator)
    _sessions[session.session_id] = session
    logger.info("session_created", session_id=session.session_id)
    return CreateSessionResponse(session_id=session.session_id)


@router.post(
    "/sessions/{session_id}/messages",
    response_model=AssistantMessageResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def send_message(session_id: str, body: AssistantMessageRequest):
    """One turn with the Project Lead."""
    session = _sessions.get(session_id)
    if session is None:
        return error_response(404, *_NOT_FOUND)
    try:
        reply = await session.ask_project_lead(body.message)
    except GenerationError as exc:
        logger.warning("assistant_failed", session_id=session_id, error=str(exc))
        return error_response(
            503,
            "assistant_unavailable",
            "The Project Lead is unavailable. Please try again.",
            retryable=True,
            detail=str(exc),
        )
    return AssistantMessageResponse(reply=reply, turns=session.turns)


@router.get(
    "/sessions/{session_id}/avatars/{agent_id}",
    response_model=AvatarResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def get_avatar(session_id: str, agent_id: str):
    """Avatar for one agent, generated on first request and cached per session."""
    session = _sessions.get(session_id)
    if session is None:
        return error_response(404, *_NOT_FOUND)
    try:
        uri = await session.agent_avatar(agent_id)
    except KeyError:
        return error_response(404, "agent_not_found", f"Unknown agent {agent_id!r}")
    except GenerationError as exc:
        logger.warning("avatar_failed", session_id=session_id, agent=agent_id, error=str(exc))
        return error_response(503, "assistant_unavailable", "Avatar generation failed", retryable=True)
    return AvatarResponse(agent_id=agent_id, image_uri=uri)


def clear_sessions() -> None:
    _sessions.clear()
