"""
Session management endpoints (v1).

Maps the orchestrator's session lifecycle and blocking turns onto REST.
Streaming turns go through the agent WebSocket.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query, Response

from api.dependencies import Orchestrator
from api.middleware.request_context import update_request_context
from core.exceptions import SessionNotFoundError
from models.schemas.sessions import (
    CreateSessionRequest,
    MessageResponse,
    SendMessageRequest,
    SessionListResponse,
    SessionResponse,
    SessionWithHistoryResponse,
)

router = APIRouter()

# =============================================================================
# Path Parameter Types
# =============================================================================

SessionIdPath = Annotated[
    str,
    Path(
        ...,
        description="Session identifier",
        examples=["3f2b8c1e-9a4d-4c7b-8e21-5d6f0a9b1c2d"],
        min_length=1,
        max_length=100,
    ),
]

# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "",
    response_model=SessionListResponse,
    summary="List sessions",
    description="List a user's sessions, most recently active first.",
    responses={
        200: {
            "description": "Sessions retrieved successfully",
            "content": {
                "application/json": {
                    "example": {
                        "sessions": [
                            {
                                "session_id": "3f2b8c1e-9a4d-4c7b-8e21-5d6f0a9b1c2d",
                                "user_id": "user-123",
                                "agent_type": "github",
                                "agent_name": "GitHub Agent",
                                "status": "idle",
                                "created_at": "2025-01-15T10:30:00Z",
                                "last_activity_at": "2025-01-15T10:31:12Z",
                            }
                        ]
                    }
                }
            },
        }
    },
)
async def list_sessions(
    orchestrator: Orchestrator,
    user_id: Annotated[str, Query(min_length=1, description="Owning user", examples=["user-123"])],
) -> SessionListResponse:
    """List sessions owned by a user."""
    records = await orchestrator.list_sessions(user_id)
    return SessionListResponse(sessions=[SessionResponse.from_record(r) for r in records])


@router.post(
    "",
    response_model=SessionResponse,
    status_code=201,
    summary="Create session",
    description="Start a session with an agent. The transcript is seeded with the agent's system prompt.",
    responses={
        201: {"description": "Session created successfully"},
        409: {"description": "Session id collision"},
        422: {"description": "Unknown agent type"},
    },
)
async def create_session(
    request: CreateSessionRequest,
    orchestrator: Orchestrator,
    response: Response,
) -> SessionResponse:
    """Create a new agent session."""
    session = await orchestrator.create_session(request.user_id, request.agent_type)
    update_request_context(
        session_id=session.session_id, user_id=session.user_id, agent_type=session.agent_type.value
    )
    response.headers["Location"] = f"/api/v1/sessions/{session.session_id}"
    return SessionResponse.from_session(session)


@router.get(
    "/{session_id}",
    response_model=SessionWithHistoryResponse,
    summary="Get session",
    description="Session descriptor with its full transcript.",
    responses={
        200: {"description": "Session found"},
        404: {
            "description": "Session not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "SES_4001",
                            "message": "Session 'abc' not found",
                            "path": "/api/v1/sessions/abc",
                        }
                    }
                }
            },
        },
    },
)
async def get_session(session_id: SessionIdPath, orchestrator: Orchestrator) -> SessionWithHistoryResponse:
    """Get session information."""
    session = await orchestrator.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return SessionWithHistoryResponse.from_session(session)


@router.delete(
    "/{session_id}",
    status_code=204,
    summary="End session",
    description="Remove a session and its transcript. Ending an unknown session succeeds.",
    responses={204: {"description": "Session ended"}},
)
async def end_session(session_id: SessionIdPath, orchestrator: Orchestrator) -> Response:
    """End an agent session."""
    await orchestrator.end_session(session_id)
    return Response(status_code=204)


@router.post(
    "/{session_id}/messages",
    response_model=MessageResponse,
    summary="Send message",
    description="Run one blocking turn and return the assistant reply.",
    responses={
        200: {
            "description": "Assistant reply",
            "content": {
                "application/json": {
                    "example": {
                        "id": "b1946ac9-2e1f-4c1a-9a3e-7d4f5b6c7d8e",
                        "role": "assistant",
                        "content": "You have 3 open pull requests.",
                        "timestamp": "2025-01-15T10:31:12Z",
                    }
                }
            },
        },
        404: {"description": "Session not found"},
        409: {"description": "A turn is already in flight for this session"},
    },
)
async def send_message(
    session_id: SessionIdPath,
    request: SendMessageRequest,
    orchestrator: Orchestrator,
) -> MessageResponse:
    """Process one message and return the agent's reply."""
    update_request_context(session_id=session_id)
    reply = await orchestrator.process_message(session_id, request.content)
    return MessageResponse.from_message(reply)
