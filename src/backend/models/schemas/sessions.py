"""
Session-related API schemas.

Provides request/response models for session lifecycle and message
operations with OpenAPI documentation.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.session_models import (
    AgentSession,
    AgentSessionStatus,
    AgentType,
    ChatMessage,
    ChatRole,
    SessionRecord,
)

# =============================================================================
# Request Models
# =============================================================================


class CreateSessionRequest(BaseModel):
    """Request body for starting a session with an agent."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "user-123",
                "agent_type": "github",
            }
        }
    )

    user_id: str = Field(..., min_length=1, max_length=200, description="Owning user")
    agent_type: str = Field(
        ...,
        min_length=1,
        description="Agent type tag from the catalog",
        json_schema_extra={"example": "github"},
    )


class SendMessageRequest(BaseModel):
    """Request body for a non-streaming turn."""

    model_config = ConfigDict(json_schema_extra={"example": {"content": "List my open pull requests"}})

    content: str = Field(..., min_length=1, description="User message text")


# =============================================================================
# Response Models
# =============================================================================


class MessageResponse(BaseModel):
    """One transcript entry."""

    id: str
    role: ChatRole
    content: str
    timestamp: datetime
    tool_call_id: str | None = None
    tool_name: str | None = None

    @classmethod
    def from_message(cls, message: ChatMessage) -> MessageResponse:
        return cls(**message.model_dump())


class SessionResponse(BaseModel):
    """Session descriptor."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "session_id": "3f2b8c1e-9a4d-4c7b-8e21-5d6f0a9b1c2d",
                "user_id": "user-123",
                "agent_type": "github",
                "agent_name": "GitHub Agent",
                "status": "idle",
                "created_at": "2025-01-15T10:30:00Z",
                "last_activity_at": "2025-01-15T10:31:12Z",
                "message_count": 3,
            }
        }
    )

    session_id: str
    user_id: str
    agent_type: AgentType
    agent_name: str
    status: AgentSessionStatus
    created_at: datetime
    last_activity_at: datetime
    message_count: int | None = Field(default=None, description="Transcript length when resident")

    @classmethod
    def from_session(cls, session: AgentSession) -> SessionResponse:
        return cls(
            session_id=session.session_id,
            user_id=session.user_id,
            agent_type=session.agent_type,
            agent_name=session.agent.name,
            status=session.status,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
            message_count=session.message_count,
        )

    @classmethod
    def from_record(cls, record: SessionRecord) -> SessionResponse:
        return cls(
            session_id=record.session_id,
            user_id=record.user_id,
            agent_type=record.agent_type,
            agent_name=record.agent_name,
            status=record.status,
            created_at=record.created_at,
            last_activity_at=record.last_activity_at,
        )


class SessionWithHistoryResponse(SessionResponse):
    """Session descriptor plus its transcript."""

    messages: list[MessageResponse] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: AgentSession) -> SessionWithHistoryResponse:
        base = SessionResponse.from_session(session)
        return cls(
            **base.model_dump(),
            messages=[MessageResponse.from_message(m) for m in session.messages],
        )


class SessionListResponse(BaseModel):
    """A user's sessions, most recently active first."""

    sessions: list[SessionResponse] = Field(default_factory=list)
