"""
Session and agent models for Ops Hub.

Provides Pydantic models for agent definitions, chat transcripts and the
mutable per-conversation session state owned by the orchestrator.
"""

from __future__ import annotations

import uuid

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a globally unique identifier string."""
    return str(uuid.uuid4())


class AgentType(str, Enum):
    """Domain agent kinds served by the hub."""

    GITHUB = "github"
    AZURE = "azure"
    AZURE_DEVOPS = "azure_devops"
    DOTNET_DEV = "dotnet_dev"
    AI_LLM = "ai_llm"
    DEVOPS = "devops"
    PERSONAL = "personal"


class AgentSessionStatus(str, Enum):
    """Lifecycle status of a session.

    Idle -> Thinking -> Idle on success, Thinking -> Error on failure.
    Working is reserved for long-running tool activity.
    """

    IDLE = "idle"
    THINKING = "thinking"
    WORKING = "working"
    ERROR = "error"


class ChatRole(str, Enum):
    """Author of a transcript entry."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class AgentDefinition(BaseModel):
    """Static catalog entry describing one agent."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    agent_type: AgentType
    system_prompt: str
    avatar_url: str | None = None
    endpoint: str | None = None
    is_enabled: bool = True


class ChatMessage(BaseModel):
    """One transcript entry. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)
    tool_call_id: str | None = None
    tool_name: str | None = None


class AgentSession(BaseModel):
    """Mutable state of one active conversation.

    The first transcript entry is always the agent's system prompt.
    Only the orchestrator mutates status and messages.
    """

    model_config = ConfigDict(validate_assignment=True)

    session_id: str = Field(default_factory=new_id)
    user_id: str
    agent_type: AgentType
    agent: AgentDefinition
    status: AgentSessionStatus = AgentSessionStatus.IDLE
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)

    def add_message(self, message: ChatMessage) -> None:
        """Append a message and bump the activity timestamp."""
        self.messages.append(message)
        self.last_activity_at = utc_now()

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def to_record(self) -> SessionRecord:
        """Durable row shape for the session store."""
        return SessionRecord(
            session_id=self.session_id,
            user_id=self.user_id,
            agent_type=self.agent_type,
            agent_name=self.agent.name,
            system_prompt=self.agent.system_prompt,
            status=self.status,
            created_at=self.created_at,
            last_activity_at=self.last_activity_at,
        )


class SessionRecord(BaseModel):
    """Session metadata as persisted by a SessionStore."""

    session_id: str
    user_id: str
    agent_type: AgentType
    agent_name: str
    system_prompt: str
    status: AgentSessionStatus = AgentSessionStatus.IDLE
    created_at: datetime = Field(default_factory=utc_now)
    last_activity_at: datetime = Field(default_factory=utc_now)


class UserProfile(BaseModel):
    """Caller identity used to scope the agent catalog."""

    id: str
    display_name: str = ""
    email: str = ""
    roles: list[str] = Field(default_factory=list)
    assigned_agents: list[AgentType] = Field(default_factory=list)
