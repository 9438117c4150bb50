"""
Agent catalog API schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from models.session_models import AgentDefinition, AgentType


class AgentResponse(BaseModel):
    """Public view of a catalog entry (system prompt is not exposed)."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "github-agent",
                "name": "GitHub Agent",
                "description": "Manages GitHub repositories, pull requests, issues, and workflows.",
                "agent_type": "github",
                "avatar_url": None,
                "is_enabled": True,
            }
        }
    )

    id: str = Field(..., description="Stable agent identifier")
    name: str = Field(..., description="Display name")
    description: str = Field(..., description="What the agent helps with")
    agent_type: AgentType = Field(..., description="Agent type tag used to start sessions")
    avatar_url: str | None = Field(default=None, description="Optional avatar reference")
    is_enabled: bool = Field(default=True, description="Agent can be offered to users")

    @classmethod
    def from_definition(cls, agent: AgentDefinition) -> AgentResponse:
        return cls(
            id=agent.id,
            name=agent.name,
            description=agent.description,
            agent_type=agent.agent_type,
            avatar_url=agent.avatar_url,
            is_enabled=agent.is_enabled,
        )


class AgentListResponse(BaseModel):
    """Agents visible to the caller."""

    agents: list[AgentResponse] = Field(default_factory=list)


class AgentHealthResponse(BaseModel):
    """Tool backend health for one agent type."""

    model_config = ConfigDict(json_schema_extra={"example": {"agent_type": "github", "healthy": True}})

    agent_type: AgentType
    healthy: bool
