"""
Agent catalog endpoints (v1).
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query

from api.dependencies import Catalog, Gateway
from core.exceptions import UnknownAgentTypeError
from models.schemas.agents import AgentHealthResponse, AgentListResponse, AgentResponse
from models.session_models import AgentType, UserProfile

router = APIRouter()

AgentTypePath = Annotated[
    str,
    Path(..., description="Agent type tag", examples=["github"], min_length=1, max_length=50),
]


@router.get(
    "",
    response_model=AgentListResponse,
    summary="List agents",
    description=(
        "List enabled agents. When `assigned` agent types are given, only those agents are returned, "
        "mirroring a user profile with assigned agents."
    ),
    responses={
        200: {
            "description": "Agents retrieved successfully",
            "content": {
                "application/json": {
                    "example": {
                        "agents": [
                            {
                                "id": "github-agent",
                                "name": "GitHub Agent",
                                "description": "Manages GitHub repositories, pull requests, issues, and workflows.",
                                "agent_type": "github",
                                "avatar_url": None,
                                "is_enabled": True,
                            }
                        ]
                    }
                }
            },
        }
    },
)
async def list_agents(
    catalog: Catalog,
    assigned: Annotated[
        list[AgentType] | None,
        Query(description="Restrict to these agent types", examples=[["github", "devops"]]),
    ] = None,
) -> AgentListResponse:
    """List the agents a caller may start sessions with."""
    profile = UserProfile(id="anonymous", display_name="anonymous", assigned_agents=assigned or [])
    agents = catalog.get_agents_for_user(profile)
    return AgentListResponse(agents=[AgentResponse.from_definition(a) for a in agents])


@router.get(
    "/{agent_type}/health",
    response_model=AgentHealthResponse,
    summary="Agent tool backend health",
    description="Probe the tool backend serving one agent type. A failing probe reports unhealthy.",
    responses={
        200: {
            "description": "Probe result",
            "content": {"application/json": {"example": {"agent_type": "github", "healthy": False}}},
        },
        422: {"description": "Unknown agent type"},
    },
)
async def agent_health(agent_type: AgentTypePath, gateway: Gateway) -> AgentHealthResponse:
    """Health of the tool client bound to an agent type."""
    try:
        resolved = AgentType(agent_type)
    except ValueError:
        raise UnknownAgentTypeError(agent_type) from None

    if resolved not in gateway.agent_types:
        return AgentHealthResponse(agent_type=resolved, healthy=False)
    return AgentHealthResponse(agent_type=resolved, healthy=await gateway.check_client_health(resolved))
