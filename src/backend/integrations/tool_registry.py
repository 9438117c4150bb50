"""
Tool client registry - startup wiring of one tool client per agent type.

Agent types backed by the remote MCP tool gateway get an HttpToolClient when
a gateway URL is configured and a StubToolClient otherwise. The personal
agent is always served in-process.
"""

from __future__ import annotations

from typing import TypedDict

import httpx

from core.constants import Settings
from integrations.tool_clients import HttpToolClient, PersonalToolClient, StubToolClient
from integrations.tool_gateway import ToolClient, ToolGateway
from models.session_models import AgentType
from utils.logger import logger


class ToolBackendConfig(TypedDict, total=False):
    """Tool backend configuration structure."""

    name: str
    transport: str  # "gateway" or "in_process"


TOOL_BACKEND_CONFIGS: dict[AgentType, ToolBackendConfig] = {
    AgentType.GITHUB: {"name": "GitHub", "transport": "gateway"},
    AgentType.AZURE: {"name": "Azure", "transport": "gateway"},
    AgentType.AZURE_DEVOPS: {"name": "Azure DevOps", "transport": "gateway"},
    AgentType.DOTNET_DEV: {"name": ".NET CLI", "transport": "gateway"},
    AgentType.AI_LLM: {"name": "AI/LLM", "transport": "gateway"},
    AgentType.DEVOPS: {"name": "DevOps", "transport": "gateway"},
    AgentType.PERSONAL: {"name": "Personal plugins", "transport": "in_process"},
}


def build_tool_clients(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> dict[AgentType, ToolClient]:
    """Create one tool client per configured agent type.

    Args:
        settings: Application settings (tool gateway URL)
        http_client: Client bound to the gateway base URL; required for
            gateway-backed agents to use HTTP

    Returns:
        Mapping of agent type to tool client
    """
    use_gateway = settings.tool_gateway_url_str is not None and http_client is not None
    if not use_gateway:
        logger.info("Tool gateway not configured - gateway-backed agents use stub tool clients")

    clients: dict[AgentType, ToolClient] = {}
    for agent_type, config in TOOL_BACKEND_CONFIGS.items():
        if config.get("transport") == "in_process":
            clients[agent_type] = PersonalToolClient()
        elif use_gateway and http_client is not None:
            clients[agent_type] = HttpToolClient(agent_type, http_client)
        else:
            clients[agent_type] = StubToolClient()

    logger.info(f"Registered {len(clients)} tool clients")
    return clients


def build_tool_gateway(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
) -> ToolGateway:
    """Build the gateway from the registered tool clients."""
    return ToolGateway(build_tool_clients(settings, http_client))
