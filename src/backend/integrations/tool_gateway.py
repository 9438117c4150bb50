"""
Tool Gateway - maps each agent type to the tool client that serves it.

Clients are registered once at startup; lookup is a dict access. Every
client satisfies the ToolClient protocol, so callers never inspect the
concrete backend behind an agent.
"""

from __future__ import annotations

import asyncio

from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from core.exceptions import ToolClientNotRegisteredError
from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult
from models.session_models import AgentType
from utils.logger import logger


@runtime_checkable
class ToolClient(Protocol):
    """Capability set every per-agent tool backend exposes."""

    async def list_tools(self) -> list[McpToolDefinition]: ...

    async def execute_tool(self, call: McpToolCall) -> McpToolResult: ...

    async def is_healthy(self) -> bool: ...


class ToolGateway:
    """Registry of tool clients keyed by agent type."""

    def __init__(self, clients: Mapping[AgentType, ToolClient]):
        self._clients: dict[AgentType, ToolClient] = dict(clients)

    @property
    def agent_types(self) -> list[AgentType]:
        return list(self._clients)

    def get_client(self, agent_type: AgentType) -> ToolClient:
        """Resolve the client bound to an agent type.

        Raises:
            ToolClientNotRegisteredError: The agent type was never wired up.
        """
        try:
            return self._clients[agent_type]
        except KeyError:
            raise ToolClientNotRegisteredError(_type_label(agent_type)) from None

    async def check_client_health(self, agent_type: AgentType) -> bool:
        """Probe one client; a raising probe counts as unhealthy."""
        client = self.get_client(agent_type)
        try:
            return bool(await client.is_healthy())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Health probe failed for {_type_label(agent_type)} tool client: {e}")
            return False

    async def get_health_status(self) -> dict[AgentType, bool]:
        """Probe every registered client concurrently.

        The result always carries one entry per registered client.
        """
        agent_types = list(self._clients)
        results = await asyncio.gather(*(self.check_client_health(t) for t in agent_types))
        return dict(zip(agent_types, results, strict=True))


def _type_label(agent_type: AgentType | str) -> str:
    return agent_type.value if isinstance(agent_type, AgentType) else str(agent_type)
