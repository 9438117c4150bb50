"""
HTTP tool client for agents served by the remote MCP tool gateway.

Wire format (JSON, camelCase):
- GET  {base}/agents/{type}/tools         -> [{name, description, inputSchema}]
- POST {base}/agents/{type}/tools/{name}  <- {id, arguments}
                                          -> {toolCallId, content, isError}
- GET  {base}/agents/{type}/health        -> {healthy}
"""

from __future__ import annotations

import httpx

from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult
from models.session_models import AgentType
from utils.logger import logger


class HttpToolClient:
    """Proxies one agent type's tool traffic to the gateway.

    Listing and execution errors propagate as httpx errors; the tool executor
    and the orchestrator decide how to degrade. Health never raises.
    """

    def __init__(self, agent_type: AgentType, http_client: httpx.AsyncClient):
        self.agent_type = agent_type
        self._http = http_client
        self._prefix = f"/agents/{agent_type.value}"

    async def list_tools(self) -> list[McpToolDefinition]:
        response = await self._http.get(f"{self._prefix}/tools")
        response.raise_for_status()
        return [McpToolDefinition.model_validate(item) for item in response.json()]

    async def execute_tool(self, call: McpToolCall) -> McpToolResult:
        response = await self._http.post(
            f"{self._prefix}/tools/{call.tool_name}",
            json={"id": call.id, "arguments": call.arguments},
        )
        response.raise_for_status()
        result = McpToolResult.model_validate(response.json())
        if result.tool_call_id != call.id:
            # Gateway echoes ids; keep correlation with the originating call
            result = result.model_copy(update={"tool_call_id": call.id})
        return result

    async def is_healthy(self) -> bool:
        try:
            response = await self._http.get(f"{self._prefix}/health")
        except httpx.HTTPError as e:
            logger.debug(f"Tool gateway health check failed for {self.agent_type.value}: {e}")
            return False
        if response.status_code >= 300:
            return False
        try:
            return bool(response.json().get("healthy", False))
        except ValueError:
            return False
