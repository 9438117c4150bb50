"""Placeholder tool client for agents whose tool gateway is not deployed."""

from __future__ import annotations

from core.constants import TOOL_GATEWAY_NOT_CONFIGURED_MESSAGE
from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult


class StubToolClient:
    """Exposes no tools and always reports unhealthy."""

    async def list_tools(self) -> list[McpToolDefinition]:
        return []

    async def execute_tool(self, call: McpToolCall) -> McpToolResult:
        return McpToolResult(tool_call_id=call.id, content=TOOL_GATEWAY_NOT_CONFIGURED_MESSAGE)

    async def is_healthy(self) -> bool:
        return False
