"""In-process tool client for the personal assistant agent."""

from __future__ import annotations

from collections.abc import Iterable

from integrations.tool_clients.plugins import DEFAULT_PLUGINS, PersonalPlugin
from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult


class PersonalToolClient:
    """Aggregates personal plugins behind a single tool client.

    Tool calls are routed to the first plugin declaring the tool name.
    Always healthy since nothing leaves the process.
    """

    def __init__(self, plugins: Iterable[PersonalPlugin] | None = None):
        if plugins is None:
            plugins = [plugin_cls() for plugin_cls in DEFAULT_PLUGINS]
        self.plugins: list[PersonalPlugin] = list(plugins)

    async def list_tools(self) -> list[McpToolDefinition]:
        return [tool for plugin in self.plugins for tool in plugin.get_tools()]

    async def execute_tool(self, call: McpToolCall) -> McpToolResult:
        for plugin in self.plugins:
            if plugin.handles(call.tool_name):
                return plugin.execute_tool(call)
        return McpToolResult(tool_call_id=call.id, content=f"Unknown tool: {call.tool_name}", is_error=True)

    async def is_healthy(self) -> bool:
        return True
