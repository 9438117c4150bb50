"""Base class for in-process personal assistant plugins."""

from __future__ import annotations

import json

from typing import Any, ClassVar

from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult


class PersonalPlugin:
    """A named group of tools served in-process by the personal agent.

    Subclasses declare their tools and a canned payload per tool name.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""

    #: Tool definitions, in listing order.
    tools: ClassVar[tuple[McpToolDefinition, ...]] = ()

    #: Payload returned for each tool name.
    responses: ClassVar[dict[str, Any]] = {}

    def get_tools(self) -> list[McpToolDefinition]:
        return list(self.tools)

    def handles(self, tool_name: str) -> bool:
        return any(tool.name == tool_name for tool in self.tools)

    def execute_tool(self, call: McpToolCall) -> McpToolResult:
        if call.tool_name not in self.responses:
            return McpToolResult(tool_call_id=call.id, content=f"Unknown tool: {call.tool_name}", is_error=True)
        return McpToolResult(tool_call_id=call.id, content=json.dumps(self.responses[call.tool_name]))


def schema(properties: dict[str, Any], required: list[str]) -> str:
    """Serialize a JSON object schema."""
    return json.dumps({"type": "object", "properties": properties, "required": required})
