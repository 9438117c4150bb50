"""
Pydantic models for MCP (Model Context Protocol) tool traffic.

These models describe the uniform tool contract every agent's tool client
satisfies:
- Tool definitions (McpToolDefinition)
- Tool invocations requested by the model (McpToolCall)
- Tool execution results (McpToolResult)

Field aliases match the camelCase wire format spoken by the remote tool
gateway, so the same models parse gateway JSON directly.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class McpToolDefinition(BaseModel):
    """A tool an agent may call.

    input_schema is an opaque JSON-schema string; it is passed through to the
    completion backend untouched.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: str
    description: str = ""
    input_schema: str | None = Field(default=None, alias="inputSchema")


class McpToolCall(BaseModel):
    """A tool invocation produced by the completion backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    tool_name: str = Field(alias="toolName")
    arguments: str = "{}"


class McpToolResult(BaseModel):
    """Outcome of a tool invocation, correlated to its call by id."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    tool_call_id: str = Field(alias="toolCallId")
    content: str = ""
    is_error: bool = Field(default=False, alias="isError")
