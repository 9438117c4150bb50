"""
Tool executor - runs model-requested tool calls for an agent.

Failures never propagate: they become error results the model can read and
respond to, so a tool-calling loop never aborts the turn.
"""

from __future__ import annotations

import asyncio
import time

from integrations.tool_gateway import ToolGateway
from models.mcp_models import McpToolCall, McpToolResult
from models.session_models import AgentType
from utils.logger import logger
from utils.metrics import tool_call_duration_seconds, tool_calls_total


class ToolExecutor:
    """Resolves the agent's tool client via the gateway and executes a call."""

    def __init__(self, gateway: ToolGateway):
        self._gateway = gateway

    async def execute(self, agent_type: AgentType, call: McpToolCall) -> McpToolResult:
        logger.debug(f"Executing tool {call.tool_name} for agent {agent_type.value}")
        start = time.perf_counter()

        try:
            client = self._gateway.get_client(agent_type)
            result = await client.execute_tool(call)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Failed to execute tool {call.tool_name} for agent {agent_type.value}: {e}",
                exc_info=True,
                agent_type=agent_type.value,
                tool=call.tool_name,
            )
            result = McpToolResult(
                tool_call_id=call.id,
                content=f"Tool execution failed: {e}",
                is_error=True,
            )

        duration = time.perf_counter() - start
        tool_calls_total.labels(
            agent_type=agent_type.value,
            tool_name=call.tool_name,
            status="error" if result.is_error else "success",
        ).inc()
        tool_call_duration_seconds.labels(agent_type=agent_type.value).observe(duration)
        logger.log_tool_call(
            agent_type=agent_type.value,
            tool_name=call.tool_name,
            arguments=call.arguments,
            result=result.content,
            is_error=result.is_error,
            duration_ms=duration * 1000,
        )
        return result

    def bind(self, agent_type: AgentType):
        """Tool handler closed over one agent type, for the completion backend."""

        async def handler(call: McpToolCall) -> McpToolResult:
            return await self.execute(agent_type, call)

        return handler
