"""
Completion backends: turn a transcript (plus optional tools) into a reply.

The orchestrator only depends on the CompletionBackend protocol. The OpenAI
implementation maps transcripts onto the chat completions API, runs a
bounded tool-calling loop through a caller-supplied tool handler, and
streams content deltas lazily.
"""

from __future__ import annotations

import json

from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Any, Protocol

from openai import AsyncOpenAI

from core.constants import DEFAULT_MAX_TOOL_ROUNDS, Settings
from models.mcp_models import McpToolCall, McpToolDefinition, McpToolResult
from models.session_models import ChatMessage, ChatRole
from utils.client_factory import create_http_client, create_openai_client
from utils.logger import logger

#: Executes one model-requested tool call; must not raise.
ToolHandler = Callable[[McpToolCall], Awaitable[McpToolResult]]

_EMPTY_OBJECT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}}


class CompletionBackend(Protocol):
    """Capability consumed by the session orchestrator."""

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[McpToolDefinition] | None = None,
        tool_handler: ToolHandler | None = None,
    ) -> str: ...

    def stream(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[McpToolDefinition] | None = None,
        tool_handler: ToolHandler | None = None,
    ) -> AsyncGenerator[str, None]: ...


# =============================================================================
# Message / tool mapping
# =============================================================================


def to_openai_message(message: ChatMessage) -> dict[str, Any]:
    """Map one transcript entry onto a chat completions message."""
    if message.role == ChatRole.TOOL:
        return {"role": "tool", "tool_call_id": message.tool_call_id or "", "content": message.content}
    return {"role": message.role.value, "content": message.content}


def parse_input_schema(raw: str | None) -> dict[str, Any]:
    """Parse an opaque JSON-schema string; fall back to an empty object schema."""
    if not raw:
        return dict(_EMPTY_OBJECT_SCHEMA)
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring tool input schema that is not valid JSON")
        return dict(_EMPTY_OBJECT_SCHEMA)
    return parsed if isinstance(parsed, dict) else dict(_EMPTY_OBJECT_SCHEMA)


def to_openai_tool(tool: McpToolDefinition) -> dict[str, Any]:
    """Map a tool definition onto a function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": parse_input_schema(tool.input_schema),
        },
    }


def _tool_call_message(calls: Sequence[McpToolCall], content: str | None = None) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": content or None,
        "tool_calls": [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.tool_name, "arguments": call.arguments},
            }
            for call in calls
        ],
    }


def _tool_result_message(result: McpToolResult) -> dict[str, Any]:
    return {"role": "tool", "tool_call_id": result.tool_call_id, "content": result.content}


# =============================================================================
# OpenAI backend
# =============================================================================


class OpenAICompletionBackend:
    """Chat completions backend for OpenAI or Azure OpenAI deployments."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
    ):
        self._client = client
        self.model = model
        self.max_tool_rounds = max_tool_rounds

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAICompletionBackend:
        """Build the client for the configured provider."""
        http_client = create_http_client(read_timeout=settings.http_read_timeout)
        if settings.api_provider == "azure":
            endpoint = settings.azure_endpoint_str
            logger.info(f"Configuring Azure OpenAI client (endpoint: {endpoint})")
            client = create_openai_client(settings.azure_openai_api_key, base_url=endpoint, http_client=http_client)
        else:
            logger.info("Configuring OpenAI client")
            client = create_openai_client(settings.openai_api_key, http_client=http_client)
        return cls(client, model=settings.model, max_tool_rounds=settings.max_tool_rounds)

    async def aclose(self) -> None:
        await self._client.close()

    def _request_kwargs(self, payload: list[dict[str, Any]], tools: list[dict[str, Any]] | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"model": self.model, "messages": payload}
        if tools:
            kwargs["tools"] = tools
        return kwargs

    def _tools_for_round(
        self,
        round_index: int,
        openai_tools: list[dict[str, Any]],
        tool_handler: ToolHandler | None,
    ) -> list[dict[str, Any]] | None:
        # Without a handler the model may still see tools, but calls end the turn
        if not openai_tools:
            return None
        if tool_handler is not None and round_index >= self.max_tool_rounds:
            return None
        return openai_tools

    async def _run_tools(
        self,
        payload: list[dict[str, Any]],
        calls: list[McpToolCall],
        tool_handler: ToolHandler,
        content: str | None = None,
    ) -> None:
        payload.append(_tool_call_message(calls, content))
        for call in calls:
            result = await tool_handler(call)
            payload.append(_tool_result_message(result))

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[McpToolDefinition] | None = None,
        tool_handler: ToolHandler | None = None,
    ) -> str:
        payload = [to_openai_message(m) for m in messages]
        openai_tools = [to_openai_tool(t) for t in tools or []]

        # Text from every round, as stream() would have yielded it
        parts: list[str] = []
        round_index = 0
        while True:
            round_tools = self._tools_for_round(round_index, openai_tools, tool_handler)
            response = await self._client.chat.completions.create(**self._request_kwargs(payload, round_tools))
            message = response.choices[0].message
            if message.content:
                parts.append(message.content)

            requested = [
                McpToolCall(id=tc.id, tool_name=tc.function.name, arguments=tc.function.arguments or "{}")
                for tc in (message.tool_calls or [])
            ]
            if not requested or tool_handler is None or round_tools is None:
                return "".join(parts)

            logger.debug(f"Model requested {len(requested)} tool call(s) in round {round_index + 1}")
            await self._run_tools(payload, requested, tool_handler, message.content)
            round_index += 1

    async def stream(
        self,
        messages: Sequence[ChatMessage],
        tools: Sequence[McpToolDefinition] | None = None,
        tool_handler: ToolHandler | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield content deltas as they arrive.

        Closing the generator early closes the underlying HTTP stream.
        """
        payload = [to_openai_message(m) for m in messages]
        openai_tools = [to_openai_tool(t) for t in tools or []]

        round_index = 0
        while True:
            round_tools = self._tools_for_round(round_index, openai_tools, tool_handler)
            stream = await self._client.chat.completions.create(
                **self._request_kwargs(payload, round_tools), stream=True
            )
            # index -> {"id", "name", "arguments"}
            pending: dict[int, dict[str, str]] = {}
            round_text: list[str] = []
            try:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta
                    if delta.content:
                        round_text.append(delta.content)
                        yield delta.content
                    for tc in delta.tool_calls or []:
                        slot = pending.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                        if tc.id:
                            slot["id"] = tc.id
                        if tc.function is not None:
                            slot["name"] += tc.function.name or ""
                            slot["arguments"] += tc.function.arguments or ""
            finally:
                await stream.close()

            if not pending or tool_handler is None or round_tools is None:
                return

            requested = [
                McpToolCall(id=slot["id"], tool_name=slot["name"], arguments=slot["arguments"] or "{}")
                for _, slot in sorted(pending.items())
            ]
            logger.debug(f"Model requested {len(requested)} tool call(s) in streamed round {round_index + 1}")
            await self._run_tools(payload, requested, tool_handler, "".join(round_text))
            round_index += 1
