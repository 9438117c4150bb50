"""Shared test fixtures for the Ops Hub test suite.

This module provides settings isolation plus in-process fakes for the
collaborators the orchestrator consumes (completion backend, tool clients,
session stores).
"""

from __future__ import annotations

import asyncio
import os

from collections.abc import AsyncGenerator, Generator, Sequence
from typing import Any
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before test collection
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Pin the test environment before any test modules are imported.

    APP_ENV=test skips provider credential validation, so modules that load
    settings at import time work on CI where no .env is available.
    """
    os.environ["APP_ENV"] = "test"
    os.environ.setdefault("SESSION_STORE", "memory")
    os.environ.setdefault("API_PROVIDER", "openai")
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")


# ============================================================================
# Test Isolation: Settings Management (MUST BE FIRST)
# ============================================================================


@pytest.fixture(autouse=True, scope="function")
def reset_settings_singleton() -> Generator[None, None, None]:
    """Reset settings singleton before each test to prevent state pollution."""
    from core import constants

    constants.clear_settings_cache()
    yield
    constants.clear_settings_cache()


@pytest.fixture
def test_settings() -> Any:
    """Settings built from explicit values only."""
    from core.constants import Settings

    return Settings(
        app_env="test",
        api_provider="openai",
        openai_api_key="test-openai-key",
        session_store="memory",
        tool_gateway_url=None,
    )


# ============================================================================
# Fakes for consumed capabilities
# ============================================================================


class FakeCompletionBackend:
    """Completion backend returning a fixed reply.

    stream() yields the reply one character at a time so the concatenated
    stream equals complete(). fail_after makes stream() raise after that
    many tokens; error makes both calls raise immediately.
    """

    def __init__(
        self,
        reply: str = "ack",
        error: Exception | None = None,
        fail_after: int | None = None,
        delay: float = 0.0,
    ):
        self.reply = reply
        self.error = error
        self.fail_after = fail_after
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.stream_closed = False

    async def complete(self, messages: Sequence[Any], tools: Any = None, tool_handler: Any = None) -> str:
        self.calls.append({"messages": list(messages), "tools": tools, "tool_handler": tool_handler})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply

    async def stream(
        self, messages: Sequence[Any], tools: Any = None, tool_handler: Any = None
    ) -> AsyncGenerator[str, None]:
        self.calls.append({"messages": list(messages), "tools": tools, "tool_handler": tool_handler})
        if self.error is not None:
            raise self.error
        try:
            for index, token in enumerate(self.reply):
                if self.fail_after is not None and index >= self.fail_after:
                    raise RuntimeError("backend dropped the stream")
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield token
        finally:
            self.stream_closed = True


class FakeToolClient:
    """Tool client with scripted tools and health."""

    def __init__(
        self,
        tools: Sequence[Any] = (),
        healthy: bool = True,
        list_error: Exception | None = None,
        health_error: Exception | None = None,
    ):
        self.tools = list(tools)
        self.healthy = healthy
        self.list_error = list_error
        self.health_error = health_error
        self.executed: list[Any] = []

    async def list_tools(self) -> list[Any]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.tools)

    async def execute_tool(self, call: Any) -> Any:
        from models.mcp_models import McpToolResult

        self.executed.append(call)
        return McpToolResult(tool_call_id=call.id, content='{"ok": true}')

    async def is_healthy(self) -> bool:
        if self.health_error is not None:
            raise self.health_error
        return self.healthy


# ============================================================================
# Core fixtures
# ============================================================================


@pytest.fixture
def two_agent_catalog() -> Any:
    """Catalog seeded with GitHub and Azure agents only."""
    from core.agent_catalog import DEFAULT_AGENTS, AgentCatalog
    from models.session_models import AgentType

    return AgentCatalog([a for a in DEFAULT_AGENTS if a.agent_type in (AgentType.GITHUB, AgentType.AZURE)])


@pytest.fixture
def fake_backend() -> FakeCompletionBackend:
    return FakeCompletionBackend()


@pytest.fixture
def fake_tool_client() -> FakeToolClient:
    return FakeToolClient()


@pytest.fixture
def tool_gateway(fake_tool_client: FakeToolClient) -> Any:
    from integrations.tool_gateway import ToolGateway
    from models.session_models import AgentType

    return ToolGateway({AgentType.GITHUB: fake_tool_client, AgentType.AZURE: FakeToolClient(healthy=False)})


@pytest.fixture
def session_store() -> Any:
    from api.services.session_store import InMemorySessionStore

    return InMemorySessionStore()


@pytest.fixture
def conversation_store() -> Any:
    from api.services.session_store import InMemoryConversationStore

    return InMemoryConversationStore()


@pytest.fixture
def orchestrator(
    two_agent_catalog: Any,
    fake_backend: FakeCompletionBackend,
    tool_gateway: Any,
    session_store: Any,
    conversation_store: Any,
) -> Any:
    from core.orchestrator import SessionOrchestrator
    from core.tool_executor import ToolExecutor

    return SessionOrchestrator(
        catalog=two_agent_catalog,
        backend=fake_backend,
        gateway=tool_gateway,
        session_store=session_store,
        conversation_store=conversation_store,
        tool_executor=ToolExecutor(tool_gateway),
    )


# ============================================================================
# Mock External Dependencies
# ============================================================================


@pytest.fixture
def mock_openai_client() -> Generator[Mock, None, None]:
    """Mock AsyncOpenAI client for testing."""
    client = Mock()
    client.chat.completions.create = AsyncMock()
    client.close = AsyncMock()
    yield client


@pytest.fixture
def mock_db_pool() -> Generator[MagicMock, None, None]:
    """Mock asyncpg.Pool for database testing."""
    pool = MagicMock()
    # Mock acquire context manager
    conn = AsyncMock()

    # transaction() is synchronous but returns an async context manager
    tx_cm = AsyncMock()
    conn.transaction = MagicMock(return_value=tx_cm)

    pool.acquire.return_value.__aenter__.return_value = conn
    yield pool


@pytest.fixture
def make_backend() -> type[FakeCompletionBackend]:
    """Factory for completion backends with custom behavior."""
    return FakeCompletionBackend


@pytest.fixture
def make_tool_client() -> type[FakeToolClient]:
    """Factory for tool clients with custom behavior."""
    return FakeToolClient
