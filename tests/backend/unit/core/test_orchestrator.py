"""Tests for the session orchestrator.

Covers session lifecycle, blocking and streamed turns, failure and
abandonment handling, and reload from the session stores.
"""

from __future__ import annotations

import asyncio

from typing import Any
from unittest.mock import AsyncMock

import pytest

from api.services.session_store import InMemoryConversationStore
from core.exceptions import SessionBusyError, SessionNotFoundError, UnknownAgentTypeError
from core.orchestrator import SessionCache, SessionOrchestrator
from core.tool_executor import ToolExecutor
from integrations.tool_gateway import ToolGateway
from models.mcp_models import McpToolCall, McpToolDefinition
from models.session_models import (
    AgentSession,
    AgentSessionStatus,
    AgentType,
    ChatRole,
)


def build_orchestrator(
    catalog: Any,
    backend: Any,
    gateway: Any,
    session_store: Any,
    conversation_store: Any,
) -> SessionOrchestrator:
    return SessionOrchestrator(
        catalog=catalog,
        backend=backend,
        gateway=gateway,
        session_store=session_store,
        conversation_store=conversation_store,
        tool_executor=ToolExecutor(gateway),
    )


class RejectingConversationStore(InMemoryConversationStore):
    """Conversation store that fails every append of one role."""

    def __init__(self, role: ChatRole):
        super().__init__()
        self.role = role

    async def append(self, session_id: str, message: Any) -> None:
        if message.role == self.role:
            raise RuntimeError("disk full")
        await super().append(session_id, message)


def roles(session: AgentSession) -> list[ChatRole]:
    return [m.role for m in session.messages]


# =============================================================================
# Session lifecycle
# =============================================================================


class TestCreateSession:
    @pytest.mark.asyncio
    async def test_seeds_system_prompt(self, orchestrator: SessionOrchestrator, two_agent_catalog: Any) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        agent = two_agent_catalog.get_agent(AgentType.GITHUB)
        assert session.status == AgentSessionStatus.IDLE
        assert session.agent == agent
        assert len(session.messages) == 1
        assert session.messages[0].role == ChatRole.SYSTEM
        assert session.messages[0].content == agent.system_prompt

    @pytest.mark.asyncio
    async def test_accepts_string_agent_type(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", "azure")
        assert session.agent_type == AgentType.AZURE

    @pytest.mark.asyncio
    async def test_session_is_retrievable(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        assert await orchestrator.get_session(session.session_id) is session
        assert orchestrator.active_session_count == 1

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, orchestrator: SessionOrchestrator) -> None:
        first = await orchestrator.create_session("u1", AgentType.GITHUB)
        second = await orchestrator.create_session("u1", AgentType.GITHUB)
        assert first.session_id != second.session_id

    @pytest.mark.asyncio
    async def test_persists_record_and_seed(
        self, orchestrator: SessionOrchestrator, session_store: Any, conversation_store: Any
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        record = await session_store.get(session.session_id)
        assert record is not None
        assert record.agent_type == AgentType.GITHUB
        assert record.user_id == "u1"
        stored = await conversation_store.get_all(session.session_id)
        assert [m.role for m in stored] == [ChatRole.SYSTEM]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("agent_type", [AgentType.PERSONAL, "kubernetes"])
    async def test_unknown_agent_type_creates_nothing(
        self, orchestrator: SessionOrchestrator, session_store: Any, agent_type: Any
    ) -> None:
        with pytest.raises(UnknownAgentTypeError):
            await orchestrator.create_session("u1", agent_type)

        assert orchestrator.active_session_count == 0
        assert await session_store.get_by_user("u1") == []

    @pytest.mark.asyncio
    async def test_store_failure_leaves_no_resident_session(
        self, orchestrator: SessionOrchestrator, session_store: Any
    ) -> None:
        session_store.save = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError, match="db down"):
            await orchestrator.create_session("u1", AgentType.GITHUB)

        assert orchestrator.active_session_count == 0


class TestGetSession:
    @pytest.mark.asyncio
    async def test_unknown_id_is_absent(self, orchestrator: SessionOrchestrator) -> None:
        assert await orchestrator.get_session("missing") is None

    @pytest.mark.asyncio
    async def test_reloads_from_store(
        self,
        orchestrator: SessionOrchestrator,
        two_agent_catalog: Any,
        fake_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        await orchestrator.process_message(session.session_id, "hi")

        restarted = build_orchestrator(two_agent_catalog, fake_backend, tool_gateway, session_store, conversation_store)
        assert restarted.active_session_count == 0

        loaded = await restarted.get_session(session.session_id)
        assert loaded is not None
        assert loaded.agent_type == AgentType.GITHUB
        assert [(m.role, m.content) for m in loaded.messages] == [
            (m.role, m.content) for m in session.messages
        ]
        assert restarted.active_session_count == 1
        assert await restarted.get_session(session.session_id) is loaded

    @pytest.mark.asyncio
    async def test_in_flight_status_is_reset_on_reload(
        self,
        orchestrator: SessionOrchestrator,
        two_agent_catalog: Any,
        fake_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        await session_store.update_status(session.session_id, AgentSessionStatus.THINKING)

        restarted = build_orchestrator(two_agent_catalog, fake_backend, tool_gateway, session_store, conversation_store)
        loaded = await restarted.get_session(session.session_id)

        assert loaded.status == AgentSessionStatus.IDLE

    @pytest.mark.asyncio
    async def test_reload_restores_missing_system_prompt(
        self,
        orchestrator: SessionOrchestrator,
        two_agent_catalog: Any,
        fake_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.AZURE)
        await conversation_store.delete_all(session.session_id)

        restarted = build_orchestrator(two_agent_catalog, fake_backend, tool_gateway, session_store, conversation_store)
        loaded = await restarted.get_session(session.session_id)

        assert roles(loaded) == [ChatRole.SYSTEM]
        assert loaded.messages[0].content == session.agent.system_prompt


class TestListAndEnd:
    @pytest.mark.asyncio
    async def test_list_sessions_scoped_to_user_most_recent_first(self, orchestrator: SessionOrchestrator) -> None:
        older = await orchestrator.create_session("u1", AgentType.GITHUB)
        newer = await orchestrator.create_session("u1", AgentType.AZURE)
        await orchestrator.create_session("u2", AgentType.GITHUB)

        # A turn makes the older session the most recently active one
        await orchestrator.process_message(older.session_id, "bump")

        records = await orchestrator.list_sessions("u1")
        assert [r.session_id for r in records] == [older.session_id, newer.session_id]

    @pytest.mark.asyncio
    async def test_list_sessions_unknown_user(self, orchestrator: SessionOrchestrator) -> None:
        assert await orchestrator.list_sessions("nobody") == []

    @pytest.mark.asyncio
    async def test_end_session_removes_everything(
        self, orchestrator: SessionOrchestrator, session_store: Any, conversation_store: Any
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        await orchestrator.end_session(session.session_id)

        assert await orchestrator.get_session(session.session_id) is None
        assert await session_store.get(session.session_id) is None
        assert await conversation_store.get_all(session.session_id) == []
        assert orchestrator.active_session_count == 0

    @pytest.mark.asyncio
    async def test_end_session_is_idempotent(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        await orchestrator.end_session(session.session_id)
        await orchestrator.end_session(session.session_id)
        await orchestrator.end_session("never-existed")


# =============================================================================
# Turns
# =============================================================================


class TestProcessMessage:
    @pytest.mark.asyncio
    async def test_round_trip(self, orchestrator: SessionOrchestrator, conversation_store: Any) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        reply = await orchestrator.process_message(session.session_id, "hi")

        assert reply.role == ChatRole.ASSISTANT
        assert reply.content == "ack"
        assert [(m.role, m.content) for m in session.messages[1:]] == [
            (ChatRole.USER, "hi"),
            (ChatRole.ASSISTANT, "ack"),
        ]
        assert roles(session)[0] == ChatRole.SYSTEM
        assert session.status == AgentSessionStatus.IDLE
        stored = await conversation_store.get_all(session.session_id)
        assert [m.id for m in stored] == [m.id for m in session.messages]

        await orchestrator.end_session(session.session_id)
        assert await orchestrator.get_session(session.session_id) is None

    @pytest.mark.asyncio
    async def test_backend_receives_full_history(self, orchestrator: SessionOrchestrator, fake_backend: Any) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        await orchestrator.process_message(session.session_id, "one")
        await orchestrator.process_message(session.session_id, "two")

        sent = fake_backend.calls[-1]["messages"]
        assert [(m.role, m.content) for m in sent] == [
            (ChatRole.SYSTEM, session.agent.system_prompt),
            (ChatRole.USER, "one"),
            (ChatRole.ASSISTANT, "ack"),
            (ChatRole.USER, "two"),
        ]

    @pytest.mark.asyncio
    async def test_transcript_grows_by_two_per_turn(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        for n in range(3):
            await orchestrator.process_message(session.session_id, f"msg {n}")
            assert len(session.messages) == 1 + 2 * (n + 1)

    @pytest.mark.asyncio
    async def test_unknown_session(self, orchestrator: SessionOrchestrator) -> None:
        with pytest.raises(SessionNotFoundError):
            await orchestrator.process_message("missing", "hi")

    @pytest.mark.asyncio
    async def test_backend_failure_sets_error_and_keeps_user_message(
        self,
        two_agent_catalog: Any,
        make_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        backend = make_backend(error=RuntimeError("model unavailable"))
        orch = build_orchestrator(two_agent_catalog, backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        with pytest.raises(RuntimeError, match="model unavailable"):
            await orch.process_message(session.session_id, "hi")

        assert session.status == AgentSessionStatus.ERROR
        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER]
        record = await session_store.get(session.session_id)
        assert record.status == AgentSessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_failed_reply_write_keeps_cache_in_step_with_store(
        self,
        two_agent_catalog: Any,
        fake_backend: Any,
        tool_gateway: Any,
        session_store: Any,
    ) -> None:
        conversation_store = RejectingConversationStore(ChatRole.ASSISTANT)
        orch = build_orchestrator(two_agent_catalog, fake_backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        with pytest.raises(RuntimeError, match="disk full"):
            await orch.process_message(session.session_id, "hi")

        stored = await conversation_store.get_all(session.session_id)
        assert roles(session) == [m.role for m in stored] == [ChatRole.SYSTEM, ChatRole.USER]
        assert session.status == AgentSessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_session_usable_after_error(
        self,
        two_agent_catalog: Any,
        make_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        backend = make_backend(error=RuntimeError("flaky"))
        orch = build_orchestrator(two_agent_catalog, backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)
        with pytest.raises(RuntimeError):
            await orch.process_message(session.session_id, "first")

        backend.error = None
        reply = await orch.process_message(session.session_id, "second")

        assert reply.content == "ack"
        assert session.status == AgentSessionStatus.IDLE

    @pytest.mark.asyncio
    async def test_tools_and_handler_passed_when_available(
        self,
        two_agent_catalog: Any,
        fake_backend: Any,
        make_tool_client: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        tools = [McpToolDefinition(name="list_repos", description="List repositories")]
        client = make_tool_client(tools=tools)
        gateway = ToolGateway({AgentType.GITHUB: client})
        orch = build_orchestrator(two_agent_catalog, fake_backend, gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        await orch.process_message(session.session_id, "what repos?")

        call = fake_backend.calls[0]
        assert call["tools"] == tools
        result = await call["tool_handler"](McpToolCall(id="c1", tool_name="list_repos"))
        assert result.tool_call_id == "c1"
        assert client.executed[0].tool_name == "list_repos"
        # Tool traffic never enters the transcript
        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER, ChatRole.ASSISTANT]

    @pytest.mark.asyncio
    async def test_tool_listing_failure_falls_back_to_no_tools(
        self,
        two_agent_catalog: Any,
        fake_backend: Any,
        make_tool_client: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        gateway = ToolGateway({AgentType.GITHUB: make_tool_client(list_error=ConnectionError("gateway down"))})
        orch = build_orchestrator(two_agent_catalog, fake_backend, gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        reply = await orch.process_message(session.session_id, "hi")

        assert reply.content == "ack"
        assert fake_backend.calls[0]["tools"] is None
        assert fake_backend.calls[0]["tool_handler"] is None

    @pytest.mark.asyncio
    async def test_unregistered_tool_client_falls_back_to_no_tools(
        self,
        two_agent_catalog: Any,
        fake_backend: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        orch = build_orchestrator(two_agent_catalog, fake_backend, ToolGateway({}), session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.AZURE)

        await orch.process_message(session.session_id, "hi")

        assert fake_backend.calls[0]["tools"] is None


class TestStreamMessage:
    @pytest.mark.asyncio
    async def test_stream_matches_blocking_reply(
        self,
        two_agent_catalog: Any,
        make_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        backend = make_backend(reply="Hello there")
        orch = build_orchestrator(two_agent_catalog, backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        tokens = [t async for t in orch.stream_message(session.session_id, "hi")]
        blocking = await orch.process_message(session.session_id, "hi")

        assert len(tokens) == len("Hello there")
        assert "".join(tokens) == blocking.content
        assert session.messages[2].content == "Hello there"
        assert session.status == AgentSessionStatus.IDLE

    @pytest.mark.asyncio
    async def test_stream_appends_single_assistant_message(
        self, orchestrator: SessionOrchestrator, conversation_store: Any
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        async for _ in orchestrator.stream_message(session.session_id, "hi"):
            pass

        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER, ChatRole.ASSISTANT]
        stored = await conversation_store.get_all(session.session_id)
        assert stored[-1].content == "ack"

    @pytest.mark.asyncio
    async def test_unknown_session_raises_on_iteration(self, orchestrator: SessionOrchestrator) -> None:
        tokens = orchestrator.stream_message("missing", "hi")
        with pytest.raises(SessionNotFoundError):
            await tokens.__anext__()

    @pytest.mark.asyncio
    async def test_mid_stream_failure_sets_error(
        self,
        two_agent_catalog: Any,
        make_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        backend = make_backend(reply="partial reply", fail_after=3)
        orch = build_orchestrator(two_agent_catalog, backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        received: list[str] = []
        with pytest.raises(RuntimeError, match="dropped"):
            async for token in orch.stream_message(session.session_id, "hi"):
                received.append(token)

        assert "".join(received) == "par"
        assert session.status == AgentSessionStatus.ERROR
        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER]
        assert (await session_store.get(session.session_id)).status == AgentSessionStatus.ERROR

    @pytest.mark.asyncio
    async def test_abandoned_stream_returns_to_idle(
        self,
        orchestrator: SessionOrchestrator,
        fake_backend: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)

        tokens = orchestrator.stream_message(session.session_id, "hi")
        assert await tokens.__anext__() == "a"
        await tokens.aclose()

        assert fake_backend.stream_closed is True
        assert session.status == AgentSessionStatus.IDLE
        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER]
        stored = await conversation_store.get_all(session.session_id)
        assert [m.role for m in stored] == [ChatRole.SYSTEM, ChatRole.USER]
        assert (await session_store.get(session.session_id)).status == AgentSessionStatus.IDLE

    @pytest.mark.asyncio
    async def test_session_usable_after_abandonment(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        tokens = orchestrator.stream_message(session.session_id, "hi")
        await tokens.__anext__()
        await tokens.aclose()

        reply = await orchestrator.process_message(session.session_id, "again")
        assert reply.content == "ack"


class TestConcurrentTurns:
    @pytest.mark.asyncio
    async def test_second_turn_while_streaming_is_rejected(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        tokens = orchestrator.stream_message(session.session_id, "first")
        await tokens.__anext__()

        with pytest.raises(SessionBusyError):
            await orchestrator.process_message(session.session_id, "second")

        await tokens.aclose()
        assert [m.content for m in session.messages if m.role == ChatRole.USER] == ["first"]

    @pytest.mark.asyncio
    async def test_turns_on_different_sessions_are_independent(self, orchestrator: SessionOrchestrator) -> None:
        first = await orchestrator.create_session("u1", AgentType.GITHUB)
        second = await orchestrator.create_session("u1", AgentType.AZURE)
        tokens = orchestrator.stream_message(first.session_id, "hi")
        await tokens.__anext__()

        reply = await orchestrator.process_message(second.session_id, "hi")

        assert reply.content == "ack"
        await tokens.aclose()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_blocking_turn_returns_to_idle(
        self,
        two_agent_catalog: Any,
        make_backend: Any,
        tool_gateway: Any,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        backend = make_backend(delay=10)
        orch = build_orchestrator(two_agent_catalog, backend, tool_gateway, session_store, conversation_store)
        session = await orch.create_session("u1", AgentType.GITHUB)

        task = asyncio.create_task(orch.process_message(session.session_id, "slow"))
        while not backend.calls:
            await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.status == AgentSessionStatus.IDLE
        assert (await session_store.get(session.session_id)).status == AgentSessionStatus.IDLE
        assert roles(session) == [ChatRole.SYSTEM, ChatRole.USER]

        backend.delay = 0
        reply = await orch.process_message(session.session_id, "again")
        assert reply.content == "ack"

    @pytest.mark.asyncio
    async def test_turn_locks_are_dropped_after_turns(self, orchestrator: SessionOrchestrator) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        await orchestrator.process_message(session.session_id, "hi")
        tokens = orchestrator.stream_message(session.session_id, "again")
        await tokens.__anext__()
        await tokens.aclose()

        assert orchestrator._turn_locks == {}

    @pytest.mark.asyncio
    async def test_end_session_mid_turn_stops_persisting(
        self,
        orchestrator: SessionOrchestrator,
        session_store: Any,
        conversation_store: Any,
    ) -> None:
        session = await orchestrator.create_session("u1", AgentType.GITHUB)
        tokens = orchestrator.stream_message(session.session_id, "hi")
        await tokens.__anext__()

        await orchestrator.end_session(session.session_id)
        with pytest.raises(SessionNotFoundError):
            async for _ in tokens:
                pass

        assert await conversation_store.get_all(session.session_id) == []
        assert await session_store.get(session.session_id) is None
        assert await orchestrator.get_session(session.session_id) is None


class TestSessionCache:
    def _session(self, two_agent_catalog: Any, session_id: str = "s1") -> AgentSession:
        agent = two_agent_catalog.get_agent(AgentType.GITHUB)
        return AgentSession(session_id=session_id, user_id="u1", agent_type=agent.agent_type, agent=agent)

    def test_add_rejects_duplicate_id(self, two_agent_catalog: Any) -> None:
        cache = SessionCache()
        assert cache.add(self._session(two_agent_catalog)) is True
        assert cache.add(self._session(two_agent_catalog)) is False
        assert len(cache) == 1

    def test_get_or_add_keeps_resident_copy(self, two_agent_catalog: Any) -> None:
        cache = SessionCache()
        resident = self._session(two_agent_catalog)
        cache.add(resident)
        assert cache.get_or_add(self._session(two_agent_catalog)) is resident

    def test_pop_and_contains(self, two_agent_catalog: Any) -> None:
        cache = SessionCache()
        cache.add(self._session(two_agent_catalog))
        assert "s1" in cache
        assert cache.pop("s1") is not None
        assert cache.pop("s1") is None
        assert "s1" not in cache
