"""
Session orchestrator - owns conversation state and drives each turn.

Responsibilities:
- Create, load, list and end agent sessions
- Keep resident sessions in a thread-safe cache backed by the session stores
- Run one completion turn (blocking or streamed) per call, with the agent's
  tools when the tool backend is reachable
- Track status transitions: Idle -> Thinking -> Idle | Error

Only one turn may be in flight per session; a second one fails fast with
SessionBusyError rather than interleaving transcript appends.
"""

from __future__ import annotations

import asyncio
import threading
import time

from collections.abc import AsyncGenerator, AsyncIterator, Iterator
from contextlib import aclosing, asynccontextmanager

from api.services.session_store import ConversationStore, SessionStore
from core.agent_catalog import AgentCatalog
from core.exceptions import (
    SessionBusyError,
    SessionConflictError,
    SessionNotFoundError,
    UnknownAgentTypeError,
)
from core.tool_executor import ToolExecutor
from integrations.completion_backend import CompletionBackend, ToolHandler
from integrations.tool_gateway import ToolGateway
from models.mcp_models import McpToolDefinition
from models.session_models import (
    AgentDefinition,
    AgentSession,
    AgentSessionStatus,
    AgentType,
    ChatMessage,
    ChatRole,
    SessionRecord,
)
from utils.logger import logger
from utils.metrics import sessions_active, turn_duration_seconds, turns_total

#: Statuses that only make sense while a turn is running in this process.
_IN_FLIGHT_STATUSES = frozenset({AgentSessionStatus.THINKING, AgentSessionStatus.WORKING})


class SessionCache:
    """Thread-safe map of resident sessions keyed by session id."""

    def __init__(self) -> None:
        self._sessions: dict[str, AgentSession] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __iter__(self) -> Iterator[AgentSession]:
        with self._lock:
            return iter(list(self._sessions.values()))

    def add(self, session: AgentSession) -> bool:
        """Insert a new session; False if the id is already taken."""
        with self._lock:
            if session.session_id in self._sessions:
                return False
            self._sessions[session.session_id] = session
            return True

    def get(self, session_id: str) -> AgentSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_add(self, session: AgentSession) -> AgentSession:
        """Insert unless another loader won the race; return the resident copy."""
        with self._lock:
            return self._sessions.setdefault(session.session_id, session)

    def pop(self, session_id: str) -> AgentSession | None:
        with self._lock:
            return self._sessions.pop(session_id, None)


class SessionOrchestrator:
    """Central coordinator for agent sessions."""

    def __init__(
        self,
        catalog: AgentCatalog,
        backend: CompletionBackend,
        gateway: ToolGateway,
        session_store: SessionStore,
        conversation_store: ConversationStore,
        tool_executor: ToolExecutor | None = None,
    ):
        self._catalog = catalog
        self._backend = backend
        self._gateway = gateway
        self._session_store = session_store
        self._conversation_store = conversation_store
        self._tool_executor = tool_executor
        self._cache = SessionCache()
        self._turn_locks: dict[str, asyncio.Lock] = {}

    @property
    def active_session_count(self) -> int:
        return len(self._cache)

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def create_session(self, user_id: str, agent_type: AgentType | str) -> AgentSession:
        """Start a session seeded with the agent's system prompt.

        Raises:
            UnknownAgentTypeError: agent_type is not in the catalog
            SessionConflictError: the generated id is already resident
        """
        agent = self._catalog.get_agent(agent_type)
        if agent is None:
            raise UnknownAgentTypeError(getattr(agent_type, "value", str(agent_type)))

        session = AgentSession(user_id=user_id, agent_type=agent.agent_type, agent=agent)
        seed = ChatMessage(role=ChatRole.SYSTEM, content=agent.system_prompt)
        session.add_message(seed)

        if not self._cache.add(session):
            raise SessionConflictError(session.session_id)

        try:
            await self._session_store.save(session.to_record())
            await self._conversation_store.append(session.session_id, seed)
        except BaseException:
            self._cache.pop(session.session_id)
            raise

        sessions_active.set(len(self._cache))
        logger.info(
            f"Created session {session.session_id} for user {user_id} with agent {agent.agent_type.value}",
            session_id=session.session_id,
            agent_type=agent.agent_type.value,
        )
        return session

    async def get_session(self, session_id: str) -> AgentSession | None:
        """Resident session, or the stored one loaded into the cache."""
        session = self._cache.get(session_id)
        if session is not None:
            return session

        record = await self._session_store.get(session_id)
        if record is None:
            return None

        messages = await self._conversation_store.get_all(session_id)
        session = self._cache.get_or_add(self._rebuild(record, messages))
        sessions_active.set(len(self._cache))
        logger.debug(f"Loaded session {session_id} from store ({len(session.messages)} messages)")
        return session

    async def list_sessions(self, user_id: str) -> list[SessionRecord]:
        """A user's sessions, most recently active first."""
        records = await self._session_store.get_by_user(user_id)
        resident = {s.session_id: s for s in self._cache if s.user_id == user_id}
        merged = [resident[r.session_id].to_record() if r.session_id in resident else r for r in records]
        return sorted(merged, key=lambda r: r.last_activity_at, reverse=True)

    async def end_session(self, session_id: str) -> None:
        """Remove a session from the cache and the stores. Idempotent.

        A turn still running on the session stops persisting and fails with
        SessionNotFoundError at its next transcript write.
        """
        removed = self._cache.pop(session_id)
        sessions_active.set(len(self._cache))

        await self._conversation_store.delete_all(session_id)
        await self._session_store.delete(session_id)

        if removed is not None:
            logger.info(f"Ended session {session_id}", session_id=session_id)

    # =========================================================================
    # Turns
    # =========================================================================

    async def process_message(self, session_id: str, text: str) -> ChatMessage:
        """Run one blocking turn and return the assistant reply.

        A failed turn leaves the user message in the transcript and the
        session in Error.
        """
        session = await self._require_session(session_id)
        agent_label = session.agent_type.value

        async with self._turn(session):
            start = time.perf_counter()
            try:
                await self._set_status(session, AgentSessionStatus.THINKING)
                await self._append(session, ChatMessage(role=ChatRole.USER, content=text))

                tools = await self._get_tools(session.agent_type)
                reply = await self._backend.complete(
                    list(session.messages),
                    tools,
                    tool_handler=self._tool_handler(session, tools),
                )

                assistant = ChatMessage(role=ChatRole.ASSISTANT, content=reply)
                await self._append(session, assistant)
                await self._set_status(session, AgentSessionStatus.IDLE)
            except asyncio.CancelledError:
                await self._abandon_turn(session, "complete")
                raise
            except Exception as e:
                await self._fail_turn(session, "complete", e)
                raise

            duration = time.perf_counter() - start
            self._record_turn(session, "complete", text, reply, duration)
            logger.info(
                f"Processed message for session {session_id}, history length: {len(session.messages)}",
                session_id=session_id,
                agent_type=agent_label,
            )
            return assistant

    async def stream_message(self, session_id: str, text: str) -> AsyncGenerator[str, None]:
        """Run one streamed turn, yielding tokens as the backend emits them.

        The accumulated text is appended as one assistant message once the
        stream is exhausted. Closing the generator early abandons the turn:
        nothing is appended and the session returns to Idle.
        """
        session = await self._require_session(session_id)

        async with self._turn(session):
            start = time.perf_counter()
            chunks: list[str] = []
            try:
                await self._set_status(session, AgentSessionStatus.THINKING)
                await self._append(session, ChatMessage(role=ChatRole.USER, content=text))

                tools = await self._get_tools(session.agent_type)
                tokens = self._backend.stream(
                    list(session.messages),
                    tools,
                    tool_handler=self._tool_handler(session, tools),
                )
                async with aclosing(tokens):
                    async for token in tokens:
                        chunks.append(token)
                        yield token

                reply = "".join(chunks)
                await self._append(session, ChatMessage(role=ChatRole.ASSISTANT, content=reply))
                await self._set_status(session, AgentSessionStatus.IDLE)
            except (GeneratorExit, asyncio.CancelledError):
                await self._abandon_turn(session, "stream")
                raise
            except Exception as e:
                await self._fail_turn(session, "stream", e)
                raise

            self._record_turn(session, "stream", text, reply, time.perf_counter() - start)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _require_session(self, session_id: str) -> AgentSession:
        session = await self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @asynccontextmanager
    async def _turn(self, session: AgentSession) -> AsyncIterator[None]:
        lock = self._turn_locks.setdefault(session.session_id, asyncio.Lock())
        if lock.locked():
            raise SessionBusyError(session.session_id)
        try:
            async with lock:
                yield
        finally:
            # Turns never wait on the lock, so it is dropped once released
            if not lock.locked() and self._turn_locks.get(session.session_id) is lock:
                del self._turn_locks[session.session_id]

    def _rebuild(self, record: SessionRecord, messages: list[ChatMessage]) -> AgentSession:
        agent = self._catalog.get_agent(record.agent_type) or AgentDefinition(
            id=f"{record.agent_type.value}-agent",
            name=record.agent_name,
            description="",
            agent_type=record.agent_type,
            system_prompt=record.system_prompt,
        )

        transcript = list(messages)
        if not transcript or transcript[0].role != ChatRole.SYSTEM:
            transcript.insert(
                0,
                ChatMessage(role=ChatRole.SYSTEM, content=record.system_prompt, timestamp=record.created_at),
            )

        # A stored in-flight status is stale once the session is reloaded
        status = AgentSessionStatus.IDLE if record.status in _IN_FLIGHT_STATUSES else record.status

        return AgentSession(
            session_id=record.session_id,
            user_id=record.user_id,
            agent_type=record.agent_type,
            agent=agent,
            status=status,
            messages=transcript,
            created_at=record.created_at,
            last_activity_at=record.last_activity_at,
        )

    def _is_resident(self, session: AgentSession) -> bool:
        return self._cache.get(session.session_id) is session

    async def _append(self, session: AgentSession, message: ChatMessage) -> None:
        """Persist then add to the transcript, so the cache never runs ahead of the store.

        Raises:
            SessionNotFoundError: the session was ended while the turn ran
        """
        if not self._is_resident(session):
            raise SessionNotFoundError(session.session_id)
        await self._conversation_store.append(session.session_id, message)
        session.add_message(message)

    async def _set_status(self, session: AgentSession, status: AgentSessionStatus) -> None:
        session.status = status
        await self._session_store.update_status(session.session_id, status)

    async def _get_tools(self, agent_type: AgentType) -> list[McpToolDefinition] | None:
        """Agent's tool definitions, or None when the tool backend is unavailable."""
        try:
            client = self._gateway.get_client(agent_type)
            return list(await client.list_tools())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Failed to retrieve tools for agent {agent_type.value}, proceeding without tools: {e}",
                agent_type=agent_type.value,
            )
            return None

    def _tool_handler(self, session: AgentSession, tools: list[McpToolDefinition] | None) -> ToolHandler | None:
        if not tools or self._tool_executor is None:
            return None
        return self._tool_executor.bind(session.agent_type)

    async def _fail_turn(self, session: AgentSession, mode: str, error: Exception) -> None:
        session.status = AgentSessionStatus.ERROR
        turns_total.labels(agent_type=session.agent_type.value, mode=mode, outcome="error").inc()
        if not self._is_resident(session):
            logger.info(f"Session {session.session_id} ended during its turn", session_id=session.session_id)
            return
        logger.error(
            f"Error processing message for session {session.session_id}: {error}",
            exc_info=True,
            session_id=session.session_id,
            agent_type=session.agent_type.value,
        )
        try:
            await self._session_store.update_status(session.session_id, AgentSessionStatus.ERROR)
        except Exception as store_error:
            logger.warning(
                f"Could not persist Error status for session {session.session_id}: {store_error}",
                session_id=session.session_id,
            )

    async def _abandon_turn(self, session: AgentSession, mode: str) -> None:
        session.status = AgentSessionStatus.IDLE
        turns_total.labels(agent_type=session.agent_type.value, mode=mode, outcome="cancelled").inc()
        logger.info(f"Turn abandoned for session {session.session_id}", session_id=session.session_id)
        if not self._is_resident(session):
            return
        # Cancellation is already propagating; the write must not replace it
        try:
            await asyncio.shield(self._session_store.update_status(session.session_id, AgentSessionStatus.IDLE))
        except (Exception, asyncio.CancelledError) as store_error:
            logger.warning(
                f"Could not persist Idle status for session {session.session_id}: {store_error!r}",
                session_id=session.session_id,
            )

    def _record_turn(self, session: AgentSession, mode: str, text: str, reply: str, duration: float) -> None:
        agent_label = session.agent_type.value
        turns_total.labels(agent_type=agent_label, mode=mode, outcome="success").inc()
        turn_duration_seconds.labels(agent_type=agent_label, mode=mode).observe(duration)
        logger.log_conversation_turn(
            session_id=session.session_id,
            agent_type=agent_label,
            user_input=text,
            response=reply,
            duration_ms=duration * 1000,
            history_length=len(session.messages),
            streamed=mode == "stream",
        )
