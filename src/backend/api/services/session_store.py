"""
Session persistence contracts and the in-memory implementation.

SessionStore holds session metadata rows, ConversationStore holds the ordered
transcript. The orchestrator treats both as the durable copy behind its
in-memory session cache.
"""

from __future__ import annotations

from typing import Protocol

from models.session_models import AgentSessionStatus, ChatMessage, SessionRecord


class SessionStore(Protocol):
    """Durable session metadata."""

    async def get(self, session_id: str) -> SessionRecord | None: ...

    async def save(self, record: SessionRecord) -> None: ...

    async def update_status(self, session_id: str, status: AgentSessionStatus) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def get_by_user(self, user_id: str) -> list[SessionRecord]: ...


class ConversationStore(Protocol):
    """Durable, ordered transcript per session."""

    async def append(self, session_id: str, message: ChatMessage) -> None: ...

    async def get_all(self, session_id: str) -> list[ChatMessage]: ...

    async def delete_all(self, session_id: str) -> None: ...


class InMemorySessionStore:
    """Process-local SessionStore for development and tests."""

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}

    async def get(self, session_id: str) -> SessionRecord | None:
        return self._records.get(session_id)

    async def save(self, record: SessionRecord) -> None:
        self._records[record.session_id] = record.model_copy()

    async def update_status(self, session_id: str, status: AgentSessionStatus) -> None:
        record = self._records.get(session_id)
        if record is not None:
            self._records[session_id] = record.model_copy(update={"status": status})

    async def delete(self, session_id: str) -> None:
        self._records.pop(session_id, None)

    async def get_by_user(self, user_id: str) -> list[SessionRecord]:
        records = [r for r in self._records.values() if r.user_id == user_id]
        return sorted(records, key=lambda r: r.last_activity_at, reverse=True)


class InMemoryConversationStore:
    """Process-local ConversationStore for development and tests."""

    def __init__(self) -> None:
        self._messages: dict[str, list[ChatMessage]] = {}

    async def append(self, session_id: str, message: ChatMessage) -> None:
        self._messages.setdefault(session_id, []).append(message)

    async def get_all(self, session_id: str) -> list[ChatMessage]:
        return list(self._messages.get(session_id, []))

    async def delete_all(self, session_id: str) -> None:
        self._messages.pop(session_id, None)
