"""PostgreSQL-backed session and conversation stores.

Tables (see migrations/versions/0001_init_schema.py):
- agent_sessions: one row per session
- conversation_logs: one row per transcript entry, ordered by seq
"""

from __future__ import annotations

import time

from typing import Any

import asyncpg

from models.session_models import (
    AgentSessionStatus,
    AgentType,
    ChatMessage,
    ChatRole,
    SessionRecord,
    utc_now,
)
from utils.db_utils import transaction
from utils.metrics import db_query_duration_seconds

_SESSION_COLUMNS = "session_id, user_id, agent_type, agent_name, system_prompt, status, created_at, last_activity_at"


def _record_from_row(row: Any) -> SessionRecord:
    return SessionRecord(
        session_id=row["session_id"],
        user_id=row["user_id"],
        agent_type=AgentType(row["agent_type"]),
        agent_name=row["agent_name"],
        system_prompt=row["system_prompt"],
        status=AgentSessionStatus(row["status"]),
        created_at=row["created_at"],
        last_activity_at=row["last_activity_at"],
    )


def _message_from_row(row: Any) -> ChatMessage:
    return ChatMessage(
        id=row["message_id"],
        role=ChatRole(row["role"]),
        content=row["content"],
        timestamp=row["created_at"],
        tool_call_id=row["tool_call_id"],
        tool_name=row["tool_name"],
    )


class PostgresSessionStore:
    """SessionStore over the agent_sessions table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get(self, session_id: str) -> SessionRecord | None:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_SESSION_COLUMNS} FROM agent_sessions WHERE session_id = $1",
                session_id,
            )
        db_query_duration_seconds.labels(query_type="select").observe(time.perf_counter() - start_time)
        return _record_from_row(row) if row else None

    async def save(self, record: SessionRecord) -> None:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            await conn.execute(
                f"""
                INSERT INTO agent_sessions ({_SESSION_COLUMNS})
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                ON CONFLICT (session_id) DO UPDATE SET
                    status = EXCLUDED.status,
                    last_activity_at = EXCLUDED.last_activity_at
                """,
                record.session_id,
                record.user_id,
                record.agent_type.value,
                record.agent_name,
                record.system_prompt,
                record.status.value,
                record.created_at,
                record.last_activity_at,
            )
        db_query_duration_seconds.labels(query_type="insert").observe(time.perf_counter() - start_time)

    async def update_status(self, session_id: str, status: AgentSessionStatus) -> None:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                UPDATE agent_sessions
                SET status = $2, last_activity_at = $3
                WHERE session_id = $1
                """,
                session_id,
                status.value,
                utc_now(),
            )
        db_query_duration_seconds.labels(query_type="update").observe(time.perf_counter() - start_time)

    async def delete(self, session_id: str) -> None:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM agent_sessions WHERE session_id = $1", session_id)
        db_query_duration_seconds.labels(query_type="delete").observe(time.perf_counter() - start_time)

    async def get_by_user(self, user_id: str) -> list[SessionRecord]:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_SESSION_COLUMNS} FROM agent_sessions
                WHERE user_id = $1
                ORDER BY last_activity_at DESC
                """,
                user_id,
            )
        db_query_duration_seconds.labels(query_type="select").observe(time.perf_counter() - start_time)
        return [_record_from_row(row) for row in rows]


class PostgresConversationStore:
    """ConversationStore over the conversation_logs table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def append(self, session_id: str, message: ChatMessage) -> None:
        start_time = time.perf_counter()
        async with transaction(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO conversation_logs
                    (message_id, session_id, role, content, tool_call_id, tool_name, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                message.id,
                session_id,
                message.role.value,
                message.content,
                message.tool_call_id,
                message.tool_name,
                message.timestamp,
            )
            await conn.execute(
                "UPDATE agent_sessions SET last_activity_at = $2 WHERE session_id = $1",
                session_id,
                message.timestamp,
            )
        db_query_duration_seconds.labels(query_type="insert").observe(time.perf_counter() - start_time)

    async def get_all(self, session_id: str) -> list[ChatMessage]:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT message_id, role, content, tool_call_id, tool_name, created_at
                FROM conversation_logs
                WHERE session_id = $1
                ORDER BY seq ASC
                """,
                session_id,
            )
        db_query_duration_seconds.labels(query_type="select").observe(time.perf_counter() - start_time)
        return [_message_from_row(row) for row in rows]

    async def delete_all(self, session_id: str) -> None:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM conversation_logs WHERE session_id = $1", session_id)
        db_query_duration_seconds.labels(query_type="delete").observe(time.perf_counter() - start_time)
