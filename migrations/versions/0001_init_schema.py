from __future__ import annotations

"""init schema

Revision ID: 0001_init_schema
Revises:
Create Date: 2025-01-15

agent_sessions holds one row per agent session; conversation_logs holds the
transcript, ordered by an identity seq column.
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "agent_sessions",
        sa.Column("session_id", sa.String(length=64), primary_key=True),
        sa.Column("user_id", sa.String(length=200), nullable=False),
        sa.Column("agent_type", sa.String(length=32), nullable=False),
        sa.Column("agent_name", sa.String(length=200), nullable=False),
        sa.Column("system_prompt", sa.Text, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="idle"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_agent_sessions_user_activity", "agent_sessions", ["user_id", "last_activity_at"])

    op.create_table(
        "conversation_logs",
        sa.Column("seq", sa.BigInteger, sa.Identity(always=False), primary_key=True),
        sa.Column("message_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column(
            "session_id",
            sa.String(length=64),
            sa.ForeignKey("agent_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("tool_call_id", sa.String(length=100)),
        sa.Column("tool_name", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_conversation_logs_session_seq", "conversation_logs", ["session_id", "seq"])


def downgrade() -> None:
    op.drop_index("idx_conversation_logs_session_seq", table_name="conversation_logs")
    op.drop_table("conversation_logs")
    op.drop_index("idx_agent_sessions_user_activity", table_name="agent_sessions")
    op.drop_table("agent_sessions")
