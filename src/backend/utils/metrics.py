"""
Prometheus metrics configuration for Ops Hub.

Defines custom metrics for conversation turns, tool calls and storage.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# Use standard Prometheus naming conventions: namespace_subsystem_name_unit
NAMESPACE = "opshub"


# ============================================================================
# Session Metrics
# ============================================================================

sessions_active = Gauge(
    f"{NAMESPACE}_sessions_active",
    "Number of sessions resident in the orchestrator cache",
)

turns_total = Counter(
    f"{NAMESPACE}_turns_total",
    "Total number of conversation turns processed",
    ["agent_type", "mode", "outcome"],  # mode: "complete"/"stream"; outcome: "success"/"error"/"cancelled"
)

turn_duration_seconds = Histogram(
    f"{NAMESPACE}_turn_duration_seconds",
    "Conversation turn duration in seconds",
    ["agent_type", "mode"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)


# ============================================================================
# Tool Metrics
# ============================================================================

tool_calls_total = Counter(
    f"{NAMESPACE}_tool_calls_total",
    "Total number of tool calls executed",
    ["agent_type", "tool_name", "status"],  # status: "success", "error"
)

tool_call_duration_seconds = Histogram(
    f"{NAMESPACE}_tool_call_duration_seconds",
    "Tool call execution duration in seconds",
    ["agent_type"],
    buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# ============================================================================
# WebSocket Metrics
# ============================================================================

ws_connections_active = Gauge(
    f"{NAMESPACE}_websocket_connections_active",
    "Number of currently active agent WebSocket connections",
)

ws_messages_total = Counter(
    f"{NAMESPACE}_websocket_messages_total",
    "Total number of WebSocket messages processed",
    ["direction"],  # "inbound" or "outbound"
)


# ============================================================================
# Database Metrics
# ============================================================================

db_query_duration_seconds = Histogram(
    f"{NAMESPACE}_db_query_duration_seconds",
    "Database query duration in seconds",
    ["query_type"],  # "select", "insert", "update", "delete"
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
)
