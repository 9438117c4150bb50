"""
Ops Hub - multi-agent operations hub backend
============================================

FastAPI service that routes user chat turns to domain agents (GitHub, Azure,
Azure DevOps, .NET, AI/LLM, DevOps, Personal), each backed by a tool client.

Modules:
    api: FastAPI routes, session stores, middleware, and the agent WebSocket
    core: Agent catalog, session orchestrator, tool executor, settings
    integrations: Completion backend, tool gateway, and per-agent tool clients
    models: Pydantic models for sessions, tool calls, errors, and API schemas
    utils: Logging, metrics, database pool and HTTP client helpers
"""
