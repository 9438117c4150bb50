from __future__ import annotations

from typing import Annotated

import asyncpg

from fastapi import Depends, Request

from core.agent_catalog import AgentCatalog
from core.constants import Settings, get_settings
from core.orchestrator import SessionOrchestrator
from integrations.tool_gateway import ToolGateway


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


def get_db_pool(request: Request) -> asyncpg.Pool | None:
    """Get the database pool, or None when sessions live in memory."""
    return getattr(request.app.state, "db_pool", None)


def get_catalog(request: Request) -> AgentCatalog:
    """Get the agent catalog from application state."""
    return request.app.state.catalog


def get_tool_gateway(request: Request) -> ToolGateway:
    """Get the tool gateway from application state."""
    return request.app.state.tool_gateway


def get_orchestrator(request: Request) -> SessionOrchestrator:
    """Get the session orchestrator from application state."""
    return request.app.state.orchestrator


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
DB = Annotated[asyncpg.Pool | None, Depends(get_db_pool)]
Catalog = Annotated[AgentCatalog, Depends(get_catalog)]
Gateway = Annotated[ToolGateway, Depends(get_tool_gateway)]
Orchestrator = Annotated[SessionOrchestrator, Depends(get_orchestrator)]
