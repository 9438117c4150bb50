from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes import chat
from api.routes.v1 import router as v1_router
from api.services.postgres_session import PostgresConversationStore, PostgresSessionStore
from api.services.session_store import InMemoryConversationStore, InMemorySessionStore
from core.agent_catalog import AgentCatalog
from core.constants import get_settings
from core.orchestrator import SessionOrchestrator
from core.tool_executor import ToolExecutor
from integrations.completion_backend import OpenAICompletionBackend
from integrations.tool_registry import build_tool_gateway
from utils.client_factory import create_http_client
from utils.db_utils import check_pool_health, create_database_pool, graceful_pool_close
from utils.logger import configure_uvicorn_logging, logger

# Settings are loaded via Pydantic Settings with environment-specific file support
# (.env, .env.{APP_ENV}, .env.local) - no manual dotenv loading needed
settings = get_settings()

if settings.debug:
    from core.constants import _get_env_files

    logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
    logger.info(
        f"Settings: app_env={settings.app_env}, provider={settings.api_provider}, "
        f"session_store={settings.session_store}, tool_gateway={settings.tool_gateway_url_str or 'none'}"
    )

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: wire the core at startup, release clients on shutdown."""
    # Agent catalog is static for the process lifetime
    catalog = AgentCatalog.with_disabled(settings.disabled_agents_list)
    app.state.catalog = catalog

    # One shared HTTP client for every agent served by the remote tool gateway
    gateway_url = settings.tool_gateway_url_str
    gateway_http = None
    if gateway_url:
        gateway_http = create_http_client(read_timeout=settings.tool_gateway_timeout, base_url=gateway_url)
        logger.info(f"Tool gateway configured at {gateway_url}")
    else:
        logger.warning("Tool gateway not configured; remote agents run without tools")
    app.state.gateway_http = gateway_http

    gateway = build_tool_gateway(settings, gateway_http)
    app.state.tool_gateway = gateway

    backend = OpenAICompletionBackend.from_settings(settings)
    app.state.completion_backend = backend

    # Session persistence
    app.state.db_pool = None
    if settings.session_store == "postgres":
        app.state.db_pool = await create_database_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
            connection_timeout=settings.db_connection_timeout,
        )
        health = await check_pool_health(app.state.db_pool)
        if not health["healthy"]:
            logger.error("Database health check failed during startup")
            raise RuntimeError("Database connection failed")
        logger.info(f"Database pool healthy: {health}")
        session_store = PostgresSessionStore(app.state.db_pool)
        conversation_store = PostgresConversationStore(app.state.db_pool)
    else:
        logger.info("Using in-memory session store")
        session_store = InMemorySessionStore()
        conversation_store = InMemoryConversationStore()

    app.state.orchestrator = SessionOrchestrator(
        catalog=catalog,
        backend=backend,
        gateway=gateway,
        session_store=session_store,
        conversation_store=conversation_store,
        tool_executor=ToolExecutor(gateway),
    )
    logger.info(f"Ops Hub ready with {len(catalog.get_all_agents())} agents")

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")

        # Phase 1: Close outbound clients
        if gateway_http is not None:
            await gateway_http.aclose()
        await backend.aclose()

        # Phase 2: Gracefully close database pool
        if app.state.db_pool is not None:
            await graceful_pool_close(app.state.db_pool, timeout=settings.shutdown_timeout)


app = FastAPI(
    title="Ops Hub API",
    description="""
## Ops Hub API

Multi-agent operations hub. Each session talks to one domain agent (GitHub,
Azure, Azure DevOps, .NET, AI/LLM, DevOps, Personal) whose tools are served
through the MCP tool gateway.

### Features
- **Agents**: Catalog of domain agents and their tool backend health
- **Sessions**: Start, inspect, and end agent sessions
- **Messages**: Blocking turns over REST, streamed turns over WebSocket

### Versioning
API uses URL path versioning: `/api/v1/...`
""",
    version=settings.app_version,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Health",
            "description": "Health check endpoints for monitoring and orchestration",
        },
        {
            "name": "Agents",
            "description": "Agent catalog and per-agent tool health",
        },
        {
            "name": "Sessions",
            "description": "Agent session lifecycle and blocking turns",
        },
        {
            "name": "WebSocket",
            "description": "Real-time token streaming",
        },
    ],
    openapi_url="/api/v1/openapi.json",
    docs_url="/api/v1/docs",
    redoc_url="/api/v1/redoc",
)

# Register global exception handlers for consistent error responses
register_exception_handlers(app)

# Request context middleware (adds request ID tracking)
# Note: Middleware is executed in reverse order of registration
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes - API v1
app.include_router(v1_router, prefix="/api/v1")

# WebSocket routes (not versioned - protocol-level)
app.include_router(chat.router, prefix="/ws", tags=["WebSocket"])

# Prometheus scrape endpoint
app.mount("/metrics", make_asgi_app())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        reload_dirs=["src"],
        log_config=None,
    )
