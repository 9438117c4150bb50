"""
Request context for the Ops Hub API.

A context variable carries the request id plus the session, user and agent
type a request concerns, so log records and error bodies can be correlated
without threading these values through every call.
"""

from __future__ import annotations

import secrets
import time

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)

REQUEST_ID_PREFIX = "req_"
WEBSOCKET_ID_PREFIX = "ws_"

#: Path segments followed by an identifier worth lifting into the context.
_PATH_KEYS = {"sessions": "session_id", "agent": "session_id", "agents": "agent_type"}


@dataclass
class RequestContext:
    """What a request (or WebSocket connection) is about."""

    request_id: str
    start_time: float = field(default_factory=time.monotonic)
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    agent_type: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Fields attached to every log record emitted under this context."""
        ctx: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        optional = {
            "client_ip": self.client_ip,
            "user_id": self.user_id,
            "session_id": self.session_id,
            "agent_type": self.agent_type,
        }
        ctx.update({key: value for key, value in optional.items() if value})
        return ctx


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """Prefix plus 16 hex characters, e.g. ``req_a1b2c3d4e5f6a7b8``."""
    return f"{prefix}{secrets.token_hex(8)}"


def get_request_context() -> RequestContext | None:
    return _request_context.get()


def get_request_id() -> str | None:
    ctx = get_request_context()
    return ctx.request_id if ctx else None


def set_request_context(context: RequestContext) -> None:
    _request_context.set(context)


def clear_request_context() -> None:
    _request_context.set(None)


def update_request_context(**kwargs: Any) -> None:
    """Set known fields on the current context; unknown keys land in ``extra``.

    No-op outside a request.
    """
    ctx = get_request_context()
    if ctx is None:
        return
    for key, value in kwargs.items():
        if key in RequestContext.__dataclass_fields__:
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value


def context_from_path(path: str) -> dict[str, str]:
    """Identifiers named in a URL path.

    ``/api/v1/sessions/{id}/messages`` yields a session id,
    ``/api/v1/agents/{type}/health`` an agent type.
    """
    parts = [part for part in path.split("/") if part]
    found: dict[str, str] = {}
    for segment, value in zip(parts, parts[1:]):
        key = _PATH_KEYS.get(segment)
        if key and key not in found:
            found[key] = value
    return found


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First hop is the original client
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Opens a RequestContext per HTTP request.

    Echoes the request id in ``X-Request-ID`` and reports handling time in
    ``X-Response-Time``.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Honor an upstream request ID for distributed tracing
        request_id = request.headers.get("X-Request-ID") or generate_request_id()

        context = RequestContext(
            request_id=request_id,
            path=request.url.path,
            method=request.method,
            client_ip=_client_ip(request),
            user_id=request.query_params.get("user_id"),
            **context_from_path(request.url.path),
        )
        set_request_context(context)

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{context.elapsed_ms:.2f}ms"
            return response
        finally:
            clear_request_context()


def create_websocket_context(
    session_id: str | None = None,
    client_ip: str | None = None,
) -> RequestContext:
    """Open a context for one agent WebSocket connection.

    Connections are long-lived, so the context spans every turn relayed over
    the connection rather than a single message.
    """
    context = RequestContext(
        request_id=generate_request_id(WEBSOCKET_ID_PREFIX),
        path=f"/ws/agent/{session_id}" if session_id else "/ws/agent",
        method="WEBSOCKET",
        client_ip=client_ip,
        session_id=session_id,
    )
    set_request_context(context)
    return context


__all__ = [
    "REQUEST_ID_PREFIX",
    "WEBSOCKET_ID_PREFIX",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_request_context",
    "context_from_path",
    "create_websocket_context",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "set_request_context",
    "update_request_context",
]
