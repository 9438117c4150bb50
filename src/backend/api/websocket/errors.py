"""
WebSocket error handling utilities for the agent stream.

Provides consistent error frames and close codes for the agent WebSocket.
"""

from __future__ import annotations

import contextlib

from fastapi import WebSocket

from api.middleware.request_context import get_request_id
from models.error_models import ErrorCode, WebSocketError
from utils.logger import logger
from utils.metrics import ws_messages_total


# WebSocket close codes (RFC 6455 + application-specific)
class WSCloseCode:
    """WebSocket close codes for error scenarios."""

    NORMAL = 1000
    GOING_AWAY = 1001
    INTERNAL_ERROR = 1011

    # Application-specific codes (4000-4999)
    SESSION_NOT_FOUND = 4404
    SESSION_BUSY = 4409
    SERVER_ERROR = 4500


# Map error codes to WebSocket close codes
ERROR_CODE_TO_WS_CLOSE: dict[ErrorCode, int] = {
    ErrorCode.SESSION_NOT_FOUND: WSCloseCode.SESSION_NOT_FOUND,
    ErrorCode.SESSION_BUSY: WSCloseCode.SESSION_BUSY,
    ErrorCode.INTERNAL_ERROR: WSCloseCode.SERVER_ERROR,
}


async def send_ws_error(
    websocket: WebSocket,
    code: ErrorCode,
    message: str,
    session_id: str | None = None,
    recoverable: bool = True,
) -> None:
    """Send a standardized error frame over the WebSocket.

    Args:
        websocket: Active WebSocket connection
        code: Application error code
        message: Human-readable error message
        session_id: Associated session ID (if any)
        recoverable: Whether the client may keep using the connection
    """
    error = WebSocketError(
        code=code,
        message=message,
        request_id=get_request_id(),
        session_id=session_id,
        recoverable=recoverable,
    )

    try:
        await websocket.send_json(error.to_dict())
        ws_messages_total.labels(direction="outbound").inc()
    except Exception as e:
        # Connection may already be closed
        logger.warning(f"Failed to send WebSocket error: {e}")


async def close_with_error(
    websocket: WebSocket,
    code: ErrorCode,
    message: str,
    session_id: str | None = None,
) -> None:
    """Send a non-recoverable error frame, then close with the mapped code."""
    await send_ws_error(websocket, code=code, message=message, session_id=session_id, recoverable=False)

    ws_close_code = ERROR_CODE_TO_WS_CLOSE.get(code, WSCloseCode.SERVER_ERROR)
    with contextlib.suppress(Exception):
        await websocket.close(code=ws_close_code, reason=message.encode("utf-8")[:123].decode("utf-8", errors="ignore"))


__all__ = [
    "ERROR_CODE_TO_WS_CLOSE",
    "WSCloseCode",
    "close_with_error",
    "send_ws_error",
]
