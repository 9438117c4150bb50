from __future__ import annotations

import contextlib

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from openai import APIError as OpenAIAPIError

from api.middleware.request_context import (
    clear_request_context,
    create_websocket_context,
    get_request_id,
    update_request_context,
)
from api.websocket.errors import close_with_error, send_ws_error
from core.constants import (
    MSG_TYPE_STATUS,
    MSG_TYPE_STREAM_COMPLETE,
    MSG_TYPE_TOKEN,
)
from core.exceptions import AppException
from core.orchestrator import SessionOrchestrator
from models.error_models import ErrorCode
from models.session_models import AgentSessionStatus
from utils.logger import logger
from utils.metrics import ws_connections_active, ws_messages_total

router = APIRouter()


@router.websocket("/agent/{session_id}")
async def agent_websocket(websocket: WebSocket, session_id: str) -> None:
    """WebSocket endpoint for streamed agent turns.

    Inbound frames are ``{"content": "..."}``. Each turn is answered with a
    ``status`` frame, one ``token`` frame per streamed chunk, a
    ``stream_complete`` frame and a closing ``status`` frame. Failures send
    an ``error`` frame and leave the connection open.
    """
    orchestrator: SessionOrchestrator = websocket.app.state.orchestrator

    client_ip = websocket.client.host if websocket.client else None
    create_websocket_context(session_id=session_id, client_ip=client_ip)

    await websocket.accept()
    ws_connections_active.inc()
    try:
        session = await orchestrator.get_session(session_id)
        if session is None:
            await close_with_error(
                websocket,
                code=ErrorCode.SESSION_NOT_FOUND,
                message=f"Session '{session_id}' not found",
                session_id=session_id,
            )
            return
        update_request_context(user_id=session.user_id, agent_type=session.agent_type.value)

        logger.info(f"WebSocket joined session {session_id}", session_id=session_id)
        async for data in websocket.iter_json():
            ws_messages_total.labels(direction="inbound").inc()
            content = data.get("content") if isinstance(data, dict) else None
            if not isinstance(content, str) or not content.strip():
                await send_ws_error(
                    websocket,
                    code=ErrorCode.WS_MESSAGE_INVALID,
                    message="Expected a JSON object with non-empty 'content'",
                    session_id=session_id,
                )
                continue

            await _stream_turn(websocket, orchestrator, session_id, content)
    except WebSocketDisconnect:
        pass  # Normal client disconnect
    except RuntimeError as e:
        # Client went away mid-send
        if "not connected" not in str(e).lower():
            raise
    finally:
        ws_connections_active.dec()
        logger.info(f"WebSocket left session {session_id}", session_id=session_id)
        clear_request_context()


async def _stream_turn(
    websocket: WebSocket,
    orchestrator: SessionOrchestrator,
    session_id: str,
    content: str,
) -> None:
    """Relay one streamed turn. Disconnects propagate and abandon the turn."""
    logger.info(f"Processing message for session {session_id}", session_id=session_id)
    await _send_status(websocket, session_id, AgentSessionStatus.THINKING)

    try:
        async with contextlib.aclosing(orchestrator.stream_message(session_id, content)) as tokens:
            async for token in tokens:
                await _send(websocket, {"type": MSG_TYPE_TOKEN, "session_id": session_id, "content": token})
    except WebSocketDisconnect:
        raise
    except AppException as e:
        await send_ws_error(websocket, code=e.code, message=e.message, session_id=session_id)
        return
    except Exception as e:
        logger.error(
            f"Stream processing error: {e}",
            session_id=session_id,
            request_id=get_request_id(),
            exc_info=True,
        )
        await _send_status(websocket, session_id, AgentSessionStatus.ERROR)
        code = ErrorCode.OPENAI_ERROR if isinstance(e, OpenAIAPIError) else ErrorCode.INTERNAL_ERROR
        await send_ws_error(
            websocket,
            code=code,
            message=f"Message processing failed: {type(e).__name__}",
            session_id=session_id,
        )
        return

    await _send(websocket, {"type": MSG_TYPE_STREAM_COMPLETE, "session_id": session_id})
    await _send_status(websocket, session_id, AgentSessionStatus.IDLE)


async def _send(websocket: WebSocket, frame: dict[str, Any]) -> None:
    await websocket.send_json(frame)
    ws_messages_total.labels(direction="outbound").inc()


async def _send_status(websocket: WebSocket, session_id: str, status: AgentSessionStatus) -> None:
    await _send(websocket, {"type": MSG_TYPE_STATUS, "session_id": session_id, "status": status.value})
