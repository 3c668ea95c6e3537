from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.datastructures import State

from messaging_service.application.dto.principal import Principal
from messaging_service.application.exceptions import (
    AppError,
    ForbiddenError,
    InvalidContentError,
    NotFoundError,
    ResourceExhaustedError,
    UnauthenticatedError,
    ValidationError,
)
from messaging_service.application.policies.permissions import assert_room_member
from messaging_service.config import settings
from messaging_service.infrastructure.ws import protocol
from messaging_service.infrastructure.ws.protocol import WsInbound
from messaging_service.infrastructure.ws.registry import Connection
from messaging_service.services import message_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

_ERROR_CODES: dict[type[AppError], str] = {
    InvalidContentError: "invalid_content",
    ValidationError: "invalid_data",
    ForbiddenError: "forbidden",
    NotFoundError: "not_found",
    ResourceExhaustedError: "resource_exhausted",
}


def _error_code(exc: AppError) -> str:
    for cls in type(exc).__mro__:
        if cls in _ERROR_CODES:
            return _ERROR_CODES[cls]
    return "error"


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    state = websocket.app.state
    try:
        principal = await state.gate.authenticate(token)
    except (UnauthenticatedError, ForbiddenError) as exc:
        # A close code only reaches the client after the handshake is accepted.
        code = (
            protocol.CLOSE_UNAUTHENTICATED
            if isinstance(exc, UnauthenticatedError)
            else protocol.CLOSE_FORBIDDEN
        )
        await websocket.accept()
        await websocket.close(code=code, reason=exc.detail)
        return

    await websocket.accept()
    try:
        conn = state.registry.register(principal.user_id, websocket)
    except ResourceExhaustedError as exc:
        logger.warning("Refusing connection for %s: %s", principal.user_id, exc.detail)
        await websocket.close(code=protocol.CLOSE_TRY_AGAIN_LATER, reason=exc.detail)
        return

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{conn.connection_id}",
    )
    try:
        await websocket.send_text(
            protocol.encode(
                "connected",
                {"connection_id": conn.connection_id, "user_id": principal.user_id},
            )
        )
        await _read_loop(websocket, conn, principal, state)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", principal.user_id)
    finally:
        heartbeat_task.cancel()
        state.registry.unregister(conn.connection_id)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(protocol.encode("pong"))
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(
    ws: WebSocket,
    conn: Connection,
    principal: Principal,
    state: State,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except ValueError:
            await ws.send_text(protocol.error_event("invalid_payload"))
            continue

        try:
            if msg.type == "ping":
                await ws.send_text(protocol.encode("pong"))

            elif msg.type == "join_chat":
                room = _room(msg.data)
                assert_room_member(principal, room)
                state.registry.join_room(conn.connection_id, room)
                await ws.send_text(protocol.encode("joined", {"room": room}))

            elif msg.type == "leave_chat":
                room = _room(msg.data)
                state.registry.leave_room(conn.connection_id, room)
                await ws.send_text(protocol.encode("left", {"room": room}))

            elif msg.type == "send_message":
                await _handle_send(ws, principal, msg.data, state)

            elif msg.type == "mark_read":
                await _handle_mark_read(msg.data, state)

            else:
                await ws.send_text(protocol.error_event("unknown_type", msg.type))
        except AppError as exc:
            await ws.send_text(protocol.error_event(_error_code(exc), exc.detail))


def _room(data: dict[str, Any]) -> str:
    room = data.get("room")
    if not isinstance(room, str) or not room:
        raise ValidationError("room is required")
    return room


async def _handle_send(
    ws: WebSocket,
    principal: Principal,
    data: dict[str, Any],
    state: State,
) -> None:
    receiver = data.get("receiver")
    content = data.get("content")
    if not isinstance(receiver, str) or not isinstance(content, str):
        raise ValidationError("receiver and content are required")
    try:
        await message_service.send_message(
            principal, receiver, content, state.store, state.router,
        )
    except AppError:
        raise
    except Exception:
        # Nothing was stored, so nothing is reported as sent.
        logger.exception("send_message from %s failed", principal.user_id)
        await ws.send_text(protocol.error_event("send_failed", "Message could not be stored"))


async def _handle_mark_read(data: dict[str, Any], state: State) -> None:
    try:
        message_id = UUID(str(data["message_id"]))
    except (KeyError, ValueError) as exc:
        raise ValidationError("message_id is required") from exc

    await message_service.mark_message_read(message_id, state.store, state.router)
