"""WebSocket endpoint: live SOS events and socket-originated chat."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from sos_dispatch.core.broadcaster import Broadcaster
from sos_dispatch.core.errors import DispatchError, Unauthenticated
from sos_dispatch.core.identity import Identity, Role, authenticate
from sos_dispatch.core.ws_manager import Subscriber, SubscriberRegistry
from sos_dispatch.db.session import SessionLocal
from sos_dispatch.services import chat_service
from sos_dispatch.services.auth_service import verify_subject

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate_ws(token: str | None) -> Identity:
    """Validate the optional JWT. Raises Unauthenticated for a bad one."""
    identity = authenticate(token)
    db = SessionLocal()
    try:
        return verify_subject(db, identity)
    finally:
        db.close()


def _append_chat(broadcaster: Broadcaster, sos_id: str, sender: str | None, message: str | None) -> None:
    db = SessionLocal()
    try:
        chat_service.append_chat(db, broadcaster, sos_id, sender, message)
    finally:
        db.close()


def _frame(event: str, data: Any) -> str:
    return json.dumps({"event": event, "data": data}, default=str)


def _sos_id_from(data: Any) -> str | None:
    if isinstance(data, dict):
        data = data.get("sosId")
    if data is None or data == "":
        return None
    return str(data)


def _default_sender(identity: Identity) -> str:
    if identity.name:
        return identity.name
    if identity.role is Role.REQUESTER:
        return chat_service.DEFAULT_SENDER
    return identity.role.value.capitalize()


async def _handle(
    websocket: WebSocket,
    subscriber: Subscriber,
    registry: SubscriberRegistry,
    broadcaster: Broadcaster,
    raw: str,
) -> None:
    try:
        frame = json.loads(raw)
    except ValueError:
        await websocket.send_text(_frame("error", {"detail": "Frames must be JSON"}))
        return
    if not isinstance(frame, dict):
        await websocket.send_text(_frame("error", {"detail": "Frames must be JSON objects"}))
        return

    event, data = frame.get("event"), frame.get("data")

    if event == "joinSOSChat":
        sos_id = _sos_id_from(data)
        if sos_id is None:
            return
        registry.join(subscriber.id, sos_id)
        await websocket.send_text(_frame("joinedSOSChat", {"sosId": sos_id}))
    elif event == "leaveSOSChat":
        sos_id = _sos_id_from(data)
        if sos_id is not None:
            registry.leave(subscriber.id, sos_id)
    elif event == "chatMessage":
        data = data if isinstance(data, dict) else {}
        sos_id = _sos_id_from(data)
        if sos_id is None:
            await websocket.send_text(_frame("error", {"detail": "sosId is required"}))
            return
        sender = data.get("sender") or _default_sender(subscriber.identity)
        try:
            # Same path as the HTTP chat endpoint; the room gets the broadcast
            await run_in_threadpool(_append_chat, broadcaster, sos_id, sender, data.get("message"))
        except DispatchError as e:
            await websocket.send_text(_frame("error", {"sosId": sos_id, "detail": str(e)}))
    else:
        await websocket.send_text(_frame("error", {"detail": f"Unknown event: {event}"}))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint. Client connects with optional ?token=<jwt>; without
    one the session is an anonymous requester.
    Server pushes events: newSOS, sosStatusUpdated, chatMessage.
    Client sends: joinSOSChat, leaveSOSChat, chatMessage.
    """
    token = websocket.query_params.get("token")
    try:
        identity = await run_in_threadpool(_authenticate_ws, token)
    except Unauthenticated:
        await websocket.close(code=4003, reason="Invalid or expired token")
        return

    registry: SubscriberRegistry = websocket.app.state.registry
    broadcaster: Broadcaster = websocket.app.state.broadcaster

    await websocket.accept()
    subscriber = registry.register(Subscriber(identity=identity, send=websocket.send_text))
    await websocket.send_text(_frame("connected", {"role": identity.role.value}))
    try:
        while True:
            data = await websocket.receive_text()
            # Echo pong for heartbeat
            if data == "ping":
                await websocket.send_text('{"event":"pong"}')
                continue
            await _handle(websocket, subscriber, registry, broadcaster, data)
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(subscriber.id)
