import json
import logging
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from auth.application.services import verify_token
from auth.domain.entities import Principal
from auth.infrastructure.user_repository import DbUserRepository
from collaboration.application.registry import SessionRegistry
from collaboration.domain.events import ServerEventType
from shared.exceptions import AuthenticationError, PersistenceError
from shared.infrastructure.database import async_session

logger = logging.getLogger(__name__)

router = APIRouter()


class WebSocketConnection:
    """Adapts a FastAPI WebSocket to the session engine's connection interface."""

    def __init__(self, websocket: WebSocket, principal: Principal):
        self.id = uuid4().hex
        self.principal = principal
        self.websocket = websocket

    async def send(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})


async def _authenticate(token: str) -> Principal | None:
    """Validate JWT and return the principal, or None if invalid."""
    try:
        async with async_session() as db:
            user = await verify_token(DbUserRepository(db), token)
    except AuthenticationError:
        return None
    return user.to_principal()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    # Authenticate via query param: ?token=xxx
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4001, reason="Missing token")
        return

    try:
        principal = await _authenticate(token)
    except PersistenceError as exc:
        await websocket.close(code=1011, reason=exc.message)
        return
    if not principal:
        await websocket.close(code=4001, reason="Invalid token")
        return

    await websocket.accept()
    registry: SessionRegistry = websocket.app.state.registry
    connection = WebSocketConnection(websocket, principal)
    logger.info("User connected: %s (%s)", principal.name, connection.id)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            text = frame.get("text")
            if text is None:
                await connection.send(ServerEventType.ERROR.value, "Expected a text frame")
                continue
            try:
                message = json.loads(text)
            except ValueError:
                await connection.send(ServerEventType.ERROR.value, "Malformed JSON")
                continue
            await registry.dispatch(connection, message)
    except WebSocketDisconnect:
        pass
    finally:
        await registry.route_disconnect(connection.id)
        logger.info("User disconnected: %s (%s)", principal.name, connection.id)
