import json
import uuid
from typing import Dict, Set
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from watchparty.error_handlers import log_send_failure, send_error_frame
from watchparty.exceptions import ErrorCode, WebSocketInvalidMessageException
from watchparty.services.session_gateway import GatewayResult, SessionGateway, Target
from watchparty.utils.logging_config import websocket_logger
from watchparty.utils.rate_limit import FrameRateLimiter

router = APIRouter(tags=["WebSocket"])


class ConnectionManager:
    """Tracks open sockets and their room subscriptions, and delivers gateway emissions."""

    def __init__(self):
        # connection_id -> WebSocket
        self.connections: Dict[str, WebSocket] = {}
        # room_id -> {connection_id}
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.connections[connection_id] = websocket
        websocket_logger.info(
            "Client connected",
            extra={"connection_id": connection_id, "connections": len(self.connections)}
        )
        return connection_id

    def disconnect(self, connection_id: str):
        self.connections.pop(connection_id, None)
        for room_id in [r for r, members in self.rooms.items() if connection_id in members]:
            self.unsubscribe(room_id, connection_id)
        websocket_logger.info("Client disconnected", extra={"connection_id": connection_id})

    def subscribe(self, room_id: str, connection_id: str):
        self.rooms.setdefault(room_id, set()).add(connection_id)

    def unsubscribe(self, room_id: str, connection_id: str):
        members = self.rooms.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room_id]

    async def send_personal(self, connection_id: str, message: dict):
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            log_send_failure(
                e,
                connection_id=connection_id,
                message_type=message.get("type", "send_personal")
            )

    async def broadcast_to_room(self, room_id: str, message: dict, exclude: str = None):
        """Send to every subscriber of the room, logging the ones that fail"""
        failed = []
        for connection_id in list(self.rooms.get(room_id, ())):
            if connection_id == exclude:
                continue
            websocket = self.connections.get(connection_id)
            if websocket is None:
                continue
            try:
                await websocket.send_json(message)
            except Exception as e:
                failed.append(connection_id)
                log_send_failure(
                    e,
                    connection_id=connection_id,
                    room_id=room_id,
                    message_type=message.get("type", "broadcast")
                )

        if failed:
            websocket_logger.warning(
                "Failed to send message to some connections in room",
                extra={"room_id": room_id, "failed_count": len(failed)}
            )

    async def dispatch(self, connection_id: str, result: GatewayResult):
        """Apply subscription changes, then deliver each emission to its target."""
        if result.unsubscribe:
            self.unsubscribe(result.unsubscribe, connection_id)
        if result.subscribe:
            self.subscribe(result.subscribe, connection_id)

        for emission in result.emissions:
            message = {"type": emission.event, **emission.payload}
            if emission.target == Target.REQUESTER:
                await self.send_personal(connection_id, message)
            elif emission.target == Target.ROOM_OTHERS:
                await self.broadcast_to_room(emission.room_id, message, exclude=connection_id)
            else:
                await self.broadcast_to_room(emission.room_id, message)


@router.websocket("/ws")
async def websocket_session(websocket: WebSocket):
    """
    WebSocket endpoint for a watch party session.
    Handles: room create/join, playback sync, video changes, chat
    """
    manager: ConnectionManager = websocket.app.state.connection_manager
    gateway: SessionGateway = websocket.app.state.gateway
    limiter: FrameRateLimiter = websocket.app.state.rate_limiter

    connection_id = await manager.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            if not isinstance(data, dict):
                await send_error_frame(websocket, WebSocketInvalidMessageException("frames must be JSON objects"))
                continue

            msg_type = data.get("type")
            if not isinstance(msg_type, str):
                msg_type = None
            is_allowed, error_msg = limiter.check(connection_id, msg_type)
            if not is_allowed:
                await manager.send_personal(connection_id, {
                    "type": "rate-limit-exceeded",
                    "error": ErrorCode.WS_RATE_LIMITED.value,
                    "message": error_msg or "Rate limit exceeded"
                })
                continue

            websocket_logger.debug(
                "WebSocket message received",
                extra={"connection_id": connection_id, "msg_type": msg_type}
            )
            result = gateway.handle(connection_id, msg_type, data)
            await manager.dispatch(connection_id, result)

    except WebSocketDisconnect:
        websocket_logger.info("WebSocket disconnected", extra={"connection_id": connection_id})
    except Exception as e:
        websocket_logger.error(
            "WebSocket error",
            extra={
                "connection_id": connection_id,
                "error": str(e),
                "error_type": type(e).__name__
            }
        )
    finally:
        result = gateway.disconnect(connection_id)
        manager.disconnect(connection_id)
        limiter.cleanup(connection_id)
        await manager.dispatch(connection_id, result)
