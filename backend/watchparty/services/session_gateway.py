"""
Session Gateway

Maps every inbound WebSocket event to one handler taking
(connection_id, payload) and returning a GatewayResult: the emissions to
deliver (event, payload, target) plus subscription changes, or the error
that stopped the event. The gateway never touches a socket; the transport
in routers/websocket.py dispatches what it returns.

Handlers are synchronous and run to completion, so on a single event loop
each room sees exactly one mutation at a time.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from watchparty.config import settings
from watchparty.error_handlers import validation_errors
from watchparty.exceptions import (
    AppException,
    NotInRoomException,
    NotRoomHostException,
    RoomNotFoundException,
    StaleUpdateException,
    WebSocketInvalidMessageException,
    WebSocketUnknownEventException,
)
from watchparty.models.room import Room, User
from watchparty.schemas.room import (
    ChatMessageRequest,
    ChatMessageResponse,
    CreateRoomRequest,
    JoinRoomRequest,
    RoomSnapshotResponse,
    RoomStateResponse,
    SetVideoRequest,
    UserResponse,
    VideoSyncRequest,
)
from watchparty.services.chat_service import ChatHistoryStore
from watchparty.services.playback_service import PlaybackSynchronizer
from watchparty.services.room_service import RoomRegistry, is_room_host
from watchparty.utils.logging_config import websocket_logger


class Target(str, Enum):
    REQUESTER = "requester"
    ROOM_OTHERS = "room-others"
    ROOM_ALL = "room"


@dataclass
class Emission:
    event: str
    payload: Dict[str, Any]
    target: Target
    room_id: Optional[str] = None


@dataclass
class GatewayResult:
    emissions: list[Emission] = field(default_factory=list)
    subscribe: Optional[str] = None
    unsubscribe: Optional[str] = None
    error: Optional[AppException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def emit(self, event: str, payload: Dict[str, Any], target: Target, room_id: Optional[str] = None):
        self.emissions.append(Emission(event, payload, target, room_id))

    def events(self, target: Optional[Target] = None) -> list[str]:
        return [e.event for e in self.emissions if target is None or e.target == target]


# Generic replies for unexpected faults; other events only log them
FAILURE_MESSAGES = {
    "create-room": "Failed to create room",
    "join-room": "Failed to join room",
}


def dump(schema: Type[BaseModel], obj: Any) -> Dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json", by_alias=True)


class SessionGateway:
    def __init__(
        self,
        registry: RoomRegistry,
        chat: ChatHistoryStore,
        report_unauthorized: bool = None,
        join_backlog: int = None,
    ):
        self.registry = registry
        self.chat = chat
        self.playback = PlaybackSynchronizer(registry)
        self.report_unauthorized = (
            settings.REPORT_UNAUTHORIZED if report_unauthorized is None else report_unauthorized
        )
        self.join_backlog = settings.JOIN_BACKLOG_LIMIT if join_backlog is None else join_backlog
        self._handlers: Dict[str, Callable[[str, Any], GatewayResult]] = {
            "create-room": self.create_room,
            "join-room": self.join_room,
            "video-sync": self.video_sync,
            "set-video": self.set_video,
            "chat-message": self.chat_message,
            "ping": self.ping,
        }

    # ==================== Dispatch ====================

    def handle(self, connection_id: str, event_type: Optional[str], payload: Any) -> GatewayResult:
        handler = self._handlers.get(event_type)
        try:
            if handler is None:
                raise WebSocketUnknownEventException(event_type)
            return handler(connection_id, payload)
        except AppException as exc:
            return self._rejected(connection_id, event_type, exc)
        except Exception as exc:
            websocket_logger.exception(
                "Unexpected error while handling event",
                extra={"connection_id": connection_id, "msg_type": event_type}
            )
            message = FAILURE_MESSAGES.get(event_type)
            if message is None:
                return GatewayResult(error=AppException(str(exc)))
            failure = AppException(message)
            result = GatewayResult(error=failure)
            result.emit("error", failure.to_dict(), Target.REQUESTER)
            return result

    def disconnect(self, connection_id: str) -> GatewayResult:
        result = GatewayResult()
        self._leave_current(connection_id, result)
        return result

    def _rejected(self, connection_id: str, event_type: Optional[str], exc: AppException) -> GatewayResult:
        result = GatewayResult(error=exc)
        reported = not exc.silent or (
            isinstance(exc, NotRoomHostException) and self.report_unauthorized
        )
        websocket_logger.warning(
            "Event rejected" if reported else "Event dropped",
            extra={
                "connection_id": connection_id,
                "msg_type": event_type,
                "error": exc.code.value,
            }
        )
        if reported:
            result.emit("error", exc.to_dict(), Target.REQUESTER)
        return result

    # ==================== Helpers ====================

    @staticmethod
    def _parse(schema: Type[BaseModel], payload: Any):
        try:
            return schema.model_validate(payload)
        except ValidationError as e:
            raise WebSocketInvalidMessageException(
                "validation failed",
                {"validation_errors": validation_errors(e.errors())},
            )

    @staticmethod
    def _room_hint(payload: Any) -> Any:
        if not isinstance(payload, dict):
            return None
        return payload.get("roomId", payload.get("room_id"))

    def _resolve(self, connection_id: str, room_id: Any) -> tuple[Room, User]:
        found = self.registry.find_by_connection(connection_id)
        if found is None:
            raise NotInRoomException()
        room, user = found
        if room_id and room_id != room.id:
            raise NotInRoomException("Event addressed to a room you are not in")
        return room, user

    @staticmethod
    def _require_host(room: Room, user: User):
        if not is_room_host(room, user.id):
            raise NotRoomHostException()

    def _leave_current(self, connection_id: str, result: GatewayResult):
        found = self.registry.find_by_connection(connection_id)
        if found is None:
            return
        room, user = found
        room_id = room.id
        was_host = room.host_id == user.id

        survivor = self.registry.leave_room(room_id, user.id)
        result.unsubscribe = room_id
        if survivor is None:
            self.chat.clear(room_id)
            return

        result.emit(
            "user-left",
            {
                "userId": user.id,
                "username": user.username,
                "newHostId": survivor.host_id if was_host else None,
            },
            Target.ROOM_OTHERS,
            room_id,
        )

    # ==================== Handlers ====================

    def create_room(self, connection_id: str, payload: Any) -> GatewayResult:
        data = self._parse(CreateRoomRequest, payload)
        result = GatewayResult()
        self._leave_current(connection_id, result)

        room = self.registry.create_room(data.room_name, data.username, data.video_url, connection_id)
        result.subscribe = room.id
        result.emit(
            "room-created",
            {"room": dump(RoomStateResponse, room), "user": dump(UserResponse, room.host)},
            Target.REQUESTER,
        )
        return result

    def join_room(self, connection_id: str, payload: Any) -> GatewayResult:
        data = self._parse(JoinRoomRequest, payload)
        if self.registry.get_room(data.room_id) is None:
            raise RoomNotFoundException(room_id=data.room_id)

        result = GatewayResult()
        current = self.registry.find_by_connection(connection_id)
        if current is not None and current[0].id == data.room_id:
            # Already a member: replay the snapshot only
            room, user = current
        else:
            self._leave_current(connection_id, result)
            joined = self.registry.join_room(data.room_id, data.username, connection_id)
            if joined is None:
                raise RoomNotFoundException(room_id=data.room_id)
            room, user = joined
            result.emit("user-joined", {"user": dump(UserResponse, user)}, Target.ROOM_OTHERS, room.id)

        result.subscribe = room.id
        result.emit(
            "room-joined",
            {"room": dump(RoomSnapshotResponse, room), "user": dump(UserResponse, user)},
            Target.REQUESTER,
        )
        backlog = self.chat.recent_messages(room.id, self.join_backlog)
        result.emit(
            "chat-history",
            {"messages": [dump(ChatMessageResponse, m) for m in backlog]},
            Target.REQUESTER,
        )
        return result

    def video_sync(self, connection_id: str, payload: Any) -> GatewayResult:
        room, user = self._resolve(connection_id, self._room_hint(payload))
        self._require_host(room, user)
        data = self._parse(VideoSyncRequest, payload)

        if not self.playback.apply_playback_update(room.id, data.current_time, data.is_playing, data.seq):
            raise StaleUpdateException(data.seq, room.playback_seq)

        result = GatewayResult()
        result.emit(
            "video-state-changed",
            {"currentTime": room.current_time, "isPlaying": room.is_playing, "userId": user.id},
            Target.ROOM_OTHERS,
            room.id,
        )
        return result

    def set_video(self, connection_id: str, payload: Any) -> GatewayResult:
        room, user = self._resolve(connection_id, self._room_hint(payload))
        self._require_host(room, user)
        data = self._parse(SetVideoRequest, payload)

        if not self.playback.set_video_source(room.id, data.video_url, data.seq):
            raise StaleUpdateException(data.seq, room.playback_seq)

        result = GatewayResult()
        result.emit(
            "video-changed",
            {
                "videoUrl": room.video_url,
                "currentTime": room.current_time,
                "isPlaying": room.is_playing,
                "userId": user.id,
            },
            Target.ROOM_ALL,
            room.id,
        )
        return result

    def chat_message(self, connection_id: str, payload: Any) -> GatewayResult:
        room, user = self._resolve(connection_id, self._room_hint(payload))
        data = self._parse(ChatMessageRequest, payload)

        message = self.chat.append_message(room.id, user.id, user.username, data.message)
        result = GatewayResult()
        result.emit("chat-message", dump(ChatMessageResponse, message), Target.ROOM_ALL, room.id)
        return result

    def ping(self, connection_id: str, payload: Any) -> GatewayResult:
        result = GatewayResult()
        result.emit("pong", {}, Target.REQUESTER)
        return result
