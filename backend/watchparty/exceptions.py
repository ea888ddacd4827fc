"""
Custom Exception Classes for WatchParty

Every exception represents one specific failure and carries an error code,
so HTTP responses and WebSocket error frames stay consistent.
"""

from typing import Any, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for consistent error responses"""

    # Room & Membership (ROOM_xxx)
    ROOM_NOT_FOUND = "ROOM_001"
    NOT_ROOM_HOST = "ROOM_005"
    NOT_IN_ROOM = "ROOM_007"
    STALE_UPDATE = "ROOM_010"

    # WebSocket (WS_xxx)
    WS_INVALID_MESSAGE = "WS_002"
    WS_UNKNOWN_EVENT = "WS_006"
    WS_RATE_LIMITED = "WS_007"

    # Validation (VAL_xxx)
    VALIDATION_ERROR = "VAL_001"

    # General (GEN_xxx)
    NOT_FOUND = "GEN_004"
    INTERNAL_SERVER_ERROR = "GEN_001"


class AppException(Exception):
    """
    Base exception class for all application errors.

    Attributes:
        message: Message shown to the user
        code: Error code (ErrorCode enum)
        status_code: HTTP status code
        details: Extra error details (optional)
        silent: When True the gateway drops the event instead of replying
    """

    silent = False

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to an error frame payload"""
        result = {
            "error": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ==================== Room Exceptions ====================

class RoomException(AppException):
    """Generic room error"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.ROOM_NOT_FOUND,
        status_code: int = 404,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, status_code, details)


class RoomNotFoundException(RoomException):
    """Room id is unknown"""

    def __init__(self, message: str = "Room not found", room_id: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.ROOM_NOT_FOUND,
            404,
            {"room_id": room_id} if room_id else None,
        )


class NotRoomHostException(RoomException):
    """Acting user is not the room host"""

    silent = True

    def __init__(self, message: str = "Only the host can do that"):
        super().__init__(message, ErrorCode.NOT_ROOM_HOST, 403)


class NotInRoomException(RoomException):
    """Connection has no room membership (e.g. racing a disconnect)"""

    silent = True

    def __init__(self, message: str = "You are not in a room"):
        super().__init__(message, ErrorCode.NOT_IN_ROOM, 400)


class StaleUpdateException(RoomException):
    """Host update carries a sequence number already superseded"""

    silent = True

    def __init__(self, sequence: int, last_applied: int):
        super().__init__(
            "Playback update is out of date",
            ErrorCode.STALE_UPDATE,
            409,
            {"seq": sequence, "last_seq": last_applied},
        )


# ==================== WebSocket Exceptions ====================

class WebSocketException(AppException):
    """Generic WebSocket error"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.WS_INVALID_MESSAGE,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, 1000, details)


class WebSocketInvalidMessageException(WebSocketException):
    """Frame could not be parsed or its payload is invalid"""

    def __init__(self, reason: str = "Invalid message format", details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Invalid message: {reason}",
            ErrorCode.WS_INVALID_MESSAGE,
            {"reason": reason, **(details or {})},
        )


class WebSocketUnknownEventException(WebSocketException):
    """Frame type has no handler"""

    def __init__(self, event_type: Optional[str]):
        super().__init__(
            f"Unknown event: {event_type}",
            ErrorCode.WS_UNKNOWN_EVENT,
            {"type": event_type},
        )

