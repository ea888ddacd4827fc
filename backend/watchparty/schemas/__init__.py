from watchparty.schemas.room import (
    CreateRoomRequest, JoinRoomRequest, VideoSyncRequest, SetVideoRequest, ChatMessageRequest,
    UserResponse, RoomStateResponse, RoomSnapshotResponse, RoomSummaryResponse,
    RoomDetailResponse, ChatMessageResponse,
)

__all__ = [
    "CreateRoomRequest", "JoinRoomRequest", "VideoSyncRequest", "SetVideoRequest", "ChatMessageRequest",
    "UserResponse", "RoomStateResponse", "RoomSnapshotResponse", "RoomSummaryResponse",
    "RoomDetailResponse", "ChatMessageResponse",
]
