from datetime import datetime
from typing import Annotated, Optional
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase field names."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Names and URLs are trimmed; chat bodies are kept exactly as sent
RoomName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]
VideoUrl = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2048)]


# ==================== Inbound events ====================

class CreateRoomRequest(CamelModel):
    room_name: RoomName
    username: Username
    video_url: Optional[VideoUrl] = None

    @field_validator("video_url")
    @classmethod
    def empty_url_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class JoinRoomRequest(CamelModel):
    room_id: str = Field(..., min_length=1)
    username: Username


class VideoSyncRequest(CamelModel):
    room_id: Optional[str] = None
    current_time: float = Field(..., ge=0)
    is_playing: bool
    seq: Optional[int] = Field(default=None, ge=1)


class SetVideoRequest(CamelModel):
    room_id: Optional[str] = None
    video_url: Annotated[VideoUrl, StringConstraints(min_length=1)]
    seq: Optional[int] = Field(default=None, ge=1)


class ChatMessageRequest(CamelModel):
    room_id: Optional[str] = None
    message: str = Field(..., min_length=1, max_length=2000)


# ==================== Outbound payloads ====================

class UserResponse(CamelModel):
    id: str
    username: str
    is_host: bool
    joined_at: datetime


class RoomStateResponse(CamelModel):
    id: str
    name: str
    host_id: str
    video_url: Optional[str] = None
    current_time: float
    is_playing: bool


class RoomSnapshotResponse(RoomStateResponse):
    users: list[UserResponse] = []

    @field_validator("users", mode="before")
    @classmethod
    def users_in_join_order(cls, v):
        if isinstance(v, dict):
            return list(v.values())
        return v


class RoomSummaryResponse(CamelModel):
    id: str
    name: str
    user_count: int
    video_url: Optional[str] = None
    is_playing: bool
    created_at: datetime


class RoomDetailResponse(RoomSnapshotResponse):
    user_count: int
    created_at: datetime


class ChatMessageResponse(CamelModel):
    id: str
    user_id: str
    username: str
    message: str
    timestamp: datetime
    room_id: str
