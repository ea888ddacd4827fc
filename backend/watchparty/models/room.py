import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class User:
    """A room member, bound to one WebSocket connection."""
    username: str
    connection_id: str
    is_host: bool = False
    id: str = field(default_factory=new_id)
    joined_at: datetime = field(default_factory=utcnow)


@dataclass
class Room:
    """A shared viewing session."""
    name: str
    host_id: str
    video_url: Optional[str] = None
    id: str = field(default_factory=new_id)
    users: Dict[str, User] = field(default_factory=dict)  # join order
    current_time: float = 0.0
    is_playing: bool = False
    playback_seq: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def user_count(self) -> int:
        return len(self.users)

    @property
    def is_empty(self) -> bool:
        return not self.users

    @property
    def host(self) -> Optional[User]:
        return self.users.get(self.host_id)

    def touch(self):
        self.updated_at = utcnow()

    def set_playback(self, current_time: float, is_playing: bool):
        """Position, play flag and updated_at only ever change together."""
        self.current_time = current_time
        self.is_playing = is_playing
        self.touch()


@dataclass(frozen=True)
class ChatMessage:
    user_id: str
    username: str
    message: str
    room_id: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)
