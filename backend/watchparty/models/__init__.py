from watchparty.models.room import User, Room, ChatMessage

__all__ = ["User", "Room", "ChatMessage"]
