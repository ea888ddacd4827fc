from typing import Dict, Optional, Tuple
from watchparty.models.room import Room, User
from watchparty.utils.logging_config import room_logger


def is_room_host(room: Room, user_id: str) -> bool:
    """Single authorization guard for every host-only operation."""
    user = room.users.get(user_id)
    return user is not None and user.is_host and room.host_id == user_id


class RoomRegistry:
    """
    In-memory store of active rooms and their members.

    A room exists exactly as long as it has members. Every membership is
    also indexed by connection id so inbound events resolve in O(1).
    """

    def __init__(self):
        self.rooms: Dict[str, Room] = {}
        # connection_id -> (room_id, user_id)
        self.connections: Dict[str, Tuple[str, str]] = {}

    def create_room(
        self,
        room_name: str,
        username: str,
        video_url: Optional[str],
        connection_id: str,
    ) -> Room:
        host = User(username=username, connection_id=connection_id, is_host=True)
        room = Room(name=room_name, host_id=host.id, video_url=video_url)
        room.users[host.id] = host

        self.rooms[room.id] = room
        self.connections[connection_id] = (room.id, host.id)

        room_logger.info(
            "Room created",
            extra={
                "room_id": room.id,
                "room_name": room.name,
                "host_id": host.id,
                "host_username": host.username,
            }
        )
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def list_rooms(self) -> list[Room]:
        return list(self.rooms.values())

    def delete_room(self, room_id: str) -> bool:
        room = self.rooms.pop(room_id, None)
        if room is None:
            return False
        for user in room.users.values():
            self.connections.pop(user.connection_id, None)

        room_logger.info("Room deleted", extra={"room_id": room_id, "room_name": room.name})
        return True

    def join_room(
        self, room_id: str, username: str, connection_id: str
    ) -> Optional[Tuple[Room, User]]:
        room = self.rooms.get(room_id)
        if room is None:
            room_logger.debug("Join for unknown room", extra={"room_id": room_id})
            return None

        user = User(username=username, connection_id=connection_id)
        room.users[user.id] = user
        room.touch()
        self.connections[connection_id] = (room.id, user.id)

        room_logger.info(
            "User joined room",
            extra={
                "room_id": room.id,
                "user_id": user.id,
                "username": user.username,
                "room_participants": room.user_count,
            }
        )
        return room, user

    def leave_room(self, room_id: str, user_id: str) -> Optional[Room]:
        """
        Remove a member.

        Returns the surviving room, or None when the room is unknown or the
        departure emptied (and therefore deleted) it. A departing host hands
        over to the earliest joiner still present.
        """
        room = self.rooms.get(room_id)
        if room is None:
            return None

        user = room.users.pop(user_id, None)
        if user is None:
            return room
        if self.connections.get(user.connection_id) == (room_id, user_id):
            del self.connections[user.connection_id]

        if room.is_empty:
            self.delete_room(room_id)
            return None

        if room.host_id == user_id:
            new_host = next(iter(room.users.values()))
            new_host.is_host = True
            room.host_id = new_host.id
            # The new host numbers its updates from scratch
            room.playback_seq = 0
            room_logger.info(
                "Host transferred",
                extra={"room_id": room_id, "old_host_id": user_id, "new_host_id": new_host.id}
            )

        room.touch()
        room_logger.info(
            "User left room",
            extra={"room_id": room_id, "user_id": user_id, "room_participants": room.user_count}
        )
        return room

    def find_by_connection(self, connection_id: str) -> Optional[Tuple[Room, User]]:
        entry = self.connections.get(connection_id)
        if entry is None:
            return None
        room_id, user_id = entry
        room = self.rooms.get(room_id)
        if room is None or user_id not in room.users:
            return None
        return room, room.users[user_id]
