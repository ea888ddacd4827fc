from typing import Optional
from watchparty.services.room_service import RoomRegistry
from watchparty.utils.logging_config import room_logger


class PlaybackSynchronizer:
    """
    Applies host playback changes to a room.

    Callers authorize first (see is_room_host). When a sequence number is
    supplied it must be greater than the last one applied to the room;
    updates without one are last-writer-wins.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def apply_playback_update(
        self,
        room_id: str,
        current_time: float,
        is_playing: bool,
        sequence: Optional[int] = None,
    ) -> bool:
        room = self.registry.get_room(room_id)
        if room is None:
            return False
        if sequence is not None:
            if sequence <= room.playback_seq:
                room_logger.debug(
                    "Stale playback update ignored",
                    extra={"room_id": room_id, "seq": sequence, "last_seq": room.playback_seq}
                )
                return False
            room.playback_seq = sequence

        room.set_playback(current_time, is_playing)
        return True

    def set_video_source(self, room_id: str, url: str, sequence: Optional[int] = None) -> bool:
        """Replace the video; playback always restarts from 0, paused."""
        room = self.registry.get_room(room_id)
        if room is None:
            return False
        if sequence is not None:
            if sequence <= room.playback_seq:
                return False
            room.playback_seq = sequence

        room.video_url = url
        room.set_playback(0.0, False)

        room_logger.info("Video source changed", extra={"room_id": room_id, "video_url": url})
        return True
