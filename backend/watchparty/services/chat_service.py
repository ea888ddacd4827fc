from collections import deque
from typing import Deque, Dict
from watchparty.config import settings
from watchparty.models.room import ChatMessage
from watchparty.utils.logging_config import get_logger

logger = get_logger(__name__)


class ChatHistoryStore:
    """Per-room chat log; the oldest message is evicted once the cap is hit."""

    def __init__(self, max_messages: int = None):
        self.max_messages = max_messages or settings.CHAT_HISTORY_LIMIT
        self.messages: Dict[str, Deque[ChatMessage]] = {}

    def append_message(self, room_id: str, user_id: str, username: str, text: str) -> ChatMessage:
        message = ChatMessage(user_id=user_id, username=username, message=text, room_id=room_id)
        log = self.messages.setdefault(room_id, deque(maxlen=self.max_messages))
        log.append(message)
        return message

    def recent_messages(self, room_id: str, limit: int = None) -> list[ChatMessage]:
        """Up to `limit` most recent messages, oldest first."""
        if limit is None:
            limit = settings.CHAT_HISTORY_DEFAULT
        if limit <= 0:
            return []
        log = self.messages.get(room_id)
        if not log:
            return []
        return list(log)[-limit:]

    def clear(self, room_id: str):
        dropped = self.messages.pop(room_id, None)
        if dropped:
            logger.debug("Chat history cleared", extra={"room_id": room_id, "messages": len(dropped)})
