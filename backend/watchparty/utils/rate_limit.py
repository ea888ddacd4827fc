"""
In-memory rate limiting for WebSocket frames.
Limits are tracked per connection id, with separate budgets per traffic kind.
"""
import time
from typing import Optional

from watchparty.config import settings


class WebSocketRateLimiter:
    """
    Sliding window + burst limiter.
    Limits messages per connection within a time window.
    """

    def __init__(
        self,
        message_limit: int = 60,
        window_seconds: int = 60,
        burst_limit: int = 10,
        burst_window: int = 1
    ):
        """
        Args:
            message_limit: Max messages per window
            window_seconds: Time window in seconds
            burst_limit: Max messages in burst window
            burst_window: Burst window in seconds
        """
        self.message_limit = message_limit
        self.window = window_seconds
        self.burst_limit = burst_limit
        self.burst_window = burst_window
        # {connection_id: {"messages": [timestamps], "burst_start": ts, "burst_count": n}}
        self.connections: dict = {}

    def check_rate_limit(self, connection_id: str) -> tuple[bool, Optional[str]]:
        """
        Check if a frame from this connection is allowed.

        Returns:
            Tuple of (is_allowed, error_message)
        """
        now = time.monotonic()

        if connection_id not in self.connections:
            self.connections[connection_id] = {
                "messages": [],
                "burst_start": now,
                "burst_count": 0
            }

        conn_data = self.connections[connection_id]

        conn_data["messages"] = [
            ts for ts in conn_data["messages"]
            if now - ts < self.window
        ]

        if len(conn_data["messages"]) >= self.message_limit:
            return False, f"Rate limit exceeded: max {self.message_limit} messages per {self.window} seconds"

        if now - conn_data["burst_start"] > self.burst_window:
            conn_data["burst_start"] = now
            conn_data["burst_count"] = 0

        if conn_data["burst_count"] >= self.burst_limit:
            return False, f"Too many messages: max {self.burst_limit} messages per {self.burst_window} seconds"

        conn_data["messages"].append(now)
        conn_data["burst_count"] += 1

        return True, None

    def cleanup(self, connection_id: str = None):
        """Remove connection from tracking."""
        if connection_id and connection_id in self.connections:
            del self.connections[connection_id]


class FrameRateLimiter:
    """Routes each event type to the limiter for its traffic kind."""

    CHAT_EVENTS = frozenset({"chat-message"})
    SYNC_EVENTS = frozenset({"video-sync", "set-video"})

    def __init__(self, enabled: bool = None):
        self.enabled = settings.WS_RATE_LIMIT_ENABLED if enabled is None else enabled
        self.chat = WebSocketRateLimiter(
            message_limit=settings.WS_CHAT_LIMIT,
            window_seconds=settings.WS_RATE_WINDOW,
            burst_limit=settings.WS_CHAT_BURST,
        )
        self.sync = WebSocketRateLimiter(
            message_limit=settings.WS_SYNC_LIMIT,
            window_seconds=settings.WS_RATE_WINDOW,
            burst_limit=settings.WS_SYNC_BURST,
        )
        self.default = WebSocketRateLimiter(
            message_limit=120,
            window_seconds=settings.WS_RATE_WINDOW,
            burst_limit=20,
        )

    def check(self, connection_id: str, event_type: str) -> tuple[bool, Optional[str]]:
        if not self.enabled:
            return True, None
        if event_type in self.CHAT_EVENTS:
            return self.chat.check_rate_limit(connection_id)
        if event_type in self.SYNC_EVENTS:
            return self.sync.check_rate_limit(connection_id)
        return self.default.check_rate_limit(connection_id)

    def cleanup(self, connection_id: str):
        """Clean up rate limit tracking for a connection."""
        self.chat.cleanup(connection_id)
        self.sync.cleanup(connection_id)
        self.default.cleanup(connection_id)
