from watchparty.utils.rate_limit import WebSocketRateLimiter, FrameRateLimiter

__all__ = ["WebSocketRateLimiter", "FrameRateLimiter"]
