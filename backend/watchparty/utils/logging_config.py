"""
Structured Logging Configuration for the WatchParty backend

Uses loguru with:
- Human readable console output
- Optional file rotation with compression
- A separate websocket log for debugging sync traffic
- Interception of standard logging (uvicorn, fastapi)
"""

import sys
import logging
from pathlib import Path

from loguru import logger as loguru_logger

from watchparty.config import settings


class InterceptHandler(logging.Handler):
    """
    Intercept standard logging messages and redirect to Loguru.
    This allows compatibility with third-party libraries using standard logging.
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging() -> None:
    """
    Configure Loguru sinks.
    Call this once at application startup.
    """
    loguru_logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    loguru_logger.configure(extra={"name": "watchparty"})

    loguru_logger.add(
        sys.stdout,
        format=log_format,
        level=settings.LOG_LEVEL,
        colorize=True,
        backtrace=True,
        diagnose=settings.DEBUG,
    )

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(exist_ok=True)
        file_format = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{function}:{line} | {message}"

        loguru_logger.add(
            log_dir / "app.log",
            format=file_format,
            level="INFO",
            rotation="00:00",
            retention="30 days",
            compression="zip",
            backtrace=True,
            diagnose=settings.DEBUG,
            encoding="utf-8",
        )

        loguru_logger.add(
            log_dir / "error.log",
            format=file_format,
            level="ERROR",
            rotation="00:00",
            retention="90 days",
            compression="zip",
            backtrace=True,
            diagnose=True,
            encoding="utf-8",
        )

        # Playback sync and chat traffic
        loguru_logger.add(
            log_dir / "websocket.log",
            format=file_format,
            level="DEBUG",
            rotation="500 MB",
            retention="7 days",
            compression="zip",
            filter=lambda record: "websocket" in record["extra"].get("name", "").lower(),
            encoding="utf-8",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def get_logger(name: str):
    """
    Get a logger for a specific module.

    Usage:
        from watchparty.utils.logging_config import get_logger
        logger = get_logger(__name__)
    """
    return loguru_logger.bind(name=name)


fastapi_logger = loguru_logger.bind(name="fastapi")
websocket_logger = loguru_logger.bind(name="websocket")
room_logger = loguru_logger.bind(name="room")


__all__ = [
    "setup_logging",
    "get_logger",
    "loguru_logger",
    "fastapi_logger",
    "websocket_logger",
    "room_logger",
]
