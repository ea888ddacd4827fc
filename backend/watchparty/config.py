from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pydantic import field_validator
import sys


class Settings(BaseSettings):
    # App
    APP_NAME: str = "WatchParty"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Logging
    LOG_LEVEL: str = "INFO"  # TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Chat
    CHAT_HISTORY_LIMIT: int = 100
    CHAT_HISTORY_DEFAULT: int = 50
    JOIN_BACKLOG_LIMIT: int = 20

    # Host-only events from non-hosts are dropped unless this is set
    REPORT_UNAUTHORIZED: bool = False

    # WebSocket rate limits
    WS_RATE_LIMIT_ENABLED: bool = True
    WS_CHAT_LIMIT: int = 60  # messages per window
    WS_CHAT_BURST: int = 10  # messages per second
    WS_SYNC_LIMIT: int = 600
    WS_SYNC_BURST: int = 30
    WS_RATE_WINDOW: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("CHAT_HISTORY_LIMIT")
    @classmethod
    def validate_chat_history_limit(cls, v: int) -> int:
        """The chat log must keep at least one message."""
        if v < 1:
            raise ValueError("CHAT_HISTORY_LIMIT must be at least 1")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    def get_cors_origins(self) -> list[str]:
        return self.CORS_ORIGINS


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Exits the process if configuration is invalid.
    """
    try:
        return Settings()
    except Exception as e:
        print(f"\n{'='*70}")
        print(f"CONFIGURATION ERROR: {e}")
        print(f"{'='*70}\n")
        sys.exit(1)


settings = get_settings()
