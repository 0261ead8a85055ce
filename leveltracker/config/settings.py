"""Application settings and configuration"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Level Tracker"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Battle.net OAuth client credentials
    BNET_CLIENT_ID: Optional[str] = None
    BNET_CLIENT_SECRET: Optional[str] = None

    # Battle.net client resilience controls
    BNET_TIMEOUT_SECONDS: float = 30.0
    BNET_MAX_RETRIES: int = 3
    BNET_BACKOFF_BASE_SECONDS: float = 1.0
    BNET_BACKOFF_MAX_SECONDS: float = 16.0
    USER_AGENT: str = "LevelTracker/1.0"

    # Input and output documents
    TRACKER_CONFIG_PATH: str = "characters.json"
    SNAPSHOT_PATH: str = "docs/levels.json"
    DAILY_HISTORY_PATH: str = "docs/level-history.json"
    XP_HISTORY_PATH: str = "docs/xp-history.json"

    # History retention
    DAILY_RETENTION_DAYS: int = 90
    XP_RETENTION_DAYS: int = 10  # must exceed the sparkline window
    XP_COALESCE_SECONDS: int = 60

    # Derived metrics
    LEVEL_DELTA_WINDOW_DAYS: int = 7
    SPARKLINE_WINDOW_DAYS: int = 7
    SPARKLINE_BINS: int = 56

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env


settings = Settings()
