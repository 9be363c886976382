"""Application configuration."""

import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Notion
    notion_api_url: str = os.getenv("NOTION_API_URL", "https://api.notion.com/v1")
    notion_version: str = os.getenv("NOTION_VERSION", "2022-06-28")
    notion_timeout: float = float(os.getenv("NOTION_TIMEOUT", "10.0"))
    notion_token: Optional[str] = os.getenv("NOTION_TOKEN") or None

    # Day boundary ("night owl" rule: a day starts at 04:00 local time)
    timezone: str = os.getenv("TIMEZONE", "Asia/Seoul")
    day_cutoff_hour: int = int(os.getenv("DAY_CUTOFF_HOUR", "4"))

    # Routine player
    tick_interval: float = float(os.getenv("TICK_INTERVAL", "1.0"))
    mood_delay: float = float(os.getenv("MOOD_DELAY", "0.3"))
    session_ttl: float = float(os.getenv("SESSION_TTL", "3600"))

    # Storage
    config_db_path: str = os.getenv("CONFIG_DB_PATH", "data/widgets.db")
    static_dir: str = os.getenv("STATIC_DIR", "static")
    image_dir: str = os.getenv("IMAGE_DIR", "static/images")

    # Server
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False


settings = Settings()
