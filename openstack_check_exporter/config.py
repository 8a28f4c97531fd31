from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "CHECK_EXPORTER_",
        "extra": "ignore",
    }

    # Check options cascade (see checker/options.py)
    settings_file: str = "settings.yaml"

    # clouds.yaml entry; empty = use OS_* environment variables
    cloud: str = ""

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Results kept for the history view
    history_max_count: int = 1000

    # Logging
    log_level: str = "WARNING"


settings = Settings()
