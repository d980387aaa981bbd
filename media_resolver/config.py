from __future__ import annotations

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.environ.get("ENV_FILE", ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Endpoints
    web_origin: str = "https://www.instagram.com"
    private_api_origin: str = "https://i.instagram.com"
    app_id: str = "936619743392459"
    graphql_query_hash: str = "b3055c01b4b222b8a47dc12b090e4e64"

    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )

    # None leaves requests without an explicit deadline
    request_timeout_seconds: float | None = None

    # Width substituted into story image URLs carrying a smaller size suffix
    high_res_width: int = Field(default=1080, gt=0)

    # Logging
    log_level: str = "INFO"

    # Debug mode promotes per-step trace events to info level
    debug_mode: bool = False


settings = Settings()
