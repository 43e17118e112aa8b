"""Runtime settings read from environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

DEFAULT_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"


class Settings(BaseModel):
    calendar_api_base_url: str = DEFAULT_CALENDAR_API_BASE_URL
    calendar_id: str = "primary"
    calendar_timeout_seconds: float = Field(default=5.0, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            calendar_api_base_url=os.getenv(
                "CALENDAR_API_BASE_URL", DEFAULT_CALENDAR_API_BASE_URL
            ),
            calendar_id=os.getenv("CALENDAR_ID", "primary"),
            calendar_timeout_seconds=float(
                os.getenv("CALENDAR_TIMEOUT_SECONDS", "5.0")
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
