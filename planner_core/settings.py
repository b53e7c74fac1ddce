"""Runtime configuration resolved from environment variables."""
from __future__ import annotations

import calendar
import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass
class Settings:
    """Planner settings.

    Every field can be overridden through a ``PLANNER_*`` environment variable.
    """

    store_url: str = "http://localhost:8004"
    owner_id: str = "demo-user"
    countdown_refresh_seconds: float = 60.0
    week_starts_on: int = calendar.SUNDAY
    log_level: str = "INFO"
    http_timeout: float = 30.0

    def __post_init__(self) -> None:
        env_store_url = os.getenv("PLANNER_STORE_URL")
        env_owner_id = os.getenv("PLANNER_OWNER_ID")
        env_refresh = os.getenv("PLANNER_COUNTDOWN_REFRESH")
        env_week_start = os.getenv("PLANNER_WEEK_STARTS_ON")
        env_log_level = os.getenv("PLANNER_LOG_LEVEL")
        env_timeout = os.getenv("PLANNER_HTTP_TIMEOUT")
        if env_store_url:
            self.store_url = env_store_url.rstrip("/")
        if env_owner_id:
            self.owner_id = env_owner_id
        if env_refresh:
            self.countdown_refresh_seconds = float(env_refresh)
        if env_week_start:
            self.week_starts_on = _parse_weekday(env_week_start)
        if env_log_level:
            self.log_level = env_log_level.upper()
        if env_timeout:
            self.http_timeout = float(env_timeout)


def _parse_weekday(value: str) -> int:
    """Accept either a weekday name ("sunday") or a number (Monday=0 .. Sunday=6)."""
    value = value.strip()
    if value.isdigit():
        day = int(value)
    else:
        names = [name.lower() for name in calendar.day_name]
        if value.lower() not in names:
            raise ValueError(f"Unknown weekday for PLANNER_WEEK_STARTS_ON: {value!r}")
        day = names.index(value.lower())
    if not 0 <= day <= 6:
        raise ValueError(f"PLANNER_WEEK_STARTS_ON must be between 0 and 6, got {day}")
    return day


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
