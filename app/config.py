"""
app/config.py

Application-level configuration for the API process and scheduler.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_optional_str_env(name: str) -> str | None:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_list_env(name: str) -> tuple[str, ...]:
    raw = _get_optional_str_env(name) or ""
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class ApiSettings:
    """
    Settings for the HTTP trigger and read surfaces.

    An unset crawl token disables authorization on the crawl trigger.
    """

    log_level: str = "INFO"
    crawl_auth_token: str | None = None


@dataclass(frozen=True)
class ScheduleSettings:
    """
    Periodic crawl settings. An empty dealer list means every configured dealer.
    """

    enabled: bool = False
    interval_minutes: int = 360
    dealer_ids: tuple[str, ...] = field(default_factory=tuple)


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    return ApiSettings(
        log_level=(_get_optional_str_env("LOG_LEVEL") or "INFO").upper(),
        crawl_auth_token=_get_optional_str_env("CRAWL_AUTH_TOKEN"),
    )


@lru_cache(maxsize=1)
def get_schedule_settings() -> ScheduleSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return ScheduleSettings(
        enabled=_get_bool_env("CRAWLER_SCHEDULE_ENABLED", False),
        interval_minutes=max(5, _get_int_env("CRAWLER_SCHEDULE_INTERVAL_MINUTES", 360)),
        dealer_ids=_get_list_env("CRAWLER_SCHEDULE_DEALERS"),
    )
