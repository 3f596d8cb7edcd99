"""
Environment + JSON config loader for dealer crawling.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from db.config import load_env_files

from app.crawling.config.models import (
    DEFAULT_EXCLUDED_PATHS,
    DEFAULT_DETAIL_PATH_PATTERN,
    DEFAULT_PRICE_SELECTORS,
    CrawlerSettings,
    DealerConfig,
)
from app.crawling.errors import ConfigurationError

_DEALER_CONFIG_SOURCES = {"json", "db"}


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_crawler_settings() -> CrawlerSettings:
    """
    Return cached crawler settings from environment variables.
    """

    load_env_files()
    source = _get_str_env("CRAWLER_DEALER_CONFIG_SOURCE", "json").lower()
    if source not in _DEALER_CONFIG_SOURCES:
        source = "json"
    config_path = _get_str_env(
        "CRAWLER_DEALER_CONFIG_PATH",
        "app/crawling/config/dealers.json",
    )
    return CrawlerSettings(
        dealer_config_source=source,
        dealer_config_path=str(_resolve_config_path(config_path)),
        default_user_agent=_get_str_env(
            "CRAWLER_USER_AGENT",
            "DealerInventoryBot/1.0 (+https://example.com/bot)",
        ),
        min_request_interval_seconds=max(
            0.0,
            _get_float_env("CRAWLER_MIN_REQUEST_INTERVAL_SECONDS", 1.0),
        ),
        timeout_seconds=max(
            1.0,
            _get_float_env("CRAWLER_TIMEOUT_SECONDS", 15.0),
        ),
        max_retries=max(
            0,
            _get_int_env("CRAWLER_MAX_RETRIES", 3),
        ),
        backoff_initial_seconds=max(
            0.0,
            _get_float_env("CRAWLER_BACKOFF_INITIAL_SECONDS", 0.5),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("CRAWLER_BACKOFF_MULTIPLIER", 2.0),
        ),
        backoff_jitter_ratio=min(
            1.0,
            max(0.0, _get_float_env("CRAWLER_BACKOFF_JITTER_RATIO", 0.25)),
        ),
        max_workers=min(
            16,
            max(1, _get_int_env("CRAWLER_MAX_WORKERS", 4)),
        ),
        run_timeout_seconds=max(
            1.0,
            _get_float_env("CRAWLER_RUN_TIMEOUT_SECONDS", 300.0),
        ),
        store_batch_size=max(
            1,
            _get_int_env("CRAWLER_STORE_BATCH_SIZE", 200),
        ),
        respect_robots=_get_bool_env("CRAWLER_RESPECT_ROBOTS", True),
        allow_when_robots_unreachable=_get_bool_env(
            "CRAWLER_ALLOW_WHEN_ROBOTS_UNREACHABLE",
            True,
        ),
        mark_stale=_get_bool_env("CRAWLER_MARK_STALE", False),
    )


def load_dealer_configs(*, config_path: str) -> dict[str, DealerConfig]:
    """
    Load dealer configurations from a JSON file keyed by dealer id.

    Entries are validated eagerly; a malformed dealer raises
    ConfigurationError rather than being skipped.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Dealer config file not found: {path}")

    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Dealer config file is not valid JSON: {path}") from exc

    dealers = raw_data.get("dealers", []) if isinstance(raw_data, dict) else None
    if not isinstance(dealers, list):
        raise ConfigurationError("Invalid dealer config: 'dealers' must be a list.")

    parsed: dict[str, DealerConfig] = {}
    for entry in dealers:
        if not isinstance(entry, dict):
            raise ConfigurationError("Invalid dealer config: each dealer must be an object.")
        config = build_dealer_config(entry)
        parsed[config.id] = config
    return parsed


def build_dealer_config(entry: Mapping[str, Any]) -> DealerConfig:
    """
    Build and validate one DealerConfig from a raw mapping.

    Accepts both the JSON file keys and the `dealers` table column names.
    """

    dealer_id = str(entry.get("id") or "").strip().lower()
    if not dealer_id:
        raise ConfigurationError("Dealer config is missing 'id'.")

    site_base_url = str(entry.get("site_base_url") or entry.get("site_url") or "").strip()
    parts = urlsplit(site_base_url)
    if parts.scheme.lower() not in {"http", "https"} or not parts.netloc:
        raise ConfigurationError(
            f"Dealer '{dealer_id}' site_base_url must be an absolute http(s) URL, "
            f"got '{site_base_url}'."
        )

    listing_paths = _string_tuple(entry.get("listing_paths", entry.get("list_paths")))
    if not listing_paths:
        raise ConfigurationError(f"Dealer '{dealer_id}' has no listing_paths configured.")

    detail_pattern = _optional_str(entry.get("detail_path_pattern")) or DEFAULT_DETAIL_PATH_PATTERN
    try:
        re.compile(detail_pattern)
    except re.error as exc:
        raise ConfigurationError(
            f"Dealer '{dealer_id}' detail_path_pattern is not a valid regex: {exc}"
        ) from exc

    excluded = _string_tuple(entry.get("excluded_paths"))
    price_selectors = _string_tuple(entry.get("price_selectors"))

    return DealerConfig(
        id=dealer_id,
        site_base_url=site_base_url.rstrip("/"),
        listing_paths=listing_paths,
        detail_path_pattern=detail_pattern,
        excluded_paths=(*DEFAULT_EXCLUDED_PATHS, *excluded),
        price_selectors=(*price_selectors, *DEFAULT_PRICE_SELECTORS),
        user_agent=_optional_str(entry.get("user_agent")),
        min_request_interval_seconds=_optional_float(entry.get("min_request_interval_seconds")),
        headers=_normalize_headers(entry.get("headers", {})),
    )


def _string_tuple(value: object) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(item.strip() for item in value if isinstance(item, str) and item.strip())


def _normalize_headers(headers: object) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in headers.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        if key.strip() and value.strip():
            normalized[key.strip()] = value.strip()
    return normalized


def _optional_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except (TypeError, ValueError):
        return None
