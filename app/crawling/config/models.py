"""
Crawler configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_DETAIL_PATH_PATTERN = r"/used[-/]"
DEFAULT_EXCLUDED_PATHS: tuple[str, ...] = (
    "/used",
    "/used/cars",
    "/used-cars",
    "/used/vans",
    "/used-vans",
)
DEFAULT_PRICE_SELECTORS: tuple[str, ...] = (
    "[itemprop='price']",
    ".price",
    "[data-price]",
    "[class*='price']",
)


@dataclass(frozen=True)
class DealerConfig:
    """
    One dealer crawl target. Immutable for the duration of a run.
    """

    id: str
    site_base_url: str
    listing_paths: tuple[str, ...]
    detail_path_pattern: str = DEFAULT_DETAIL_PATH_PATTERN
    excluded_paths: tuple[str, ...] = DEFAULT_EXCLUDED_PATHS
    price_selectors: tuple[str, ...] = DEFAULT_PRICE_SELECTORS
    user_agent: str | None = None
    min_request_interval_seconds: float | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CrawlerSettings:
    """
    Runtime settings for dealer crawling.
    """

    dealer_config_source: str
    dealer_config_path: str
    default_user_agent: str
    min_request_interval_seconds: float
    timeout_seconds: float
    max_retries: int
    backoff_initial_seconds: float
    backoff_multiplier: float
    backoff_jitter_ratio: float
    max_workers: int
    run_timeout_seconds: float
    store_batch_size: int
    respect_robots: bool
    allow_when_robots_unreachable: bool
    mark_stale: bool
