"""
Config helpers for dealer crawling.
"""

from app.crawling.config.loader import build_dealer_config, get_crawler_settings, load_dealer_configs
from app.crawling.config.models import CrawlerSettings, DealerConfig
from app.crawling.config.providers import (
    DealerConfigProvider,
    JSONDealerConfigProvider,
    SQLAlchemyDealerConfigProvider,
)

__all__ = [
    "CrawlerSettings",
    "DealerConfig",
    "DealerConfigProvider",
    "JSONDealerConfigProvider",
    "SQLAlchemyDealerConfigProvider",
    "build_dealer_config",
    "get_crawler_settings",
    "load_dealer_configs",
]
