"""
Dealer configuration providers.

The crawler only reads dealer configuration. Unknown dealers and invalid
entries raise ConfigurationError, which callers report distinctly from
crawl failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.crawling.config.loader import build_dealer_config, load_dealer_configs
from app.crawling.config.models import DealerConfig
from app.crawling.errors import ConfigurationError, StoreError
from app.repositories.dealer_repository import DealerRepository


class DealerConfigProvider(ABC):
    @abstractmethod
    def get(self, dealer_id: str) -> DealerConfig:
        """
        Return the config for `dealer_id` or raise ConfigurationError.
        """

    @abstractmethod
    def dealer_ids(self) -> list[str]:
        """
        Identifiers of all crawlable dealers.
        """


class JSONDealerConfigProvider(DealerConfigProvider):
    """
    Dealer configs from a JSON file, loaded once on first use.
    """

    def __init__(self, *, config_path: str) -> None:
        self._config_path = config_path
        self._configs: dict[str, DealerConfig] | None = None

    def get(self, dealer_id: str) -> DealerConfig:
        key = dealer_id.strip().lower()
        config = self._load().get(key)
        if config is None:
            raise ConfigurationError(f"Unknown dealer '{dealer_id}'.")
        return config

    def dealer_ids(self) -> list[str]:
        return sorted(self._load())

    def _load(self) -> dict[str, DealerConfig]:
        if self._configs is None:
            self._configs = load_dealer_configs(config_path=self._config_path)
        return self._configs


class SQLAlchemyDealerConfigProvider(DealerConfigProvider):
    """
    Dealer configs from the `dealers` table.
    """

    def __init__(self, *, session: Session) -> None:
        self._repository = DealerRepository(session)

    def get(self, dealer_id: str) -> DealerConfig:
        key = dealer_id.strip().lower()
        try:
            row = self._repository.get_active(key)
        except SQLAlchemyError as exc:
            raise StoreError(f"Dealer lookup failed for '{dealer_id}': {exc}") from exc
        if row is None:
            raise ConfigurationError(f"Unknown or inactive dealer '{dealer_id}'.")
        return build_dealer_config(row)

    def dealer_ids(self) -> list[str]:
        try:
            return self._repository.list_active_ids()
        except SQLAlchemyError as exc:
            raise StoreError(f"Dealer listing failed: {exc}") from exc
