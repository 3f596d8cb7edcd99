from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.crawling.config import (
    JSONDealerConfigProvider,
    build_dealer_config,
    get_crawler_settings,
    load_dealer_configs,
)
from app.crawling.config.models import DEFAULT_EXCLUDED_PATHS, DEFAULT_PRICE_SELECTORS
from app.crawling.errors import ConfigurationError


def write_config(tmp_path: Path, dealers: object) -> str:
    path = tmp_path / "dealers.json"
    path.write_text(json.dumps({"dealers": dealers}), encoding="utf-8")
    return str(path)


def test_loads_dealers_keyed_by_lowercase_id(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        [
            {
                "id": "Avon",
                "site_base_url": "https://www.avon-automotive.com/",
                "listing_paths": ["/used/cars/bristol", "/used/cars"],
                "excluded_paths": ["/used/cars/bristol/finance"],
                "price_selectors": [".vehicle-price"],
                "min_request_interval_seconds": "2.5",
                "headers": {"Accept-Language": "en-GB", "X-Empty": " "},
            }
        ],
    )

    configs = load_dealer_configs(config_path=path)

    avon = configs["avon"]
    assert avon.site_base_url == "https://www.avon-automotive.com"
    assert avon.listing_paths == ("/used/cars/bristol", "/used/cars")
    assert avon.excluded_paths == (*DEFAULT_EXCLUDED_PATHS, "/used/cars/bristol/finance")
    assert avon.price_selectors == (".vehicle-price", *DEFAULT_PRICE_SELECTORS)
    assert avon.min_request_interval_seconds == 2.5
    assert avon.headers == {"Accept-Language": "en-GB"}


def test_bundled_config_is_valid() -> None:
    settings = get_crawler_settings()

    configs = load_dealer_configs(config_path=settings.dealer_config_path)

    assert "avon" in configs


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_dealer_configs(config_path=str(tmp_path / "missing.json"))


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "dealers.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_dealer_configs(config_path=str(path))


@pytest.mark.parametrize(
    "entry",
    [
        {"site_base_url": "https://dealer.example", "listing_paths": ["/used"]},
        {"id": "d", "site_base_url": "dealer.example", "listing_paths": ["/used"]},
        {"id": "d", "site_base_url": "ftp://dealer.example", "listing_paths": ["/used"]},
        {"id": "d", "site_base_url": "https://dealer.example", "listing_paths": []},
        {"id": "d", "site_base_url": "https://dealer.example", "listing_paths": ["/used"], "detail_path_pattern": "("},
    ],
)
def test_invalid_entries_raise(entry: dict) -> None:
    with pytest.raises(ConfigurationError):
        build_dealer_config(entry)


def test_accepts_dealer_table_column_names() -> None:
    config = build_dealer_config(
        {"id": "avon", "site_url": "https://dealer.example", "list_paths": ["/used/cars"], "excluded_paths": None}
    )

    assert config.site_base_url == "https://dealer.example"
    assert config.listing_paths == ("/used/cars",)
    assert config.excluded_paths == DEFAULT_EXCLUDED_PATHS


def test_json_provider_rejects_unknown_dealer(tmp_path: Path) -> None:
    path = write_config(
        tmp_path,
        [{"id": "avon", "site_base_url": "https://dealer.example", "listing_paths": ["/used"]}],
    )
    provider = JSONDealerConfigProvider(config_path=path)

    assert provider.get("AVON").id == "avon"
    assert provider.dealer_ids() == ["avon"]
    with pytest.raises(ConfigurationError):
        provider.get("nobody")


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRAWLER_MAX_WORKERS", "64")
    monkeypatch.setenv("CRAWLER_MIN_REQUEST_INTERVAL_SECONDS", "2")
    monkeypatch.setenv("CRAWLER_MAX_RETRIES", "not-a-number")
    monkeypatch.setenv("CRAWLER_DEALER_CONFIG_SOURCE", "DB")
    get_crawler_settings.cache_clear()
    try:
        settings = get_crawler_settings()
    finally:
        get_crawler_settings.cache_clear()

    assert settings.max_workers == 16
    assert settings.min_request_interval_seconds == 2.0
    assert settings.max_retries == 3
    assert settings.dealer_config_source == "db"
    assert settings.respect_robots is True
