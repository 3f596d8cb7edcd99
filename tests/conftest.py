"""
Shared fakes for crawler tests.

No network and no database: HTTP goes through FakeHTTPSession, which
serves canned `requests.Response` objects, and persistence goes through
InMemoryCatalogStore.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

import pytest
import requests

from app.crawling.config.models import CrawlerSettings, DealerConfig
from app.crawling.config.providers import DealerConfigProvider
from app.crawling.errors import ConfigurationError, StoreError
from app.crawling.fetcher import PageFetcher
from app.crawling.rate_limiter import HostRateLimiter
from app.crawling.storage.base import CatalogStore
from app.domain.vehicle import CatalogEntry, VehicleQuery, VehicleRecord

DEALER_BASE_URL = "https://dealer.example"


def build_response(
    url: str,
    *,
    status: int = 200,
    body: str = "",
    content_type: str = "text/html; charset=utf-8",
    raw: bytes | None = None,
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.reason = "OK" if status < 400 else "Error"
    response._content = raw if raw is not None else body.encode("utf-8")
    response.headers["Content-Type"] = content_type
    response.url = url
    return response


class FakeHTTPSession:
    """
    Serves scripted responses per URL.

    A route is a list of items consumed in order (the last one repeats);
    an item is either a `requests.Response` or an exception to raise.
    Unknown URLs get a 404.
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self._routes: dict[str, list[Any]] = {}
        self.calls: list[str] = []
        self.request_headers: list[dict[str, str]] = []
        self._lock = threading.Lock()
        for url, items in (routes or {}).items():
            self.route(url, items)

    def route(self, url: str, items: Any) -> None:
        self._routes[url] = list(items) if isinstance(items, list) else [items]

    def html(self, url: str, body: str, *, status: int = 200) -> None:
        self.route(url, build_response(url, status=status, body=body))

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None, **_: Any):
        with self._lock:
            self.calls.append(url)
            self.request_headers.append(dict(headers or {}))
            items = self._routes.get(url)
            if not items:
                return build_response(url, status=404, body="not found")
            item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, BaseException):
            raise item
        return item


class InMemoryCatalogStore(CatalogStore):
    """
    Dict-backed catalog with the same timestamp rules as the SQL store.
    """

    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], CatalogEntry] = {}
        self.upsert_calls = 0
        self.fail_upserts = 0
        self.fail_urls: set[str] = set()
        self.fail_mark_stale = False

    def existing(self, *, dealer_id: str, canonical_urls: Sequence[str]) -> dict[str, CatalogEntry]:
        return {
            url: self.entries[(dealer_id, url)]
            for url in canonical_urls
            if (dealer_id, url) in self.entries
        }

    def upsert(self, records: Sequence[VehicleRecord], *, seen_at: datetime) -> int:
        self.upsert_calls += 1
        if self.fail_upserts > 0:
            self.fail_upserts -= 1
            raise StoreError("transient store failure")
        if any(record.canonical_url in self.fail_urls for record in records):
            raise StoreError("constraint violation")

        for record in records:
            key = (record.dealer_id, record.canonical_url)
            stored = self.entries.get(key)
            if stored is None:
                self.entries[key] = CatalogEntry(
                    dealer_id=record.dealer_id,
                    canonical_url=record.canonical_url,
                    title=record.title,
                    price=record.price,
                    attributes=dict(record.attributes),
                    first_seen=seen_at,
                    last_seen=seen_at,
                    updated_at=seen_at,
                )
                continue
            changed = stored.extracted_fields() != record.extracted_fields()
            self.entries[key] = replace(
                stored,
                title=record.title,
                price=record.price,
                attributes=dict(record.attributes),
                last_seen=seen_at,
                updated_at=seen_at if changed else stored.updated_at,
                is_stale=False,
            )
        return len(records)

    def mark_stale(
        self,
        *,
        dealer_id: str,
        seen_before: datetime,
        seen_urls: Sequence[str] = (),
    ) -> int:
        if self.fail_mark_stale:
            raise StoreError("stale update failed")
        keep = set(seen_urls)
        flagged = 0
        for key, entry in list(self.entries.items()):
            if key[1] in keep:
                continue
            if key[0] == dealer_id and entry.last_seen < seen_before and not entry.is_stale:
                self.entries[key] = replace(entry, is_stale=True)
                flagged += 1
        return flagged

    def search(self, query: VehicleQuery) -> list[CatalogEntry]:
        results = [
            entry
            for entry in self.entries.values()
            if (query.dealer_id is None or entry.dealer_id == query.dealer_id)
            and (query.include_stale or not entry.is_stale)
        ]
        return sorted(results, key=lambda entry: (entry.price is None, entry.price or 0))[: query.limit]

    def get(self, dealer_id: str, url: str) -> CatalogEntry:
        return self.entries[(dealer_id, url)]


class StaticConfigProvider(DealerConfigProvider):
    def __init__(self, *configs: DealerConfig) -> None:
        self._configs = {config.id: config for config in configs}

    def get(self, dealer_id: str) -> DealerConfig:
        try:
            return self._configs[dealer_id]
        except KeyError:
            raise ConfigurationError(f"Unknown dealer '{dealer_id}'.") from None

    def dealer_ids(self) -> list[str]:
        return sorted(self._configs)


def make_settings(**overrides: Any) -> CrawlerSettings:
    values: dict[str, Any] = {
        "dealer_config_source": "json",
        "dealer_config_path": "app/crawling/config/dealers.json",
        "default_user_agent": "TestBot/1.0",
        "min_request_interval_seconds": 0.0,
        "timeout_seconds": 5.0,
        "max_retries": 0,
        "backoff_initial_seconds": 0.0,
        "backoff_multiplier": 2.0,
        "backoff_jitter_ratio": 0.0,
        "max_workers": 2,
        "run_timeout_seconds": 30.0,
        "store_batch_size": 200,
        "respect_robots": False,
        "allow_when_robots_unreachable": True,
        "mark_stale": False,
    }
    values.update(overrides)
    return CrawlerSettings(**values)


def make_fetcher(session: FakeHTTPSession, **overrides: Any) -> PageFetcher:
    options: dict[str, Any] = {
        "session": session,
        "rate_limiter": HostRateLimiter(default_min_interval_seconds=0.0),
        "user_agent": "TestBot/1.0",
        "max_retries": 0,
        "backoff_jitter_ratio": 0.0,
        "sleep": lambda _seconds: None,
    }
    options.update(overrides)
    return PageFetcher(**options)


@pytest.fixture()
def http_session() -> FakeHTTPSession:
    return FakeHTTPSession()


@pytest.fixture()
def catalog_store() -> InMemoryCatalogStore:
    return InMemoryCatalogStore()


@pytest.fixture()
def dealer_config() -> DealerConfig:
    return DealerConfig(id="testdealer", site_base_url=DEALER_BASE_URL, listing_paths=("/used/cars",))
