"""
tests/test_reconciler.py

Reconciler classification, idempotence and per-chunk failure isolation
against the in-memory catalog store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.crawling.errors import StoreError
from app.crawling.reconciler import Reconciler
from app.domain.vehicle import VehicleRecord
from tests.conftest import InMemoryCatalogStore

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=6)
DEALER = "testdealer"


def vehicle(slug: str, price: int = 10_000, **attributes: object) -> VehicleRecord:
    return VehicleRecord(
        dealer_id=DEALER,
        canonical_url=f"https://dealer.example/used/cars/{slug}",
        title=f"Car {slug}",
        price=price,
        attributes=dict(attributes),
    )


def test_first_crawl_inserts_everything(catalog_store: InMemoryCatalogStore) -> None:
    result = Reconciler(store=catalog_store).reconcile(DEALER, [vehicle("a"), vehicle("b")], seen_at=T0)

    assert (result.inserted, result.updated, result.unchanged, result.failed) == (2, 0, 0, 0)
    assert result.upserted == 2


def test_rerun_with_same_content_is_unchanged_but_seen(catalog_store: InMemoryCatalogStore) -> None:
    reconciler = Reconciler(store=catalog_store)
    records = [vehicle("a", fuel="Petrol"), vehicle("b")]
    reconciler.reconcile(DEALER, records, seen_at=T0)

    result = reconciler.reconcile(DEALER, records, seen_at=T1)

    assert (result.inserted, result.updated, result.unchanged) == (0, 0, 2)
    entry = catalog_store.get(DEALER, records[0].canonical_url)
    assert entry.first_seen == T0
    assert entry.updated_at == T0
    assert entry.last_seen == T1


def test_changed_price_counts_as_update(catalog_store: InMemoryCatalogStore) -> None:
    reconciler = Reconciler(store=catalog_store)
    reconciler.reconcile(DEALER, [vehicle("a", price=12_995), vehicle("b")], seen_at=T0)

    result = reconciler.reconcile(DEALER, [vehicle("a", price=11_995), vehicle("b")], seen_at=T1)

    assert (result.inserted, result.updated, result.unchanged) == (0, 1, 1)
    entry = catalog_store.get(DEALER, vehicle("a").canonical_url)
    assert entry.price == 11_995
    assert entry.first_seen == T0
    assert entry.updated_at == T1


def test_failed_chunk_does_not_roll_back_other_chunks(catalog_store: InMemoryCatalogStore) -> None:
    catalog_store.fail_urls = {vehicle("b").canonical_url}
    records = [vehicle("a"), vehicle("b"), vehicle("c")]

    result = Reconciler(store=catalog_store, batch_size=1).reconcile(DEALER, records, seen_at=T0)

    assert result.inserted == 2
    assert result.failed == 1
    assert len(result.errors) == 1
    assert set(url for _, url in catalog_store.entries) == {vehicle("a").canonical_url, vehicle("c").canonical_url}


def test_transient_failure_is_retried_once(catalog_store: InMemoryCatalogStore) -> None:
    catalog_store.fail_upserts = 1

    result = Reconciler(store=catalog_store).reconcile(DEALER, [vehicle("a")], seen_at=T0)

    assert result.inserted == 1
    assert result.failed == 0
    assert catalog_store.upsert_calls == 2


def test_persistent_failure_reports_whole_chunk(catalog_store: InMemoryCatalogStore) -> None:
    catalog_store.fail_upserts = 5

    result = Reconciler(store=catalog_store).reconcile(DEALER, [vehicle("a"), vehicle("b")], seen_at=T0)

    assert result.failed == 2
    assert result.upserted == 0
    assert catalog_store.upsert_calls == 2


def test_empty_input_is_a_no_op(catalog_store: InMemoryCatalogStore) -> None:
    result = Reconciler(store=catalog_store).reconcile(DEALER, [], seen_at=T0)

    assert result.upserted == 0
    assert catalog_store.upsert_calls == 0


def test_mark_stale_flags_only_unseen_entries(catalog_store: InMemoryCatalogStore) -> None:
    reconciler = Reconciler(store=catalog_store)
    reconciler.reconcile(DEALER, [vehicle("a"), vehicle("b")], seen_at=T0)
    reconciler.reconcile(DEALER, [vehicle("a")], seen_at=T1)

    flagged = reconciler.mark_stale(DEALER, seen_before=T1)

    assert flagged == 1
    assert catalog_store.get(DEALER, vehicle("b").canonical_url).is_stale
    assert not catalog_store.get(DEALER, vehicle("a").canonical_url).is_stale


def test_mark_stale_propagates_store_errors(catalog_store: InMemoryCatalogStore) -> None:
    catalog_store.fail_mark_stale = True

    with pytest.raises(StoreError):
        Reconciler(store=catalog_store).mark_stale(DEALER, seen_before=T1)


def test_mark_stale_skips_urls_discovered_this_run(catalog_store: InMemoryCatalogStore) -> None:
    reconciler = Reconciler(store=catalog_store)
    reconciler.reconcile(DEALER, [vehicle("a"), vehicle("b"), vehicle("c")], seen_at=T0)
    reconciler.reconcile(DEALER, [vehicle("a")], seen_at=T1)

    flagged = reconciler.mark_stale(DEALER, seen_before=T1, seen_urls=[vehicle("b").canonical_url])

    assert flagged == 1
    assert not catalog_store.get(DEALER, vehicle("b").canonical_url).is_stale
    assert catalog_store.get(DEALER, vehicle("c").canonical_url).is_stale
