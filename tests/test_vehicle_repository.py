"""
tests/test_vehicle_repository.py

SQL shape of the catalog upsert and search statements, compiled against
the PostgreSQL dialect. No database connection is opened.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.dialects import postgresql

from app.domain.vehicle import VehicleQuery, VehicleRecord
from app.repositories.vehicle_repository import VehicleRepository

SEEN_AT = datetime(2026, 10, 1, tzinfo=timezone.utc)


def compile_sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def record(url: str, price: int) -> VehicleRecord:
    return VehicleRecord(dealer_id="avon", canonical_url=url, title="Car", price=price)


def test_upsert_conflicts_on_identity_and_never_updates_first_seen() -> None:
    payloads = VehicleRepository._payloads([record("https://d.example/used/a", 9000)], seen_at=SEEN_AT)

    sql = compile_sql(VehicleRepository.build_upsert_statement(payloads))

    assert "ON CONFLICT ON CONSTRAINT uq_vehicles_dealer_canonical_url DO UPDATE SET" in sql
    update_clause = sql.split("DO UPDATE SET", 1)[1]
    assert "first_seen" not in update_clause
    assert "last_seen = excluded.last_seen" in update_clause
    assert "IS DISTINCT FROM" in update_clause
    assert "RETURNING vehicles.id" in sql


def test_payloads_collapse_duplicate_keys_last_wins() -> None:
    payloads = VehicleRepository._payloads(
        [
            record("https://d.example/used/a", 9000),
            record("https://d.example/used/b", 5000),
            record("https://d.example/used/a", 9500),
        ],
        seen_at=SEEN_AT,
    )

    assert [payload["canonical_url"] for payload in payloads] == [
        "https://d.example/used/a",
        "https://d.example/used/b",
    ]
    assert payloads[0]["price"] == 9500
    assert payloads[0]["first_seen"] == SEEN_AT


def test_search_filters_and_orders_by_price() -> None:
    stmt = VehicleRepository.build_search_statement(
        VehicleQuery(
            dealer_id="avon",
            price_max=15000,
            title_terms=("Ford", "50%_off"),
            fuel="diesel",
            ulez_compliant=True,
            limit=500,
        )
    )
    compiled = stmt.compile(dialect=postgresql.dialect())
    sql = str(compiled)

    assert "vehicles.is_stale IS false" in sql
    assert "vehicles.price <=" in sql
    assert sql.count("ILIKE") == 3
    assert "->>" in sql
    assert "ORDER BY vehicles.price ASC NULLS LAST, vehicles.canonical_url" in sql
    params = list(compiled.params.values())
    assert "%50\\%\\_off%" in params
    assert "true" in params
    assert 50 in params


def test_search_can_include_stale_listings() -> None:
    sql = compile_sql(VehicleRepository.build_search_statement(VehicleQuery(include_stale=True)))

    assert "is_stale" not in sql.split("ORDER BY", 1)[0].split("FROM", 1)[1]


def test_mark_stale_excludes_urls_seen_this_run() -> None:
    stmt = VehicleRepository.build_mark_stale_statement(
        dealer_id="avon",
        seen_before=SEEN_AT,
        seen_urls=["https://d.example/used/a"],
    )
    sql = compile_sql(stmt)

    assert sql.startswith("UPDATE vehicles SET is_stale=")
    assert "vehicles.last_seen <" in sql
    assert "NOT IN" in sql


def test_mark_stale_without_seen_urls_has_no_exclusion() -> None:
    sql = compile_sql(VehicleRepository.build_mark_stale_statement(dealer_id="avon", seen_before=SEEN_AT))

    assert "NOT IN" not in sql
