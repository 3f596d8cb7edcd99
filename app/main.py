from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import FastAPI

from app.config import get_api_settings
from db.config import database_configured


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.
    """

    errors: list[str] = []

    if not database_configured():
        errors.append("No database URL configured. Set DATABASE_URL or LOCAL_DATABASE_URL.")

    source = os.getenv("CRAWLER_DEALER_CONFIG_SOURCE", "json").strip().lower()
    if source not in {"json", "db"}:
        errors.append(
            f"CRAWLER_DEALER_CONFIG_SOURCE='{source}' is not valid. Allowed values: ['db', 'json']."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = get_api_settings().log_level
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and start the crawl scheduler on boot; shut it down on exit."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        log.info("Scheduler shut down")


def create_app(*, validate_env: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    if validate_env:
        _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Dealer Inventory API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import crawl_router, inventory_router

    application.include_router(crawl_router)
    application.include_router(inventory_router)

    @application.get("/health")
    def healthcheck() -> dict[str, object]:
        # Presence flags only; secret values are never echoed.
        return {
            "ok": True,
            "database_url_present": database_configured(),
            "crawl_token_present": bool(get_api_settings().crawl_auth_token),
        }

    return application


@lru_cache(maxsize=1)
def get_application() -> FastAPI:
    """Build the process-wide application once."""
    return create_app()


def __getattr__(name: str) -> object:
    # `uvicorn app.main:app` builds the application on first access.
    if name == "app":
        return get_application()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
