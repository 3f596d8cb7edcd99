"""
app/scheduler/jobs.py

APScheduler-based periodic dealer crawling.

Dealers are resolved at job runtime: the ``CRAWLER_SCHEDULE_DEALERS`` env
var (comma-separated dealer ids) when set, otherwise every dealer the
configured provider knows about.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import ScheduleSettings, get_schedule_settings
from app.services.dealer_crawl_service import DealerCrawlService, get_dealer_crawl_service
from db.session import session_scope

logger = logging.getLogger(__name__)

DEALER_CRAWL_JOB_ID = "dealer_crawl"


def run_dealer_crawls(
    *,
    settings: ScheduleSettings | None = None,
    service: DealerCrawlService | None = None,
) -> None:
    """
    Crawl scheduled dealers sequentially. Failures are logged, never raised,
    so one bad run does not unschedule the job.
    """

    schedule = settings or get_schedule_settings()
    crawl_service = service or get_dealer_crawl_service()
    logger.info("Scheduler: dealer_crawl starting dealers=%s", list(schedule.dealer_ids) or "all")

    try:
        with session_scope() as db:
            summaries = crawl_service.crawl_many(db=db, dealer_ids=schedule.dealer_ids or None)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: dealer_crawl failed: %s", exc)
        return

    for summary in summaries:
        logger.info(
            "Scheduler: dealer_crawl dealer=%r status=%s discovered=%s upserted=%s errors=%s",
            summary.dealer_id,
            summary.status,
            summary.discovered,
            summary.upserted,
            summary.errors,
        )
    logger.info("Scheduler: dealer_crawl complete")


def build_scheduler(settings: ScheduleSettings | None = None) -> BackgroundScheduler:
    """
    Build the scheduler with the periodic crawl job registered when enabled.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """

    schedule = settings or get_schedule_settings()
    scheduler = BackgroundScheduler(timezone="UTC")
    if schedule.enabled:
        scheduler.add_job(
            run_dealer_crawls,
            trigger="interval",
            minutes=schedule.interval_minutes,
            kwargs={"settings": schedule},
            id=DEALER_CRAWL_JOB_ID,
            name="Periodic dealer inventory crawl",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=600,
        )
    return scheduler
