"""
Run dealer inventory crawls from the CLI.

    python -m scripts.run_dealer_crawl --dealer avon
    python -m scripts.run_dealer_crawl --all

Exit codes: 0 when every crawl ran, 1 when any crawl failed outright,
2 when a dealer could not be configured.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from app.config import get_api_settings
from app.crawling.errors import ConfigurationError, StoreError
from app.services.dealer_crawl_service import DealerCrawlService
from db.session import session_scope

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Crawl dealer websites into the vehicle catalog.")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--dealer",
        dest="dealers",
        action="append",
        help="Dealer id to crawl. Repeat for several dealers.",
    )
    target.add_argument(
        "--all",
        dest="all_dealers",
        action="store_true",
        help="Crawl every configured dealer.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, *, service: DealerCrawlService | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, get_api_settings().log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        crawl_service = service or DealerCrawlService()
        with session_scope() as db:
            if args.all_dealers:
                summaries = crawl_service.crawl_many(db=db)
            else:
                summaries = [crawl_service.crawl(db=db, dealer_id=dealer) for dealer in args.dealers]
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except StoreError as exc:
        print(f"Catalog store unavailable: {exc}", file=sys.stderr)
        return EXIT_FAILED

    print(json.dumps([dataclasses.asdict(summary) for summary in summaries], indent=2))
    if any(summary.status in {"failed", "not_run"} for summary in summaries):
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
