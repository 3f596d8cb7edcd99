from __future__ import annotations

import json
import logging

import pytest

from app.crawling.logging_utils import log_event


def test_emits_one_json_line_without_none_fields(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.crawl")
    with caplog.at_level(logging.INFO, logger="tests.crawl"):
        log_event(logger, logging.INFO, "listing_fetched", dealer_id="avon", candidates=12, status_code=None)

    payload = json.loads(caplog.records[0].getMessage())
    assert payload == {"event": "listing_fetched", "dealer_id": "avon", "candidates": 12}


def test_skips_disabled_levels(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.crawl.quiet")
    with caplog.at_level(logging.WARNING, logger="tests.crawl.quiet"):
        log_event(logger, logging.DEBUG, "noise", detail="x")

    assert caplog.records == []
