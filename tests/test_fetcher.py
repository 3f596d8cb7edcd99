"""
tests/test_fetcher.py

PageFetcher retry, pacing and error-taxonomy behaviour against a scripted
HTTP session. No network access.
"""

from __future__ import annotations

import pytest
import requests

from app.crawling.errors import FetchError
from app.crawling.robots import RobotsPolicyManager
from tests.conftest import FakeHTTPSession, build_response, make_fetcher

URL = "https://dealer.example/used/cars/ford-focus-1"


class RecordingLimiter:
    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    def wait(self, **kwargs: object) -> float:
        self.calls.append(kwargs)
        return 0.0


@pytest.fixture()
def sleeps() -> list[float]:
    return []


def test_returns_page_on_success(http_session: FakeHTTPSession) -> None:
    http_session.html(URL, "<h1>Ford Focus</h1>")

    page = make_fetcher(http_session).fetch(URL)

    assert page.status_code == 200
    assert "Ford Focus" in page.text
    assert page.final_url == URL
    assert http_session.request_headers[0]["User-Agent"] == "TestBot/1.0"


def test_dealer_user_agent_and_headers_are_sent(http_session: FakeHTTPSession) -> None:
    http_session.html(URL, "<h1>Ford Focus</h1>")

    make_fetcher(http_session).fetch(URL, user_agent="DealerAgent/2.0", headers={"Accept-Language": "en-GB"})

    assert http_session.request_headers[0]["User-Agent"] == "DealerAgent/2.0"
    assert http_session.request_headers[0]["Accept-Language"] == "en-GB"


def test_server_error_is_retried_with_backoff(http_session: FakeHTTPSession, sleeps: list[float]) -> None:
    http_session.route(
        URL,
        [build_response(URL, status=503), build_response(URL, status=502), build_response(URL, body="<h1>ok</h1>")],
    )
    fetcher = make_fetcher(
        http_session,
        max_retries=3,
        backoff_initial_seconds=0.5,
        backoff_multiplier=2.0,
        sleep=sleeps.append,
    )

    page = fetcher.fetch(URL)

    assert page.status_code == 200
    assert len(http_session.calls) == 3
    assert sleeps == [0.5, 1.0]


def test_client_error_is_not_retried(http_session: FakeHTTPSession, sleeps: list[float]) -> None:
    http_session.html(URL, "gone", status=404)

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session, max_retries=3, sleep=sleeps.append).fetch(URL)

    assert ctx.value.kind == "status"
    assert ctx.value.status_code == 404
    assert not ctx.value.retryable
    assert len(http_session.calls) == 1
    assert sleeps == []


def test_too_many_requests_fails_immediately(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, build_response(URL, status=429))

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session, max_retries=3).fetch(URL)

    assert ctx.value.status_code == 429
    assert len(http_session.calls) == 1


def test_gives_up_after_retry_budget(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, build_response(URL, status=500))

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session, max_retries=2).fetch(URL)

    assert ctx.value.kind == "status"
    assert ctx.value.status_code == 500
    assert "gave up after 3 attempts" in str(ctx.value)
    assert len(http_session.calls) == 3


@pytest.mark.parametrize(
    ("exception", "kind"),
    [
        (requests.Timeout("read timed out"), "timeout"),
        (requests.ConnectionError("connection refused"), "network"),
    ],
)
def test_transport_failures_are_typed_and_retried(
    http_session: FakeHTTPSession,
    exception: Exception,
    kind: str,
) -> None:
    http_session.route(URL, exception)

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session, max_retries=1).fetch(URL)

    assert ctx.value.kind == kind
    assert ctx.value.retryable
    assert len(http_session.calls) == 2


def test_transient_network_error_then_success(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, [requests.ConnectionError("reset"), build_response(URL, body="<h1>ok</h1>")])

    page = make_fetcher(http_session, max_retries=1).fetch(URL)

    assert page.text == "<h1>ok</h1>"


def test_non_document_content_is_malformed(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, build_response(URL, body="\x89PNG", content_type="image/png"))

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session).fetch(URL)

    assert ctx.value.kind == "malformed"


def test_empty_body_is_malformed(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, build_response(URL, body=""))

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session).fetch(URL)

    assert ctx.value.kind == "malformed"


def test_meta_charset_is_used_when_header_has_none(http_session: FakeHTTPSession) -> None:
    body = '<html><head><meta charset="utf-8"></head><body><h1>Citro\u00ebn C3 \u00a39,995</h1></body></html>'
    http_session.route(URL, build_response(URL, raw=body.encode("utf-8"), content_type="text/html"))

    page = make_fetcher(http_session).fetch(URL)

    assert "Citro\u00ebn C3 \u00a39,995" in page.text


def test_undeclared_utf8_body_is_not_decoded_as_latin1(http_session: FakeHTTPSession) -> None:
    body = "<h1>Citro\u00ebn C3 \u00a39,995</h1>"
    http_session.route(URL, build_response(URL, raw=body.encode("utf-8"), content_type="text/html"))

    page = make_fetcher(http_session).fetch(URL)

    assert page.text == body


def test_header_charset_wins_over_meta(http_session: FakeHTTPSession) -> None:
    body = '<meta charset="utf-8"><h1>Citro\u00ebn</h1>'
    http_session.route(
        URL,
        build_response(URL, raw=body.encode("iso-8859-1"), content_type="text/html; charset=ISO-8859-1"),
    )

    page = make_fetcher(http_session).fetch(URL)

    assert "<h1>Citro\u00ebn</h1>" in page.text


def test_body_that_does_not_decode_as_declared_is_malformed(http_session: FakeHTTPSession) -> None:
    http_session.route(
        URL,
        build_response(URL, raw=b"<h1>\xff\xfe\xfa</h1>", content_type="text/html; charset=utf-8"),
    )

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session).fetch(URL)

    assert ctx.value.kind == "malformed"


def test_every_attempt_goes_through_the_rate_limiter(http_session: FakeHTTPSession) -> None:
    http_session.route(URL, [build_response(URL, status=503), build_response(URL, body="<h1>ok</h1>")])
    limiter = RecordingLimiter()

    make_fetcher(http_session, rate_limiter=limiter, max_retries=2).fetch(URL, min_interval_seconds=2.5)

    assert len(limiter.calls) == 2
    assert all(call["min_interval_seconds"] == 2.5 for call in limiter.calls)


def test_robots_disallow_blocks_without_requesting_the_page(http_session: FakeHTTPSession) -> None:
    robots_url = "https://dealer.example/robots.txt"
    http_session.route(
        robots_url,
        build_response(robots_url, body="User-agent: *\nDisallow: /used/cars/\nCrawl-delay: 3\n", content_type="text/plain"),
    )
    robots = RobotsPolicyManager(session=http_session)

    with pytest.raises(FetchError) as ctx:
        make_fetcher(http_session, robots_policy=robots).fetch(URL)

    assert ctx.value.kind == "blocked"
    assert http_session.calls == [robots_url]


def test_robots_crawl_delay_reaches_the_rate_limiter(http_session: FakeHTTPSession) -> None:
    robots_url = "https://dealer.example/robots.txt"
    http_session.route(
        robots_url,
        build_response(robots_url, body="User-agent: *\nCrawl-delay: 3\n", content_type="text/plain"),
    )
    http_session.html(URL, "<h1>ok</h1>")
    limiter = RecordingLimiter()

    make_fetcher(http_session, rate_limiter=limiter, robots_policy=RobotsPolicyManager(session=http_session)).fetch(URL)

    assert limiter.calls[0]["crawl_delay_seconds"] == 3.0
