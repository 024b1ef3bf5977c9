from datetime import date, datetime, timedelta, timezone

import httpx
import pytest

from pomodoro_tracker.errors import HistoryFeedError
from pomodoro_tracker.history_feed import (
    HistoricalEventCache,
    HistoricalEventsRepository,
    WikipediaClient,
    WikipediaClientConfig,
    carousel_page,
    parse_on_this_day,
)
from pomodoro_tracker.models import HistoricalEvent

FEED = {
    "selected": [{"year": 1969, "text": "Apollo 11 lands on the Moon."}],
    "events": [
        {"year": 1492, "text": "Columbus reaches the Americas."},
        {"year": 0, "text": "Undated event is dropped."},
        {"year": 1815, "text": "   "},
    ],
    "births": [
        {"year": 1879, "text": "Albert Einstein"},
        {"year": 1900, "text": "A"},
        {"year": 1901, "text": "B"},
        {"year": 1902, "text": "C"},
    ],
    "deaths": [{"year": 1955, "text": "Somebody"}],
}


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def fast_config(**kwargs) -> WikipediaClientConfig:
    return WikipediaClientConfig(backoff_base=0.0, **kwargs)


def test_parse_on_this_day_flattens_and_sorts():
    events = parse_on_this_day(FEED)
    years = [e.year for e in events]
    assert years == sorted(years)
    descriptions = [e.description for e in events]
    assert "Albert Einstein was born" in descriptions
    assert "Somebody died" in descriptions
    assert "C was born" not in descriptions  # only the first three births
    assert all(e.year > 0 and e.description for e in events)
    assert len(events) == 2 + 3 + 1


def test_client_requests_month_day_path():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request.url)
        return httpx.Response(200, json=FEED)

    client = WikipediaClient(fast_config(language="de"), transport=httpx.MockTransport(handler))
    events = client.fetch_on_this_day(3, 7)
    assert events
    assert str(seen[0]).endswith("/feed/v1/wikipedia/de/onthisday/all/03/07")


def test_client_not_found_is_not_retried():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        return httpx.Response(404)

    client = WikipediaClient(fast_config(max_retries=3), transport=httpx.MockTransport(handler))
    with pytest.raises(HistoryFeedError, match="No historical data"):
        client.fetch_on_this_day(1, 1)
    assert calls["n"] == 1


def test_client_rate_limit_retry():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        if calls["n"] < 2:
            return httpx.Response(429, text="Too Many Requests")
        return httpx.Response(200, json=FEED)

    client = WikipediaClient(fast_config(max_retries=2), transport=httpx.MockTransport(handler))
    assert client.fetch_on_this_day(7, 20)
    assert calls["n"] == 2


def test_client_server_error_after_retries():
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        return httpx.Response(503, text="Unavailable")

    client = WikipediaClient(fast_config(max_retries=1), transport=httpx.MockTransport(handler))
    with pytest.raises(HistoryFeedError, match="Server error"):
        client.fetch_on_this_day(7, 20)
    assert calls["n"] == 2


def test_client_connection_failure():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("offline", request=request)

    client = WikipediaClient(fast_config(max_retries=1), transport=httpx.MockTransport(handler))
    with pytest.raises(HistoryFeedError, match="Connection failed"):
        client.fetch_on_this_day(7, 20)


class SteppingMonotonic:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_client_stops_retrying_at_overall_deadline():
    clock = SteppingMonotonic()
    read_timeouts = []

    def handler(request: httpx.Request):
        read_timeouts.append(request.extensions["timeout"]["read"])
        clock.now += 10.0  # each attempt hangs until its timeout
        raise httpx.ReadTimeout("slow host", request=request)

    client = WikipediaClient(
        fast_config(max_retries=5, timeout=15.0, deadline=15.0),
        transport=httpx.MockTransport(handler),
        monotonic=clock,
        sleep=lambda _s: None,
    )
    with pytest.raises(HistoryFeedError, match="timed out"):
        client.fetch_on_this_day(7, 20)
    # Second attempt only gets the 5 s left of the budget, then no more tries
    assert read_timeouts == [15.0, 5.0]
    assert clock.now - 100.0 <= 20.0


def test_client_skips_backoff_that_would_pass_deadline():
    clock = SteppingMonotonic()
    calls = {"n": 0}
    slept = []

    def handler(request: httpx.Request):
        calls["n"] += 1
        clock.now += 1.0
        return httpx.Response(503)

    client = WikipediaClient(
        WikipediaClientConfig(max_retries=3, backoff_base=20.0, deadline=15.0),
        transport=httpx.MockTransport(handler),
        monotonic=clock,
        sleep=slept.append,
    )
    with pytest.raises(HistoryFeedError, match="Server error"):
        client.fetch_on_this_day(7, 20)
    assert calls["n"] == 1
    assert slept == []


def test_client_malformed_body():
    def handler(request: httpx.Request):
        return httpx.Response(200, text="<html>")

    client = WikipediaClient(fast_config(), transport=httpx.MockTransport(handler))
    with pytest.raises(HistoryFeedError, match="malformed"):
        client.fetch_on_this_day(7, 20)


def test_cache_expires_after_validity(db):
    clock = FixedClock(datetime(2025, 3, 12, 8, 0, tzinfo=timezone.utc))
    cache = HistoricalEventCache(db, clock=clock)
    day = date(2025, 3, 12)
    events = [HistoricalEvent(1969, "Apollo 11 lands on the Moon.")]

    assert cache.get(day) is None
    cache.put(day, events)
    assert cache.get(day) == events
    # Same month/day in another year shares the entry
    assert cache.get(date(2026, 3, 12)) == events

    clock.now += timedelta(days=6, hours=23)
    assert cache.get(day) == events
    clock.now += timedelta(hours=1)
    assert cache.get(day) is None


def test_cache_ignores_unreadable_payload(db):
    from pomodoro_tracker.repositories import put_cached_payload

    put_cached_payload(db, "03_12", "not json", datetime.now(timezone.utc).isoformat())
    assert HistoricalEventCache(db).get(date(2025, 3, 12)) is None


def test_repository_is_cache_first_and_refresh_refetches(db, today):
    calls = {"n": 0}

    def handler(request: httpx.Request):
        calls["n"] += 1
        return httpx.Response(200, json=FEED)

    client = WikipediaClient(fast_config(), transport=httpx.MockTransport(handler))
    repo = HistoricalEventsRepository(client, HistoricalEventCache(db), today_provider=today)

    first = repo.all_events()
    assert calls["n"] == 1
    assert repo.today_in_history() == first[:5]
    assert len(repo.today_in_history(limit=2)) == 2
    assert calls["n"] == 1

    assert repo.refresh() == first
    assert calls["n"] == 2


def test_repository_failure_leaves_cache_empty(db, today):
    def handler(request: httpx.Request):
        return httpx.Response(403)

    client = WikipediaClient(fast_config(), transport=httpx.MockTransport(handler))
    cache = HistoricalEventCache(db)
    repo = HistoricalEventsRepository(client, cache, today_provider=today)
    with pytest.raises(HistoryFeedError, match="Access denied"):
        repo.all_events()
    assert cache.get(today()) is None


def test_carousel_page_wraps():
    events = [HistoricalEvent(1900 + i, f"e{i}") for i in range(12)]
    page, total = carousel_page(events, 0)
    assert total == 3
    assert [e.year for e in page] == [1900, 1901, 1902, 1903, 1904]
    page, _ = carousel_page(events, 2)
    assert [e.year for e in page] == [1910, 1911]
    page, _ = carousel_page(events, 3)
    assert page[0].year == 1900
    assert carousel_page([], 4) == ([], 0)
