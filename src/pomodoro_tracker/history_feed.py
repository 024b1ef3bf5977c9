from __future__ import annotations

""""On this day" historical events from the Wikimedia feed API.

 - ``WikipediaClient``: thin httpx wrapper with retries + exponential backoff
   and readable messages for the common failure statuses.
 - ``HistoricalEventCache``: per month/day JSON payloads in SQLite, valid for
   seven days.
 - ``HistoricalEventsRepository``: cache-first access used by the calendar
   page; ``refresh`` drops the cached day and refetches.

Network calls are kept minimal; tests mock the HTTP transport.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
import json
import logging
import time
from typing import Callable, Optional

import httpx

from .database_manager import DatabaseManager
from .errors import HistoryFeedError
from .models import HistoricalEvent
from .repositories import delete_cached_payload, get_cached_payload, put_cached_payload

logger = logging.getLogger(__name__)

WIKIMEDIA_FEED_BASE = "https://api.wikimedia.org/feed/v1/wikipedia/{lang}/"
CACHE_VALIDITY = timedelta(days=7)
TODAY_LIMIT = 5
HIGHLIGHT_LIMIT = 3  # births / deaths taken per day

_STATUS_MESSAGES = {
    403: "Access denied. Check your internet connection.",
    404: "No historical data found for this day",
    429: "Too many requests. Please wait a moment.",
}

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class WikipediaClientConfig:
    language: str = "en"
    timeout: float = 15.0  # per request
    deadline: float = 15.0  # whole fetch, retries and backoff included
    max_retries: int = 2
    backoff_base: float = 0.75
    user_agent: str = "PomodoroTracker/1.0 (desktop)"

    @property
    def base_url(self) -> str:
        return WIKIMEDIA_FEED_BASE.format(lang=self.language)


def parse_on_this_day(data: dict) -> list[HistoricalEvent]:
    """Flatten an ``onthisday/all`` response into events sorted by year."""
    events: list[HistoricalEvent] = []

    def add(items, suffix: str = "") -> None:
        for item in items or []:
            year = item.get("year") or 0
            text = (item.get("text") or "").strip()
            if isinstance(year, int) and year > 0 and text:
                events.append(HistoricalEvent(year=year, description=text + suffix))

    add(data.get("selected"))
    add(data.get("events"))
    add((data.get("births") or [])[:HIGHLIGHT_LIMIT], " was born")
    add((data.get("deaths") or [])[:HIGHLIGHT_LIMIT], " died")
    events.sort(key=lambda e: e.year)
    return events


class WikipediaClient:
    def __init__(
        self,
        config: WikipediaClientConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._config = config or WikipediaClientConfig()
        self._monotonic = monotonic
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
            transport=transport,
            headers={"User-Agent": self._config.user_agent, "Accept": "application/json"},
        )

    def close(self):  # pragma: no cover simple
        self._client.close()

    def fetch_on_this_day(self, month: int, day: int) -> list[HistoricalEvent]:
        """Return the day's events or raise HistoryFeedError.

        Every attempt and backoff wait shares one ``config.deadline`` budget;
        each request gets at most what is left of it.
        """
        path = f"onthisday/all/{month:02d}/{day:02d}"
        deadline = self._monotonic() + self._config.deadline
        attempt = 0
        while True:
            remaining = deadline - self._monotonic()
            if remaining <= 0:
                raise HistoryFeedError("Connection timed out")
            try:
                resp = self._client.get(path, timeout=min(self._config.timeout, remaining))
                if resp.status_code in _STATUS_MESSAGES:
                    msg = _STATUS_MESSAGES[resp.status_code]
                    if resp.status_code != 429:
                        # Retrying will not change a 403/404
                        raise _FinalError(msg)
                    raise HistoryFeedError(msg)
                if resp.status_code >= 500:
                    raise HistoryFeedError("Server error. Please try again later.")
                if resp.status_code >= 400:
                    raise _FinalError(f"API error: {resp.status_code}")
                try:
                    data = resp.json()
                except ValueError as e:
                    raise _FinalError("Empty or malformed response") from e
                if not isinstance(data, dict):
                    raise _FinalError("Empty or malformed response")
                return parse_on_this_day(data)
            except _FinalError as e:
                raise HistoryFeedError(str(e)) from e
            except HistoryFeedError:
                attempt += 1
                if attempt > self._config.max_retries or not self._backoff(attempt, deadline):
                    raise
            except httpx.TimeoutException as e:
                attempt += 1
                if attempt > self._config.max_retries or not self._backoff(attempt, deadline):
                    raise HistoryFeedError("Connection timed out") from e
            except httpx.HTTPError as e:
                attempt += 1
                if attempt > self._config.max_retries or not self._backoff(attempt, deadline):
                    raise HistoryFeedError(f"Connection failed: {e}") from e

    def _backoff(self, attempt: int, deadline: float) -> bool:
        """Sleep before the next attempt; False when that would pass the deadline."""
        delay = self._config.backoff_base * (2 ** (attempt - 1))
        if self._monotonic() + delay >= deadline:
            logger.info("history feed out of time budget", extra={"_json_attempt": attempt})
            return False
        self._sleep(delay)
        return True


class _FinalError(Exception):
    pass


class HistoricalEventCache:
    def __init__(self, db: DatabaseManager, clock: Optional[Clock] = None, validity: timedelta = CACHE_VALIDITY):
        self._db = db
        self._clock: Clock = clock or _utc_now
        self._validity = validity

    @staticmethod
    def key_for(day: date) -> str:
        return f"{day.month:02d}_{day.day:02d}"

    def get(self, day: date) -> list[HistoricalEvent] | None:
        cached = get_cached_payload(self._db, self.key_for(day))
        if not cached:
            return None
        payload, fetched_at = cached
        try:
            fetched = datetime.fromisoformat(fetched_at)
            if self._clock() - fetched >= self._validity:
                return None
            return [HistoricalEvent(year=int(o["year"]), description=str(o["description"])) for o in json.loads(payload)]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("discarding unreadable history cache for %s: %s", self.key_for(day), e)
            return None

    def put(self, day: date, events: list[HistoricalEvent]) -> None:
        payload = json.dumps([{"year": e.year, "description": e.description} for e in events], ensure_ascii=False)
        put_cached_payload(self._db, self.key_for(day), payload, self._clock().isoformat())

    def clear(self, day: date | None = None) -> None:
        delete_cached_payload(self._db, None if day is None else self.key_for(day))


class HistoricalEventsRepository:
    def __init__(
        self,
        client: WikipediaClient,
        cache: HistoricalEventCache,
        today_provider: Optional[Callable[[], date]] = None,
    ):
        self._client = client
        self._cache = cache
        self._today = today_provider or date.today

    def all_events(self) -> list[HistoricalEvent]:
        today = self._today()
        cached = self._cache.get(today)
        if cached is not None:
            return cached
        return self._fetch_and_cache(today)

    def today_in_history(self, limit: int = TODAY_LIMIT) -> list[HistoricalEvent]:
        return self.all_events()[:limit]

    def refresh(self) -> list[HistoricalEvent]:
        today = self._today()
        self._cache.clear(today)
        return self._fetch_and_cache(today)

    def _fetch_and_cache(self, day: date) -> list[HistoricalEvent]:
        events = self._client.fetch_on_this_day(day.month, day.day)
        self._cache.put(day, events)
        logger.info("history feed cached", extra={"_json_day": day.isoformat(), "_json_count": len(events)})
        return events


def carousel_page(events: list[HistoricalEvent], index: int, per_page: int = TODAY_LIMIT) -> tuple[list[HistoricalEvent], int]:
    """Return (events on page ``index`` wrapped into range, total pages)."""
    if not events:
        return [], 0
    total = (len(events) + per_page - 1) // per_page
    index %= total
    start = index * per_page
    return events[start : start + per_page], total


__all__ = [
    "WikipediaClient",
    "WikipediaClientConfig",
    "HistoricalEventCache",
    "HistoricalEventsRepository",
    "parse_on_this_day",
    "carousel_page",
    "CACHE_VALIDITY",
]
