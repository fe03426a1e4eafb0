"""Monthly prayer time source: memo, SQLite cache, then the Aladhan API."""

import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Protocol

import requests

from adhanbell.db.models import MonthlyPrayerTimes
from adhanbell.db.repository import Repository
from adhanbell.errors import FetchError, MalformedScheduleError
from adhanbell.utils.constants import ALADHAN_TIMING_KEYS, DEFAULT_FETCH_FAILURE_TTL

logger = logging.getLogger(__name__)


class MonthFetcher(Protocol):
    """Remote supplier of one month of raw prayer times."""

    name: str

    def fetch_month(self, year: int, month: int) -> Mapping[int, Mapping[str, str]]:
        """Return day-of-month -> {prayer name: "HH:MM"}; blocking."""
        ...


class AladhanClient:
    """Client for the Aladhan monthly calendar endpoint."""

    name = "aladhan"

    def __init__(
        self,
        base_url: str,
        latitude: float,
        longitude: float,
        method: int,
        school: int,
        timeout: float = 15,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.latitude = latitude
        self.longitude = longitude
        self.method = method
        self.school = school
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_month(self, year: int, month: int) -> dict[int, dict[str, str]]:
        """Fetch one month of timings.

        Raises:
            requests.RequestException: on network or HTTP errors
            ValueError: if the response is not the expected shape
        """
        response = self.session.get(
            f"{self.base_url}/calendar/{year}/{month}",
            params={
                "latitude": self.latitude,
                "longitude": self.longitude,
                "method": self.method,
                "school": self.school,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return parse_aladhan_calendar(response.json())


def parse_aladhan_calendar(payload: Mapping[str, Any]) -> dict[int, dict[str, str]]:
    """Map an Aladhan calendar response to day -> {prayer: "HH:MM"}."""
    if payload.get("code") != 200 or not isinstance(payload.get("data"), list):
        raise ValueError(f"Unexpected Aladhan response: {payload.get('status', 'no status')}")

    days: dict[int, dict[str, str]] = {}
    for entry in payload["data"]:
        try:
            day = int(entry["date"]["gregorian"]["day"])
            timings = entry["timings"]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed Aladhan calendar entry: {e}") from e

        # Values look like "05:40 (+08)"; parsing strips the suffix
        days[day] = {
            prayer: timings[key] for key, prayer in ALADHAN_TIMING_KEYS.items() if key in timings
        }

    return days


class MonthlyTimeSource:
    """Supplies MonthlyPrayerTimes for a (year, month).

    Lookups go through an in-process memo, then the SQLite cache, then the
    remote fetcher. Remote fetches run in a worker thread and are retried
    before giving up with a FetchError.

    Concurrent lookups of the same month share one load, and a failed load
    is remembered for `failure_ttl` seconds so an outage costs one retry
    loop rather than one per chat.
    """

    def __init__(
        self,
        repo: Repository,
        fetcher: MonthFetcher,
        retries: int = 3,
        retry_delay: float = 2.0,
        failure_ttl: float = DEFAULT_FETCH_FAILURE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.repo = repo
        self.fetcher = fetcher
        self.retries = max(retries, 1)
        self.retry_delay = retry_delay
        self.failure_ttl = failure_ttl
        self.clock = clock
        self._memo: dict[tuple[int, int], MonthlyPrayerTimes] = {}
        self._inflight: dict[tuple[int, int], asyncio.Task] = {}
        self._failures: dict[tuple[int, int], tuple[FetchError, float]] = {}

    async def fetch(self, year: int, month: int) -> MonthlyPrayerTimes:
        """Get a month of prayer times.

        Raises:
            FetchError: if the month is neither cached nor fetchable
        """
        key = (year, month)
        if key in self._memo:
            return self._memo[key]

        failure = self._failures.get(key)
        if failure is not None:
            error, expires_at = failure
            if self.clock() < expires_at:
                logger.debug(f"{year}-{month:02d} failed recently, not retrying yet")
                raise error
            del self._failures[key]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(year, month))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))

        # One caller being cancelled must not cancel the shared load
        return await asyncio.shield(task)

    async def _load(self, year: int, month: int) -> MonthlyPrayerTimes:
        key = (year, month)

        try:
            cached = await self.repo.get_monthly_times(year, month)
        except MalformedScheduleError as e:
            logger.warning(f"Discarding corrupt cache entry for {year}-{month:02d}: {e}")
            await self.repo.delete_monthly_times(year, month)
            cached = None

        if cached is not None:
            logger.debug(f"Cache hit for {year}-{month:02d}")
            self._memo[key] = cached
            return cached

        logger.info(f"Cache miss for {year}-{month:02d}, fetching from {self.fetcher.name}")
        try:
            monthly = await self._fetch_remote(year, month)
        except FetchError as e:
            self._failures[key] = (e, self.clock() + self.failure_ttl)
            raise

        await self._store(monthly)
        return monthly

    async def refresh(self, year: int, month: int) -> MonthlyPrayerTimes:
        """Re-download a month, replacing the cached copy only on success.

        Raises:
            FetchError: if the download fails; any cached copy is kept
        """
        monthly = await self._fetch_remote(year, month)
        await self._store(monthly)
        logger.info(f"Refreshed prayer times for {year}-{month:02d}")
        return monthly

    async def _store(self, monthly: MonthlyPrayerTimes) -> None:
        key = (monthly.year, monthly.month)
        await self.repo.save_monthly_times(monthly, self.fetcher.name)
        self._memo[key] = monthly
        self._failures.pop(key, None)

    async def _fetch_remote(self, year: int, month: int) -> MonthlyPrayerTimes:
        last_error: Exception | None = None

        for attempt in range(1, self.retries + 1):
            try:
                raw = await asyncio.to_thread(self.fetcher.fetch_month, year, month)
                return MonthlyPrayerTimes.from_mapping(year, month, raw)

            except MalformedScheduleError as e:
                # A bad payload will not improve on retry
                raise FetchError(year, month, f"invalid data from {self.fetcher.name}: {e}") from e

            except (requests.RequestException, ValueError) as e:
                last_error = e
                logger.warning(
                    f"Fetch {year}-{month:02d} attempt {attempt}/{self.retries} failed: {e}"
                )
                if attempt < self.retries:
                    await asyncio.sleep(self.retry_delay * attempt)

        raise FetchError(year, month, str(last_error))
