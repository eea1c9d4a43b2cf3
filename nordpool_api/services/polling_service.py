"""
Polling service that keeps the price cache filled from Nord Pool.
Loads today's (and, after the fetch hour, tomorrow's) prices on startup, then
fetches tomorrow's prices every afternoon and evicts past days every midnight.
"""

import asyncio
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional

from nordpool_api.config import settings
from nordpool_api.exceptions import PriceAPIException
from nordpool_api.logging_config import get_logger
from nordpool_api.models.price import NOT_YET_AVAILABLE
from nordpool_api.scheduler.cancellation import CancellationToken
from nordpool_api.scheduler.scheduler import ScheduledTask, Scheduler, scheduler as default_scheduler
from nordpool_api.services.nordpool_client import PriceSource, nordpool_client
from nordpool_api.services.price_cache import PriceCache, price_cache
from nordpool_api.services.price_parser import NordpoolDataParser, price_parser
from nordpool_api.utils.time_utils import get_timezone, local_date, next_local_time, start_of_local_day, to_local

logger = get_logger(__name__)


class PollingState(str, Enum):
    STOPPED = "STOPPED"
    STARTUP = "STARTUP"
    STEADY = "STEADY"


class NordpoolPollingService:
    """Owns the daily fetch, retry and cleanup cycle."""

    def __init__(
        self,
        source: PriceSource = None,
        parser: NordpoolDataParser = None,
        cache: PriceCache = None,
        scheduler: Scheduler = None,
        fetch_hour: int = None,
        retry_delay: timedelta = None,
        timezone: str = None,
        cancel_grace: float = None,
    ):
        self._source = source or nordpool_client
        self._parser = parser or price_parser
        self._cache = cache if cache is not None else price_cache
        self._scheduler = scheduler or default_scheduler
        self._clock = self._scheduler.clock
        self.fetch_hour = settings.fetch_hour if fetch_hour is None else fetch_hour
        self.retry_delay = retry_delay or timedelta(minutes=settings.retry_delay_minutes)
        self.timezone = get_timezone(timezone or settings.fetch_timezone)
        self.cancel_grace = settings.cancel_grace_seconds if cancel_grace is None else cancel_grace

        self.state = PollingState.STOPPED
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._scheduled_tasks: List[ScheduledTask] = []

    async def start(self) -> None:
        """Start the polling background task."""
        if self._task is not None and not self._task.done():
            logger.warning("Polling service already running")
            return

        self._token = CancellationToken()
        self.state = PollingState.STARTUP
        self._task = asyncio.create_task(self._run(self._token), name="nordpool-polling")
        logger.info("Polling service started", fetch_hour=self.fetch_hour, timezone=self.timezone.zone)

    async def stop(self) -> None:
        """Cancel both daily jobs and any pending retry wait."""
        if self._token is None:
            return

        logger.info("Polling service stopping - cancelling scheduled jobs")
        self._token.cancel()
        for task in self._scheduled_tasks:
            task.cancel()

        # One grace period covers every job and the polling task together
        joins = [asyncio.ensure_future(task.join()) for task in self._scheduled_tasks]
        waiting = set(joins)
        if self._task is not None and not self._task.done():
            waiting.add(self._task)

        if waiting:
            _, pending = await asyncio.wait(waiting, timeout=self.cancel_grace)
            if pending:
                logger.warning(
                    "Polling jobs still running after grace period",
                    pending=len(pending),
                    grace_seconds=self.cancel_grace,
                )
            for join in joins:
                if not join.done():
                    join.cancel()

        self._scheduled_tasks.clear()
        self._token = None
        self._task = None
        self.state = PollingState.STOPPED
        logger.info("Polling service stopped")

    @property
    def is_running(self) -> bool:
        return self.state is not PollingState.STOPPED

    async def _run(self, token: CancellationToken) -> None:
        try:
            await self.fetch_initial_prices()
        except Exception as e:
            logger.error("Initial price fetch failed", error=str(e))

        if token.is_cancelled:
            return

        self.schedule_daily_jobs()
        self.state = PollingState.STEADY

        await token.wait()

    def schedule_daily_jobs(self) -> None:
        """Register the daily fetch and cleanup jobs on local wall-clock time."""
        now = self._clock.now()
        next_fetch = next_local_time(now, self.fetch_hour, self.timezone)
        next_midnight = next_local_time(now, 0, self.timezone)

        logger.info("Scheduling daily fetch", next_run=to_local(next_fetch, self.timezone).isoformat())
        self._scheduled_tasks.append(
            self._scheduler.run_recurring(
                next_fetch,
                lambda previous: next_local_time(previous, self.fetch_hour, self.timezone),
                self.fetch_tomorrow_with_retry,
                name="daily-fetch",
            )
        )

        logger.info("Scheduling daily cleanup", next_run=to_local(next_midnight, self.timezone).isoformat())
        self._scheduled_tasks.append(
            self._scheduler.run_recurring(
                next_midnight,
                lambda previous: next_local_time(previous, 0, self.timezone),
                self.clean_old_prices,
                name="daily-cleanup",
            )
        )

    async def fetch_initial_prices(self) -> None:
        """Load today's prices, and tomorrow's too once the fetch hour has passed."""
        now_local = to_local(self._clock.now(), self.timezone)
        today = now_local.date()

        logger.info("Fetching initial prices for today", date=today.isoformat())
        await self.fetch_and_store_prices(today)

        if now_local.hour >= self.fetch_hour:
            tomorrow = today + timedelta(days=1)
            logger.info("Past fetch hour, also fetching tomorrow's prices", date=tomorrow.isoformat())
            await self.fetch_and_store_prices(tomorrow)

    async def fetch_tomorrow_with_retry(self, token: CancellationToken = None) -> bool:
        """
        Fetch tomorrow's prices, retrying while they are not published yet.

        Hard failures end the attempt; the job runs again the next day. The
        backoff wait ends when either ``token`` (the scheduled job's) or the
        service itself is cancelled.

        Returns:
            True if prices were stored.
        """
        tomorrow = local_date(self._clock.now(), self.timezone) + timedelta(days=1)
        cancel = CancellationToken.any_of(*[t for t in (token, self._token) if t is not None])
        try:
            return await self._retry_until_stored(tomorrow, cancel)
        finally:
            cancel.detach()

    async def _retry_until_stored(self, tomorrow: date, token: CancellationToken) -> bool:
        attempts = 0

        while not token.is_cancelled:
            attempts += 1
            try:
                if await self.fetch_and_store_prices(tomorrow):
                    return True
            except PriceAPIException as e:
                logger.error(
                    "Daily price fetch failed, next attempt at next scheduled run",
                    date=tomorrow.isoformat(),
                    attempts=attempts,
                    error=str(e),
                )
                return False

            logger.info(
                "Data not available yet, waiting before retry",
                date=tomorrow.isoformat(),
                attempts=attempts,
                retry_minutes=self.retry_delay.total_seconds() / 60,
            )
            if await self._clock.sleep(self.retry_delay.total_seconds(), token):
                break

        logger.info("Daily price fetch cancelled", date=tomorrow.isoformat(), attempts=attempts)
        return False

    async def fetch_and_store_prices(self, delivery_date: date) -> bool:
        """
        Fetch, parse and cache prices for one delivery date.

        Returns:
            False if the source has no data for the date yet, True otherwise.

        Raises:
            TransportError: If the source could not be reached.
            ParseError: If the payload could not be parsed.
        """
        payload = await self._source.fetch(delivery_date)

        if payload is NOT_YET_AVAILABLE:
            logger.info("Prices not published yet", date=delivery_date.isoformat())
            return False

        points = self._parser.parse_prices(payload)
        added = self._cache.add_prices(points)

        logger.info(
            "Fetched and stored prices",
            date=delivery_date.isoformat(),
            count=len(points),
            added=added,
        )
        return True

    def clean_old_prices(self) -> int:
        """Evict every price that ended before the start of the current local day."""
        cutoff = start_of_local_day(self._clock.now(), self.timezone)
        logger.info("Cleaning old prices", cutoff=cutoff.isoformat())
        return self._cache.remove_older_than(cutoff)


# Global polling service instance
polling_service = NordpoolPollingService()
