"""
Test configuration and fixtures for the Nordpool Price API tests.
Contains shared fixtures and test doubles for clock, scheduler and price source.
"""

import asyncio
import json
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

import pytest
import pytz
from fastapi.testclient import TestClient

from nordpool_api.main import create_app
from nordpool_api.models.price import PricePoint, QuarterlyPrice
from nordpool_api.services.price_cache import price_cache
from nordpool_api.services.price_parser import calculate_subsidized_price

OSLO = pytz.timezone("Europe/Oslo")
ZONES = ["NO1", "NO2", "NO3", "NO4", "NO5"]


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=pytz.UTC)


def oslo(year, month, day, hour=0, minute=0) -> datetime:
    """Oslo wall-clock time as a UTC instant."""
    return OSLO.localize(datetime(year, month, day, hour, minute)).astimezone(pytz.UTC)


class FakeClock:
    """
    Deterministic clock: sleeping advances time instantly and is recorded.
    """

    def __init__(self, now: datetime):
        self._now = now
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    async def sleep(self, seconds: float, token) -> bool:
        self.sleeps.append(seconds)
        self._now += timedelta(seconds=seconds)
        await asyncio.sleep(0)
        return token.is_cancelled


class FrozenClock:
    """
    Clock whose time never advances while sleeps really wait on the token.
    """

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    async def sleep(self, seconds: float, token) -> bool:
        return await token.wait(seconds)


class FakeHandle:
    def __init__(self, name: str):
        self.name = name
        self.stopped = False
        self.hang = False

    def cancel(self) -> None:
        self.stopped = True

    async def join(self, timeout: Optional[float] = None) -> bool:
        if self.hang:
            await asyncio.Event().wait()
        return True

    async def stop(self, grace: float = 5.0) -> bool:
        self.cancel()
        return await self.join(grace)


class RecordingScheduler:
    """Records recurring registrations instead of running them."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.jobs: List[dict] = []

    def run_recurring(self, start_time, next_run, action, error_policy=None, name="run_recurring"):
        handle = FakeHandle(name)
        self.jobs.append({
            "name": name,
            "start_time": start_time,
            "next_run": next_run,
            "action": action,
            "handle": handle,
        })
        return handle

    def job(self, name: str) -> dict:
        return next(job for job in self.jobs if job["name"] == name)


class FakePriceSource:
    """
    Price source returning queued results in order. Exceptions in the queue are raised.
    Once the queue is exhausted the last result repeats.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[date] = []
        self.on_fetch = None

    async def fetch(self, delivery_date: date):
        self.calls.append(delivery_date)
        if self.on_fetch is not None:
            self.on_fetch(len(self.calls))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if callable(result):
            result = result(delivery_date)
        if isinstance(result, Exception):
            raise result
        return result


def make_payload(
    day_start: datetime,
    hours: int = 24,
    zones: Optional[List[str]] = None,
    currency: Optional[str] = "NOK",
) -> str:
    """
    Build a Nord Pool style payload with four 15-minute entries per hour.
    Prices are 100 + 10 * hour + 0.5 * quarter (+5 per zone index) per MWh.
    """
    zones = zones or ZONES
    entries = []
    for hour in range(hours):
        for quarter in range(4):
            start = day_start + timedelta(hours=hour, minutes=15 * quarter)
            prices: Dict[str, float] = {
                zone: 100.0 + hour * 10 + quarter * 0.5 + index * 5
                for index, zone in enumerate(zones)
            }
            entries.append({
                "deliveryStart": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "deliveryEnd": (start + timedelta(minutes=15)).strftime("%Y-%m-%dT%H:%M:%SZ"),
                "entryPerArea": prices,
            })

    payload = {
        "deliveryDateCET": day_start.astimezone(OSLO).date().isoformat(),
        "multiAreaEntries": entries,
    }
    if currency is not None:
        payload["currency"] = currency
    return json.dumps(payload)


def payload_for_day(delivery_date: date) -> str:
    """Payload covering the Oslo local day of ``delivery_date``."""
    start = oslo(delivery_date.year, delivery_date.month, delivery_date.day)
    end = oslo(*(delivery_date + timedelta(days=1)).timetuple()[:3])
    hours = int((end - start).total_seconds() // 3600)
    return make_payload(start, hours=hours)


def make_point(zone: str, start: datetime, price: str = "0.5", quarters: int = 4) -> PricePoint:
    value = Decimal(price)
    slices = [
        QuarterlyPrice(
            start=start + timedelta(minutes=15 * q),
            end=start + timedelta(minutes=15 * (q + 1)),
            price=value,
        )
        for q in range(quarters)
    ]
    return PricePoint(
        zone=zone,
        start=start,
        end=start + timedelta(hours=1),
        price=value,
        subsidized_price=calculate_subsidized_price(value),
        currency="NOK",
        quarterly_prices=slices,
    )


@pytest.fixture
def fake_clock():
    """Clock frozen at 2025-10-16 10:00 Oslo time."""
    return FakeClock(oslo(2025, 10, 16, 10))


@pytest.fixture
def recording_scheduler(fake_clock):
    return RecordingScheduler(fake_clock)


@pytest.fixture
def test_app():
    """
    Create a test FastAPI application.
    """
    return create_app()


@pytest.fixture
def test_client(test_app):
    """
    Create a test client for the FastAPI application.
    The lifespan is not entered, so no polling happens.
    """
    return TestClient(test_app)


@pytest.fixture
def cached_prices():
    """
    Fill the global price cache around the current hour and empty it afterwards.
    """
    now = datetime.now(pytz.UTC).replace(minute=0, second=0, microsecond=0)
    points = [
        make_point(zone, now + timedelta(hours=offset), price=str(Decimal("0.5") + Decimal(offset) / 10))
        for zone in ("NO1", "NO2")
        for offset in (-1, 0, 1)
    ]
    price_cache.update_prices(points)
    yield points
    price_cache.update_prices([])
