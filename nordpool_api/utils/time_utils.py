"""
Clock abstraction and local wall-clock helpers.
All instants handled by the service are timezone-aware UTC datetimes; local
time only matters for deciding which delivery day and which trigger hour apply.
"""

from datetime import date, datetime, time, timedelta
from typing import Union

import pytz


class SystemClock:
    """Real clock. Sleeps are cancellable through a CancellationToken."""

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)

    async def sleep(self, seconds: float, token) -> bool:
        """
        Sleep for ``seconds`` or until ``token`` is cancelled.

        Returns:
            True if the sleep was cut short by cancellation.
        """
        return await token.wait(max(0.0, seconds))


def get_timezone(tz: Union[str, pytz.BaseTzInfo]) -> pytz.BaseTzInfo:
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def to_local(instant: datetime, tz) -> datetime:
    """Convert an aware instant to local time in ``tz``. Naive input is taken as UTC."""
    if instant.tzinfo is None:
        instant = pytz.UTC.localize(instant)
    return instant.astimezone(get_timezone(tz))


def local_date(instant: datetime, tz) -> date:
    return to_local(instant, tz).date()


def local_wall_time_to_utc(day: date, wall_time: time, tz) -> datetime:
    """
    Resolve a local calendar date and wall-clock time to a UTC instant.

    Ambiguous or non-existent wall times (DST switches) resolve to the
    standard-time interpretation.
    """
    zone = get_timezone(tz)
    local = zone.localize(datetime.combine(day, wall_time), is_dst=False)
    return local.astimezone(pytz.UTC)


def next_local_time(after: datetime, hour: int, tz, minute: int = 0) -> datetime:
    """
    Next instant strictly after ``after`` when the local clock in ``tz`` shows
    ``hour:minute``. The result is in UTC.

    Examples (Europe/Oslo, hour=15):
        - 14:59 local -> 15:00 the same day
        - 15:00 local -> 15:00 the next day
        - 2025-03-29 15:00 CET -> 2025-03-30 15:00 CEST (23 hours later)
    """
    wall_time = time(hour, minute)
    day = local_date(after, tz)
    candidate = local_wall_time_to_utc(day, wall_time, tz)
    while candidate <= after:
        day += timedelta(days=1)
        candidate = local_wall_time_to_utc(day, wall_time, tz)
    return candidate


def start_of_local_day(instant: datetime, tz) -> datetime:
    """Local midnight of the day containing ``instant``, as a UTC instant."""
    return local_wall_time_to_utc(local_date(instant, tz), time(0, 0), tz)


def truncate_to_hour(instant: datetime) -> datetime:
    return instant.replace(minute=0, second=0, microsecond=0)
