"""
In-memory price cache.
Thread-safe store of hourly price points keyed by (zone, hour start).
"""

import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from nordpool_api.logging_config import get_logger
from nordpool_api.models.price import PricePoint
from nordpool_api.utils.time_utils import SystemClock

logger = get_logger(__name__)

CacheKey = Tuple[str, datetime]


class PriceCache:
    """
    Concurrent store of price points.

    Inserts are first-writer-wins, full replace is atomic and eviction works on
    interval end. Every operation holds the lock for its whole duration, so
    readers never see a half-applied write.
    """

    def __init__(self, clock=None):
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._prices: Dict[CacheKey, PricePoint] = {}

    def add_prices(self, points: Iterable[PricePoint]) -> int:
        """
        Insert points whose key is not cached yet. Existing keys keep their value.

        Returns:
            Number of points actually inserted.
        """
        added = 0
        skipped = 0
        with self._lock:
            for point in points:
                if point.key in self._prices:
                    skipped += 1
                    continue
                self._prices[point.key] = point
                added += 1

        logger.info("Added prices to cache", added=added, duplicates_ignored=skipped)
        return added

    def update_prices(self, points: Iterable[PricePoint]) -> None:
        """Replace the whole cache content with ``points``."""
        replacement = {point.key: point for point in points}
        with self._lock:
            self._prices = replacement
        logger.info("Replaced cached prices", count=len(replacement))

    def get_all(self, zone: Optional[str] = None) -> List[PricePoint]:
        """All cached points, optionally for one zone, ordered by start then zone."""
        with self._lock:
            points = list(self._prices.values())
        if zone is not None:
            points = [point for point in points if point.zone == zone]
        return sorted(points, key=lambda point: (point.start, point.zone))

    def get_range(self, start: datetime, end: datetime, zone: Optional[str] = None) -> List[PricePoint]:
        """Cached points starting within ``[start, end)``."""
        return [point for point in self.get_all(zone) if start <= point.start < end]

    def get_current(self, zone: Optional[str] = None, at: Optional[datetime] = None) -> Optional[PricePoint]:
        """
        The point whose interval contains ``at`` (default: now), or None.
        If several match, the one with the latest start wins.
        """
        instant = at or self._clock.now()
        candidates = [point for point in self.get_all(zone) if point.contains(instant)]
        if not candidates:
            return None
        return max(candidates, key=lambda point: (point.start, point.zone))

    def remove_older_than(self, cutoff: datetime) -> int:
        """
        Drop every point whose interval ends at or before ``cutoff``.

        Returns:
            Number of points removed.
        """
        with self._lock:
            stale = [key for key, point in self._prices.items() if point.end <= cutoff]
            for key in stale:
                del self._prices[key]

        if stale:
            logger.info("Removed old prices from cache", removed=len(stale), cutoff=cutoff.isoformat())
        return len(stale)

    def zones(self) -> List[str]:
        with self._lock:
            return sorted({point.zone for point in self._prices.values()})

    def __len__(self) -> int:
        with self._lock:
            return len(self._prices)


# Global cache instance
price_cache = PriceCache()
