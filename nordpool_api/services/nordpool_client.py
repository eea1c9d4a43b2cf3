"""
HTTP client for the Nord Pool day-ahead prices endpoint.
"""

from datetime import date
from typing import Dict, Protocol, Union

import httpx

from nordpool_api.config import settings
from nordpool_api.exceptions import TransportError
from nordpool_api.logging_config import get_logger
from nordpool_api.models.price import NOT_YET_AVAILABLE, Availability

logger = get_logger(__name__)

FetchResult = Union[str, Availability]


class PriceSource(Protocol):
    """Anything that can return a raw price payload for a delivery date."""

    async def fetch(self, delivery_date: date) -> FetchResult:
        """Return the payload, or NOT_YET_AVAILABLE if the date is not published yet."""
        ...


class NordpoolClient:
    """Price source backed by the Nord Pool data portal."""

    def __init__(self, base_url: str = None, timeout: float = None):
        self.base_url = base_url or settings.nordpool_base_url
        self.timeout = timeout if timeout is not None else settings.http_timeout

    def _build_params(self, delivery_date: date) -> Dict[str, str]:
        return {
            "date": delivery_date.strftime("%Y-%m-%d"),
            "market": settings.nordpool_market,
            "deliveryArea": ",".join(settings.delivery_areas),
            "currency": settings.nordpool_currency,
        }

    async def fetch(self, delivery_date: date) -> FetchResult:
        """
        Download day-ahead prices for ``delivery_date``.

        Returns:
            The JSON payload as text, or NOT_YET_AVAILABLE when Nord Pool
            answers 204 No Content.

        Raises:
            TransportError: On network failures and non-success status codes.
        """
        params = self._build_params(delivery_date)
        logger.info("Fetching Nord Pool prices", date=delivery_date.isoformat(), url=self.base_url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.base_url, params=params)

                if response.status_code == 204:
                    logger.info("No data available yet", date=delivery_date.isoformat())
                    return NOT_YET_AVAILABLE

                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP error: {e}")


# Global client instance
nordpool_client = NordpoolClient()
