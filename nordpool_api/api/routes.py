"""
FastAPI route handlers exposing the cached Nord Pool prices.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

import pytz
from fastapi import APIRouter, HTTPException, Query

from nordpool_api.config import settings
from nordpool_api.logging_config import get_logger
from nordpool_api.models.price import HealthResponse, PricePoint
from nordpool_api.services.polling_service import polling_service
from nordpool_api.services.price_cache import price_cache
from nordpool_api.utils.time_utils import start_of_local_day

logger = get_logger(__name__)

router = APIRouter()


def _apply_vat(point: PricePoint) -> PricePoint:
    factor = Decimal("1") + Decimal(str(settings.vat_rate))
    return point.model_copy(update={
        "price": point.price * factor,
        "subsidized_price": point.subsidized_price * factor,
    })


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for monitoring and load balancers.
    Reports how much data is cached and how far ahead it reaches.
    """
    try:
        prices = price_cache.get_all()
        latest_end = prices[-1].end if prices else None

        details = {
            "service": "nordpool-price-api",
            "polling_state": polling_service.state.value,
            "cached_prices": len(prices),
            "zones": price_cache.zones(),
            "prices_until": latest_end.isoformat() if latest_end else None,
        }

        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(pytz.UTC),
            details=details
        )

    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return HealthResponse(
            status="unhealthy",
            timestamp=datetime.now(pytz.UTC),
            details={"service": "nordpool-price-api", "error": str(e)}
        )


@router.get("/api/{zone}/prices", response_model=List[PricePoint])
async def get_today_prices(zone: str):
    """
    All hourly prices for the current local day in a zone.

    Raises:
        HTTPException: 404 if no prices are cached for today.
    """
    zone = zone.upper()
    day_start = start_of_local_day(datetime.now(pytz.UTC), settings.fetch_timezone)
    # Day boundaries in UTC shift with DST, so recompute the next local midnight
    day_end = start_of_local_day(day_start + timedelta(hours=26), settings.fetch_timezone)

    prices = price_cache.get_range(day_start, day_end, zone)
    if not prices:
        raise HTTPException(status_code=404, detail=f"No prices for zone {zone} today")
    return prices


@router.get("/api/{zone}/all", response_model=List[PricePoint])
async def get_all_prices(zone: str):
    """
    All cached hourly prices in a zone, ordered by start time.

    Raises:
        HTTPException: 404 if nothing is cached for the zone.
    """
    zone = zone.upper()
    prices = price_cache.get_all(zone)
    if not prices:
        raise HTTPException(status_code=404, detail=f"No prices for zone {zone}")
    return prices


@router.get("/api/{zone}/prices/current", response_model=PricePoint)
async def get_current_price(
    zone: str,
    include_vat: bool = Query(
        default=False,
        description="Multiply prices by 1 + VAT rate"
    ),
):
    """
    The price for the hour containing the current instant.

    Raises:
        HTTPException: 404 if the current hour is not cached.
    """
    zone = zone.upper()
    current = price_cache.get_current(zone)
    if current is None:
        raise HTTPException(status_code=404, detail=f"No current price for zone {zone}")

    if include_vat:
        current = _apply_vat(current)
    return current
