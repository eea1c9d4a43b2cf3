"""
Pydantic data models for Nord Pool payloads, cached price points and API responses.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Availability(str, Enum):
    """
    Outcome of a price source fetch that returned no data.
    """
    NOT_YET_AVAILABLE = "NOT_YET_AVAILABLE"  # Upstream answered, but the date is not published yet


NOT_YET_AVAILABLE = Availability.NOT_YET_AVAILABLE


class QuarterlyPrice(BaseModel):
    """
    A single sub-hourly price slice, normally 15 minutes long.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime = Field(description="Slice start (UTC)")
    end: datetime = Field(description="Slice end (UTC)")
    price: Decimal = Field(description="Slice price (currency/kWh)")


class PricePoint(BaseModel):
    """
    Hourly aggregated, subsidy-adjusted price for one zone.

    Built by the data parser from the quarter-hour entries of a Nord Pool
    payload and never modified after it enters the cache.
    """
    model_config = ConfigDict(frozen=True)

    zone: str = Field(description="Price area code, e.g. NO1")
    start: datetime = Field(description="Hour start (UTC)")
    end: datetime = Field(description="Hour end (UTC), always start + 1 hour")
    price: Decimal = Field(description="Average of the quarterly prices (currency/kWh) - can be negative")
    subsidized_price: Decimal = Field(description="Price after the electricity subsidy (currency/kWh)")
    currency: str = Field(default="NOK", description="Currency code from the payload")
    quarterly_prices: List[QuarterlyPrice] = Field(
        default_factory=list,
        description="Sub-hourly slices that produced the average, ordered by start"
    )

    @model_validator(mode="after")
    def _check_hour_span(self) -> "PricePoint":
        if self.end - self.start != timedelta(hours=1):
            raise ValueError("Price point must span exactly one hour")
        return self

    @property
    def key(self) -> tuple:
        """Cache key: (zone, start)."""
        return self.zone, self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class MultiAreaEntry(BaseModel):
    """
    One sub-hourly entry in a Nord Pool payload, prices per MWh keyed by zone.
    """
    delivery_start: datetime = Field(alias="deliveryStart")
    delivery_end: datetime = Field(alias="deliveryEnd")
    entry_per_area: Optional[Dict[str, Decimal]] = Field(default=None, alias="entryPerArea")


class NordpoolData(BaseModel):
    """
    Day-ahead price payload returned by the Nord Pool data portal.

    Only the fields the parser needs are declared; everything else is ignored.
    """
    model_config = ConfigDict(extra="ignore")

    delivery_date_cet: Optional[str] = Field(default=None, alias="deliveryDateCET")
    currency: Optional[str] = None
    multi_area_entries: Optional[List[MultiAreaEntry]] = Field(default=None, alias="multiAreaEntries")


class HealthResponse(BaseModel):
    """
    Health check response model.
    """
    status: str = Field(description="Health status")
    timestamp: datetime = Field(description="Health check timestamp")
    details: Optional[dict] = Field(default=None, description="Additional health details")
