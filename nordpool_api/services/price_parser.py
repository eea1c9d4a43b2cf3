"""
Nord Pool payload parser.
Turns quarter-hour day-ahead entries into hourly price points with subsidy applied.
"""

import json
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Mapping, Tuple, Union

import pytz
from pydantic import ValidationError

from nordpool_api.exceptions import ParseError
from nordpool_api.logging_config import get_logger
from nordpool_api.models.price import NordpoolData, PricePoint, QuarterlyPrice
from nordpool_api.utils.time_utils import truncate_to_hour

logger = get_logger(__name__)

DEFAULT_CURRENCY = "NOK"
KWH_PER_MWH = Decimal("1000")

# Norwegian electricity subsidy: the state covers 90% of the price above 0.75 per kWh
SUBSIDY_THRESHOLD = Decimal("0.75")
SUBSIDY_CONSUMER_SHARE = Decimal("0.1")

Payload = Union[str, bytes, Mapping]


def calculate_subsidized_price(price: Decimal) -> Decimal:
    """
    Apply the subsidy formula to a per-kWh price.

    Prices at or below the threshold are unchanged; above it the consumer pays
    the threshold plus 10% of the excess.
    """
    if price <= SUBSIDY_THRESHOLD:
        return price
    return SUBSIDY_THRESHOLD + SUBSIDY_CONSUMER_SHARE * (price - SUBSIDY_THRESHOLD)


def _to_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return pytz.UTC.localize(instant)
    return instant.astimezone(pytz.UTC)


class NordpoolDataParser:
    """Stateless parser for Nord Pool day-ahead payloads."""

    def parse_prices(self, payload: Payload) -> List[PricePoint]:
        """
        Parse a payload into hourly price points.

        Args:
            payload: JSON text/bytes or an already decoded mapping

        Returns:
            Price points ordered by hour start, then zone code.

        Raises:
            ParseError: If the payload is not valid JSON or has an unexpected shape.
        """
        data = self._load(payload)

        if not data.multi_area_entries:
            return []

        currency = data.currency or DEFAULT_CURRENCY
        buckets: Dict[Tuple[str, datetime], List[QuarterlyPrice]] = defaultdict(list)

        for entry in data.multi_area_entries:
            if not entry.entry_per_area:
                continue

            start = _to_utc(entry.delivery_start)
            end = _to_utc(entry.delivery_end)
            hour_start = truncate_to_hour(start)

            for zone, price_per_mwh in entry.entry_per_area.items():
                buckets[(zone, hour_start)].append(
                    QuarterlyPrice(start=start, end=end, price=price_per_mwh / KWH_PER_MWH)
                )

        points = [
            self._build_point(zone, hour_start, slices, currency)
            for (zone, hour_start), slices in buckets.items()
        ]
        points.sort(key=lambda point: (point.start, point.zone))

        partial = sum(1 for point in points if len(point.quarterly_prices) != 4)
        if partial:
            logger.debug("Parsed hours with incomplete quarterly data", count=partial)

        return points

    def _load(self, payload: Payload) -> NordpoolData:
        try:
            if isinstance(payload, (str, bytes, bytearray)):
                payload = json.loads(payload, parse_float=Decimal)
            if not isinstance(payload, Mapping):
                raise ParseError(f"Expected a JSON object, got {type(payload).__name__}")
            return NordpoolData.model_validate(payload)
        except ParseError:
            raise
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON payload: {e}")
        except ValidationError as e:
            raise ParseError(f"Unexpected payload shape: {e}")

    def _build_point(
        self,
        zone: str,
        hour_start: datetime,
        slices: List[QuarterlyPrice],
        currency: str,
    ) -> PricePoint:
        ordered = sorted(slices, key=lambda q: q.start)
        average = sum((q.price for q in ordered), Decimal("0")) / len(ordered)

        return PricePoint(
            zone=zone,
            start=hour_start,
            end=hour_start + timedelta(hours=1),
            price=average,
            subsidized_price=calculate_subsidized_price(average),
            currency=currency,
            quarterly_prices=ordered,
        )


# Global parser instance
price_parser = NordpoolDataParser()
