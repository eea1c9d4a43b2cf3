"""
Unit tests for the Nord Pool payload parser.
"""

import json
import random
from datetime import timedelta
from decimal import Decimal

import pytest

from nordpool_api.exceptions import ParseError
from nordpool_api.services.price_parser import NordpoolDataParser, calculate_subsidized_price

from tests.conftest import ZONES, make_payload, utc


def quarter_entries(hour_start, prices, zone="NO1"):
    """Four 15-minute entries for one hour, one price per quarter."""
    entries = []
    for quarter, price in enumerate(prices):
        start = hour_start + timedelta(minutes=15 * quarter)
        entries.append({
            "deliveryStart": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "deliveryEnd": (start + timedelta(minutes=15)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "entryPerArea": {zone: price},
        })
    return entries


def payload_json(entries, currency="NOK"):
    body = {"deliveryDateCET": "2025-10-17", "multiAreaEntries": entries}
    if currency is not None:
        body["currency"] = currency
    return json.dumps(body)


@pytest.fixture
def parser():
    return NordpoolDataParser()


@pytest.fixture
def sample_payload():
    """One Oslo day (2025-10-17) of quarter-hour prices for NO1-NO5."""
    return make_payload(utc(2025, 10, 16, 22))


class TestParsePrices:
    """Tests for NordpoolDataParser.parse_prices."""

    def test_returns_hourly_points_per_zone(self, parser, sample_payload):
        prices = parser.parse_prices(sample_payload)

        # 24 hours and 5 areas
        assert len(prices) == 120
        assert sorted({p.zone for p in prices}) == ZONES

    def test_extracts_time_data(self, parser, sample_payload):
        first = parser.parse_prices(sample_payload)[0]

        assert first.start == utc(2025, 10, 16, 22)
        assert first.end == utc(2025, 10, 16, 23)

    def test_includes_quarterly_prices_in_order(self, parser, sample_payload):
        first = parser.parse_prices(sample_payload)[0]

        assert len(first.quarterly_prices) == 4
        starts = [q.start for q in first.quarterly_prices]
        assert starts == [utc(2025, 10, 16, 22, m) for m in (0, 15, 30, 45)]
        assert first.quarterly_prices[0].start == first.start
        assert first.quarterly_prices[-1].end == first.end
        for previous, current in zip(first.quarterly_prices, first.quarterly_prices[1:]):
            assert previous.end == current.start

    def test_hourly_price_is_average_of_quarters(self, parser, sample_payload):
        for point in parser.parse_prices(sample_payload):
            quarters = [q.price for q in point.quarterly_prices]
            assert point.price == sum(quarters) / len(quarters)

    def test_output_ordered_by_start_then_zone(self, parser):
        entries = []
        for hour in (23, 22):
            for entry in quarter_entries(utc(2025, 10, 16, hour), [100, 100, 100, 100]):
                entry["entryPerArea"] = {"NO3": 100, "NO1": 200, "NO2": 300}
                entries.append(entry)

        keys = [(p.start, p.zone) for p in parser.parse_prices(payload_json(entries))]

        assert keys == sorted(keys)
        assert keys[0] == (utc(2025, 10, 16, 22), "NO1")

    def test_converts_mwh_to_kwh(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [726.47, 723.89, 721.66, 719.55])

        prices = parser.parse_prices(payload_json(entries))

        assert len(prices) == 1
        assert prices[0].price == Decimal("0.7228925")
        assert prices[0].subsidized_price == Decimal("0.7228925")
        assert prices[0].quarterly_prices[0].price == Decimal("0.72647")

    def test_subsidy_above_threshold(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [1000.0] * 4)

        point = parser.parse_prices(payload_json(entries))[0]

        assert point.price == Decimal("1.0")
        assert point.subsidized_price == Decimal("0.775")

    def test_subsidy_exactly_at_threshold(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [750.0] * 4)

        point = parser.parse_prices(payload_json(entries))[0]

        assert point.price == Decimal("0.75")
        assert point.subsidized_price == Decimal("0.75")

    def test_average_is_permutation_invariant(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [812.13, 45.5, 1200.01, 733.3])
        shuffled = list(entries)
        random.Random(7).shuffle(shuffled)

        ordered = parser.parse_prices(payload_json(entries))[0]
        permuted = parser.parse_prices(payload_json(list(reversed(entries))))[0]
        random_order = parser.parse_prices(payload_json(shuffled))[0]

        assert ordered.price == permuted.price == random_order.price
        assert ordered.quarterly_prices == permuted.quarterly_prices == random_order.quarterly_prices

    def test_subsidized_never_above_raw(self, parser, sample_payload):
        entries = quarter_entries(utc(2025, 10, 16, 22), [-50, 10, 2500, 900])
        points = parser.parse_prices(sample_payload) + parser.parse_prices(payload_json(entries))

        for point in points:
            assert point.subsidized_price <= point.price
            assert (point.subsidized_price == point.price) == (point.price <= Decimal("0.75"))

    def test_preserves_currency(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100] * 4)

        assert parser.parse_prices(payload_json(entries, currency="EUR"))[0].currency == "EUR"
        assert parser.parse_prices(payload_json(entries, currency=None))[0].currency == "NOK"

    def test_partial_hour_is_tolerated(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100, 300, 500, 700])[:2]

        point = parser.parse_prices(payload_json(entries))[0]

        assert len(point.quarterly_prices) == 2
        assert point.price == Decimal("0.2")
        assert point.end == point.start + timedelta(hours=1)

    @pytest.mark.parametrize("area_prices", [None, {}])
    def test_entries_without_area_prices_are_skipped(self, parser, area_prices):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100, 200, 300, 400])
        entries[1]["entryPerArea"] = area_prices

        point = parser.parse_prices(payload_json(entries))[0]

        assert len(point.quarterly_prices) == 3
        assert point.price == Decimal("0.8") / 3

    def test_entry_without_any_prices_emits_nothing(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100] * 4)
        for entry in entries:
            entry["entryPerArea"] = None

        assert parser.parse_prices(payload_json(entries)) == []

    def test_accepts_decoded_mapping(self, parser):
        body = json.loads(
            payload_json(quarter_entries(utc(2025, 10, 16, 22), [726.47, 723.89, 721.66, 719.55])),
            parse_float=Decimal,
        )

        assert parser.parse_prices(body)[0].price == Decimal("0.7228925")

    def test_accepts_bytes(self, parser, sample_payload):
        assert len(parser.parse_prices(sample_payload.encode("utf-8"))) == 120

    def test_naive_timestamps_are_taken_as_utc(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100] * 4)
        for entry in entries:
            entry["deliveryStart"] = entry["deliveryStart"].rstrip("Z")
            entry["deliveryEnd"] = entry["deliveryEnd"].rstrip("Z")

        assert parser.parse_prices(payload_json(entries))[0].start == utc(2025, 10, 16, 22)

    def test_offset_timestamps_are_normalized_to_utc(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), [100] * 4)
        for entry in entries:
            entry["deliveryStart"] = entry["deliveryStart"].replace("T22", "T00").replace("2025-10-16", "2025-10-17").rstrip("Z") + "+02:00"
            entry["deliveryEnd"] = entry["deliveryEnd"].rstrip("Z") + "+00:00"

        point = parser.parse_prices(payload_json(entries))[0]
        assert point.start == utc(2025, 10, 16, 22)
        assert point.start.utcoffset() == timedelta(0)


class TestEmptyAndInvalidPayloads:
    """Tests for empty input and parse failures."""

    def test_empty_json_returns_empty(self, parser):
        assert parser.parse_prices("{}") == []

    def test_null_entries_returns_empty(self, parser):
        payload = '{"deliveryDateCET": "2025-10-17", "currency": "NOK", "multiAreaEntries": null}'
        assert parser.parse_prices(payload) == []

    def test_empty_entries_returns_empty(self, parser):
        assert parser.parse_prices(payload_json([])) == []

    def test_invalid_json_raises_parse_error(self, parser):
        with pytest.raises(ParseError, match="Invalid JSON payload"):
            parser.parse_prices("{not json")

    def test_non_object_raises_parse_error(self, parser):
        with pytest.raises(ParseError, match="Expected a JSON object"):
            parser.parse_prices("[1, 2, 3]")

    def test_wrong_shape_raises_parse_error(self, parser):
        payload = '{"multiAreaEntries": [{"deliveryStart": "yesterday", "entryPerArea": {"NO1": 1}}]}'
        with pytest.raises(ParseError, match="Unexpected payload shape"):
            parser.parse_prices(payload)

    def test_non_numeric_price_raises_parse_error(self, parser):
        entries = quarter_entries(utc(2025, 10, 16, 22), ["cheap"] * 4)
        with pytest.raises(ParseError):
            parser.parse_prices(payload_json(entries))


class TestCalculateSubsidizedPrice:
    """Tests for the subsidy formula."""

    @pytest.mark.parametrize("raw, expected", [
        ("-0.10", "-0.10"),
        ("0.00", "0.00"),
        ("0.7499", "0.7499"),
        ("0.75", "0.75"),
        ("0.7501", "0.75001"),
        ("1.0", "0.775"),
        ("2.75", "0.95"),
    ])
    def test_formula(self, raw, expected):
        assert calculate_subsidized_price(Decimal(raw)) == Decimal(expected)
