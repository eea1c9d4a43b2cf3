#!/usr/bin/env python3
"""
Development helper scripts for the Nordpool Price API.
Provides utilities for manual fetching and inspecting parsed prices.
"""

import asyncio
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytz

# Add the project root to the Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from nordpool_api.config import settings
from nordpool_api.logging_config import setup_logging
from nordpool_api.models.price import NOT_YET_AVAILABLE
from nordpool_api.services.nordpool_client import nordpool_client
from nordpool_api.services.price_parser import price_parser
from nordpool_api.utils.time_utils import local_date, to_local


def _parse_date(value: str) -> date:
    if value == "today":
        return local_date(datetime.now(pytz.UTC), settings.fetch_timezone)
    if value == "tomorrow":
        return local_date(datetime.now(pytz.UTC), settings.fetch_timezone) + timedelta(days=1)
    return datetime.strptime(value, "%Y-%m-%d").date()


async def show_prices(delivery_date: date, zone: str = None):
    """Fetch one delivery date and print the hourly prices."""
    setup_logging()
    print(f"Fetching Nord Pool prices for {delivery_date.isoformat()}...")

    payload = await nordpool_client.fetch(delivery_date)
    if payload is NOT_YET_AVAILABLE:
        print("Prices are not published yet")
        return

    points = price_parser.parse_prices(payload)
    if zone:
        points = [point for point in points if point.zone == zone.upper()]

    if not points:
        print("No price data in payload")
        return

    print(f"\nFound {len(points)} hourly prices:")
    print("-" * 72)
    print(f"{'Start (local)':<20} {'Zone':<6} {'Price':<14} {'Subsidized':<14} {'Quarters':<8}")
    print("-" * 72)

    for point in points:
        start_local = to_local(point.start, settings.fetch_timezone)
        print(f"{start_local.strftime('%Y-%m-%d %H:%M'):<20} {point.zone:<6} "
              f"{point.price:>9.4f} {point.currency} {point.subsidized_price:>9.4f} {point.currency} "
              f"{len(point.quarterly_prices):>4}")


def show_config():
    """Display current configuration settings."""
    print("Current Configuration:")
    print("-" * 40)
    print(f"API Host: {settings.api_host}")
    print(f"API Port: {settings.api_port}")
    print(f"Debug Mode: {settings.api_debug}")
    print(f"Nord Pool URL: {settings.nordpool_base_url}")
    print(f"Delivery Areas: {', '.join(settings.delivery_areas)}")
    print(f"Fetch Schedule: {settings.fetch_hour}:00 {settings.fetch_timezone}")
    print(f"Retry Delay: {settings.retry_delay_minutes} minutes")
    print(f"Log Level: {settings.log_level}")


def main():
    """Main script entry point with command selection."""
    if len(sys.argv) < 2:
        print("Nordpool Price API Development Scripts")
        print("Usage: python scripts/dev.py <command> [args]")
        print("\nAvailable commands:")
        print("  show-prices [today|tomorrow|YYYY-MM-DD] [zone] - Fetch and print hourly prices")
        print("  show-config                                     - Display current configuration")
        return

    command = sys.argv[1]

    if command == "show-prices":
        delivery_date = _parse_date(sys.argv[2] if len(sys.argv) > 2 else "today")
        zone = sys.argv[3] if len(sys.argv) > 3 else None
        asyncio.run(show_prices(delivery_date, zone))
    elif command == "show-config":
        show_config()
    else:
        print(f"Unknown command: {command}")
        print("Run without arguments to see available commands")


if __name__ == "__main__":
    main()
