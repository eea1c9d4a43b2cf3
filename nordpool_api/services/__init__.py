"""
Services package for the Nordpool Price API.
Contains the Nord Pool client, payload parser, price cache and polling service.
"""

from .nordpool_client import NordpoolClient, PriceSource, nordpool_client
from .polling_service import NordpoolPollingService, PollingState, polling_service
from .price_cache import PriceCache, price_cache
from .price_parser import NordpoolDataParser, calculate_subsidized_price, price_parser

__all__ = [
    "NordpoolClient",
    "PriceSource",
    "nordpool_client",
    "NordpoolPollingService",
    "PollingState",
    "polling_service",
    "PriceCache",
    "price_cache",
    "NordpoolDataParser",
    "calculate_subsidized_price",
    "price_parser",
]
