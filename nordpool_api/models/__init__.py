"""
Data models package for the Nordpool Price API.
Contains Pydantic models for payloads, price points and API responses.
"""

from .price import (
    NOT_YET_AVAILABLE,
    Availability,
    HealthResponse,
    MultiAreaEntry,
    NordpoolData,
    PricePoint,
    QuarterlyPrice,
)

__all__ = [
    "NOT_YET_AVAILABLE",
    "Availability",
    "HealthResponse",
    "MultiAreaEntry",
    "NordpoolData",
    "PricePoint",
    "QuarterlyPrice",
]
