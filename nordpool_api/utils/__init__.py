"""
Utility helpers for the Nordpool Price API.
"""

from .time_utils import SystemClock

__all__ = [
    "SystemClock",
]
