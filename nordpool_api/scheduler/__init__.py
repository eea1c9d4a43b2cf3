"""
Scheduler package for the Nordpool Price API.
Contains the asyncio job scheduler and its cancellation primitives.
"""

from .cancellation import CancellationToken
from .scheduler import ErrorPolicy, ScheduledTask, Scheduler, scheduler

__all__ = [
    "CancellationToken",
    "ErrorPolicy",
    "ScheduledTask",
    "Scheduler",
    "scheduler",
]
