"""
Nordpool Price API - day-ahead electricity prices with subsidy

A small service that polls Nord Pool for day-ahead spot prices, aggregates the
quarter-hour entries into hourly prices per zone and serves them from memory.

Main components:
- Asyncio scheduler with cancellable one-shot and recurring jobs
- Polling service that fetches, retries and evicts on a daily cycle
- Payload parser with hourly averaging and subsidy calculation
- Thread-safe in-memory price cache
"""

__version__ = "1.0.0"
