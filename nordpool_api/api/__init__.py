"""
API package for the Nordpool Price API.
Contains FastAPI route handlers.
"""

from .routes import router

__all__ = [
    "router",
]
