"""
Domain exceptions for the Nordpool Price API.
Provides clear, typed exceptions for fetch and parse failures.
"""


class PriceAPIException(Exception):
    """Base exception for all Nordpool Price API errors."""
    pass


class TransportError(PriceAPIException):
    """Raised when the price source cannot be reached or answers with an error status."""
    pass


class ParseError(PriceAPIException):
    """Raised when a price payload is malformed or has an unexpected shape."""
    pass
