"""
Exception taxonomy for simtree.

Remote failures derive from ``LastfmError``, persistence failures are
``StoreError``. Nothing here is retried by the core except ``RateLimited``.
"""

from __future__ import annotations


class SimtreeError(Exception):
    """Base class for all simtree errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"


class StoreError(SimtreeError):
    """The similarity store could not be read or written."""


class LastfmError(SimtreeError):
    """Custom exception for Last.fm API errors."""


class NoApiKey(LastfmError):
    def __init__(self, message: str = "No API key"):
        super().__init__(message)


class InvalidApiKey(LastfmError):
    """The service rejected the API key."""


class ParseError(LastfmError):
    """The response payload did not have the expected shape."""


class NotFound(ParseError):
    """The service does not know the requested artist."""


class NetworkError(LastfmError):
    """Transport failure or unexpected HTTP status."""


class RateLimited(LastfmError):
    """The service asked us to slow down."""
