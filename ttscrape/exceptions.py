"""
Defines custom exceptions for the client to allow for more specific error handling.
"""


class TTScrapeError(Exception):
    """Base exception for all client-specific errors."""


class SessionInitError(TTScrapeError):
    """Raised when a browser session cannot be launched, navigated or harvested."""


class SessionIndexError(TTScrapeError, IndexError):
    """Raised when a request references a session that is not in the pool."""


class TransportError(TTScrapeError):
    """Raised when an HTTP request fails at the network or HTTP-status level."""


class DecodeError(TTScrapeError, ValueError):
    """Raised when a response body is not a JSON object."""


class SoundFetchError(TTScrapeError):
    """
    Raised when the metadata of a sound could not be fetched.

    The underlying transport or decode failure is kept as ``__cause__``.
    """


class ConfigurationError(TTScrapeError):
    """Raised for issues related to configuration loading or validation."""
