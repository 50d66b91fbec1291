"""Custom exceptions for the live price sync client.

Every failure the core can hit lives here. None of them cross the public
entry points: the config store, price cache and fetcher catch them and
degrade to defaults, a cache miss, or a failed FetchResult.
"""


class PriceSyncError(Exception):
    """Base exception for all price sync errors."""


class ConfigParseError(PriceSyncError):
    """Raised when the persisted config file cannot be parsed or validated."""


class CacheReadError(PriceSyncError):
    """Raised when the price cache file cannot be read or decoded."""


class CacheWriteError(PriceSyncError):
    """Raised when the price cache file cannot be written."""


class FetchError(PriceSyncError):
    """Base for every way a remote price fetch can fail."""


class NetworkError(FetchError):
    """Raised on a transport-level failure (DNS, connection refused, reset)."""


class FetchTimeoutError(FetchError):
    """Raised when the request exceeds the configured timeout and is aborted."""


class MalformedResponseError(FetchError):
    """Raised when the response body is not parseable JSON."""


class ResponseShapeError(FetchError):
    """Raised when the response carries an errors payload or lacks data.items[0]."""


class InvalidPriceError(FetchError):
    """Raised when the basePrice field is missing, non-numeric or not positive."""


class ItemNotFoundError(PriceSyncError, LookupError):
    """Raised when the tracked item is absent from the host catalog."""
