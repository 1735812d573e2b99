"""
Custom exceptions for the bump radar package.

Adapters raise these internally and convert them into structured
fetch results at their boundary; none of them escape to callers of
the reconciliation or scoring services.
"""

from typing import Optional


class BumpRadarError(Exception):
    """Base exception for all bump radar errors."""

    pass


class SourceError(BumpRadarError):
    """Base exception for upstream flight source failures."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(message)


class TransientNetworkError(SourceError):
    """Raised on timeouts, connection failures and non-OK HTTP statuses."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(source, message)


class RateLimitedError(SourceError):
    """Raised when an upstream answers HTTP 429."""

    def __init__(self, source: str, message: str = "rate limit reached") -> None:
        super().__init__(source, message)


class UnparseableResponseError(SourceError):
    """Raised when an upstream payload no longer matches the expected shape."""

    pass


class UnknownEntityError(BumpRadarError):
    """Raised when an airport, carrier or aircraft code is not in the reference set."""

    def __init__(self, kind: str, code: str) -> None:
        self.kind = kind
        self.code = code
        super().__init__(f"Unknown {kind}: {code}")
