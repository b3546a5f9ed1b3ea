"""Link resolution exceptions."""

from __future__ import annotations


class ResolverError(Exception):
    """Base class for all resolution errors."""


class FetchError(ResolverError):
    """Raised when a page cannot be fetched (network failure, bad status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class FetchTimeoutError(FetchError):
    """Raised when a fetch exceeds its timeout."""

    def __init__(self, url: str) -> None:
        super().__init__(url, "timeout")


class FetchStatusError(FetchError):
    """Raised when a fetch returns a 4xx/5xx status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"http {status_code}")
        self.status_code = status_code


class UnsupportedUrlError(ResolverError):
    """Raised when no registered strategy claims a URL."""

    def __init__(self, url: str) -> None:
        super().__init__(f"no resolver strategy for {url}")
        self.url = url
