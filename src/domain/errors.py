"""
Error taxonomy for the fetch pipeline and its collaborators.

RateLimitedError and TransportError are retried inside the pipeline and never
escape past the retry ceiling; RetriesExhaustedError is what callers see.
"""

from typing import Optional


class FetchError(Exception):
    """Base class for every failure raised by a market-data fetch."""


class RateLimitedError(FetchError):
    """The provider answered HTTP 429."""

    def __init__(self, url: str = "", retry_after: Optional[str] = None) -> None:
        self.url = url
        self.retry_after = retry_after
        super().__init__(f"Rate limited by provider: {url}" if url else "Rate limited by provider")


class TransportError(FetchError):
    """Network failure, non-OK status, or an unreadable response body."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RetriesExhaustedError(FetchError):
    """The retry budget for one logical fetch was spent."""

    def __init__(self, attempts: int, last_error: Optional[BaseException] = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Giving up after {attempts} attempt(s){detail}")


class LanguageModelError(Exception):
    """The chat-completion endpoint failed or returned no content."""


class MissingSecretError(RuntimeError):
    """A secret required by an enabled code path is not configured."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Required secret {name!r} is not configured.")
