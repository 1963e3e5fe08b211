"""Error taxonomy for the crawl core.

Only ConfigurationError is fatal to a run. Everything else is scoped to a
single request: fetch errors go through the retry policy, parse and
field-absence errors turn into an "absent" record.
"""

from __future__ import annotations

from typing import Iterable, Optional

from scrapy.exceptions import IgnoreRequest
from scrapy.spidermiddlewares.httperror import HttpError
from twisted.python.failure import Failure


# HTTP statuses worth another attempt; anything else >= 400 is permanent.
TRANSIENT_HTTP_CODES = {408, 429, 500, 502, 503, 504, 522, 524}


class CrawlError(Exception):
    """Base class for every error raised by the crawl core."""


class ConfigurationError(CrawlError):
    """Invalid configuration detected before the frontier starts."""


class FetchError(CrawlError):
    def __init__(self, message: str, transient: bool = True, status: Optional[int] = None):
        super().__init__(message)
        self.transient = transient
        self.status = status

    def __repr__(self) -> str:
        kind = "transient" if self.transient else "permanent"
        return f"FetchError({kind}, status={self.status}, {self.args[0]!r})"


class ParseError(CrawlError):
    """Document could not be turned into a queryable tree."""


class FieldAbsent(CrawlError):
    """One or more required fields are missing from a detail document."""

    def __init__(self, fields: Iterable[str]):
        self.fields = sorted(fields)
        super().__init__("missing required fields: " + ", ".join(self.fields))


class RetryExhausted(CrawlError):
    def __init__(self, url: str, attempts: int, cause: Optional[BaseException] = None):
        super().__init__(f"Request {url} failed {attempts} times")
        self.url = url
        self.attempts = attempts
        self.cause = cause


class StageTransitionError(CrawlError):
    """A stage handler tried to enqueue a stage it may not fan out into."""


def classify_failure(failure: Failure) -> FetchError:
    """Map a Scrapy/Twisted errback failure onto a FetchError.

    HttpError responses are classified by status code, requests dropped by a
    middleware (IgnoreRequest) are permanent, and network level errors such
    as timeouts or refused connections are transient so the retry budget
    decides.
    """
    exc = failure.value
    if isinstance(exc, FetchError):
        return exc
    if failure.check(HttpError):
        status = exc.response.status
        return FetchError(
            f"HTTP {status} for {exc.response.url}",
            transient=status in TRANSIENT_HTTP_CODES,
            status=status,
        )
    if failure.check(IgnoreRequest):
        return FetchError(f"ignored: {exc}", transient=False)
    return FetchError(f"{type(exc).__name__}: {exc}", transient=True)
