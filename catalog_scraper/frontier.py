"""Request frontier with forefront insertion and a bounded retry policy.

The frontier is the single source of pending work for a run. Normal
requests are served FIFO; forefront batches jump ahead of everything that
is queued so structural follow-ups (pagination pages, sub-categories,
retries) are processed before sibling top-level requests.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional

from catalog_scraper.dedup import DedupIndex
from catalog_scraper.errors import FetchError, RetryExhausted
from catalog_scraper.labels import StageLabel
from catalog_scraper.urls import canonical_url

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    NORMAL = "normal"
    FOREFRONT = "forefront"


@dataclass(frozen=True)
class CrawlRequest:
    url: str
    stage: StageLabel
    priority: Priority = Priority.NORMAL
    attempt: int = 0  # failed attempts so far
    unique_key: str = field(default="", compare=False)

    def __post_init__(self):
        if not self.unique_key:
            object.__setattr__(self, "unique_key", canonical_url(self.url))

    def next_attempt(self) -> "CrawlRequest":
        return replace(self, attempt=self.attempt + 1, priority=Priority.FOREFRONT)

    def with_priority(self, priority: Priority) -> "CrawlRequest":
        if priority == self.priority:
            return self
        return replace(self, priority=priority)


@dataclass(frozen=True)
class RetryPolicy:
    max_request_retries: int = 3

    def should_retry(self, failed_attempts: int, error: Optional[BaseException] = None) -> bool:
        if isinstance(error, FetchError) and not error.transient:
            return False
        return failed_attempts <= self.max_request_retries


@dataclass
class FailureOutcome:
    request: CrawlRequest  # request with the incremented attempt counter
    retried: bool
    error: Optional[BaseException] = None

    @property
    def terminal(self) -> bool:
        return not self.retried


class Frontier:
    def __init__(
        self,
        retry_policy: Optional[RetryPolicy] = None,
        index: Optional[DedupIndex] = None,
        max_size: Optional[int] = None,
    ):
        self.retry_policy = retry_policy or RetryPolicy()
        self.index = index if index is not None else DedupIndex("frontier")
        self.max_size = max_size
        self._queue: Deque[CrawlRequest] = deque()
        self._in_flight: Dict[str, CrawlRequest] = {}
        self._lock = threading.Lock()
        # counters for the progress log
        self.accepted = 0
        self.duplicates = 0
        self.dropped = 0
        self.retried = 0
        self.exhausted = 0

    def enqueue(self, requests: Iterable[CrawlRequest], forefront: bool = False) -> int:
        """Add requests, skipping already known URLs. Returns how many were added."""
        return len(self.offer(requests, forefront=forefront))

    def offer(self, requests: Iterable[CrawlRequest], forefront: bool = False) -> List[CrawlRequest]:
        """Like ``enqueue`` but return the accepted requests (duplicates and drops left out)."""
        priority = Priority.FOREFRONT if forefront else Priority.NORMAL
        batch = []
        with self._lock:
            for req in requests:
                if req.unique_key in self.index:
                    self.duplicates += 1
                    continue
                if not forefront and self._is_full(len(batch)):
                    self.dropped += 1
                    logger.warning(f"[FRONTIER-FULL] dropped url={req.url} max_size={self.max_size}")
                    continue
                if not self.index.add(req.unique_key):
                    self.duplicates += 1
                    continue
                batch.append(req.with_priority(priority))
            if forefront:
                self._queue.extendleft(reversed(batch))
            else:
                self._queue.extend(batch)
            self.accepted += len(batch)
        if batch:
            logger.debug(f"[FRONTIER] enqueued={len(batch)} forefront={forefront} pending={self.pending}")
        return batch

    def dequeue(self) -> Optional[CrawlRequest]:
        with self._lock:
            if not self._queue:
                return None
            req = self._queue.popleft()
            self._in_flight[req.unique_key] = req
            return req

    def report_success(self, request: CrawlRequest) -> None:
        with self._lock:
            self._in_flight.pop(request.unique_key, None)

    def report_failure(self, request: CrawlRequest, error: Optional[BaseException] = None) -> FailureOutcome:
        """Retry the request at the forefront or mark it terminally failed.

        Retries bypass the dedup index (the URL is already in it) and the
        size bound, so a retry is never lost.
        """
        nxt = request.next_attempt()
        with self._lock:
            self._in_flight.pop(request.unique_key, None)
            if self.retry_policy.should_retry(nxt.attempt, error):
                self._queue.appendleft(nxt)
                self.retried += 1
                retried = True
            else:
                self.exhausted += 1
                retried = False
        if retried:
            logger.info(
                f"[RETRY] url={request.url} attempt={nxt.attempt}/{self.retry_policy.max_request_retries} error={error!r}"
            )
            return FailureOutcome(nxt, retried=True, error=error)
        return FailureOutcome(nxt, retried=False, error=RetryExhausted(request.url, nxt.attempt, cause=error))

    def is_finished(self) -> bool:
        with self._lock:
            return not self._queue and not self._in_flight

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def _is_full(self, incoming: int) -> bool:
        return self.max_size is not None and len(self._queue) + incoming >= self.max_size

    def __repr__(self) -> str:
        return f"Frontier(pending={self.pending}, in_flight={self.in_flight}, seen={len(self.index)})"
