"""Crawl engine: the unit of work shared by every runtime.

One request is handled as fetch -> parse -> stage handler -> commit. The
Scrapy spider drives ``handle``/``fail`` from its callbacks; ``run`` is a
small thread-pool runtime for running the same core against any
``fetch(url) -> bytes`` callable (fakes in tests, smoke runs without Scrapy).
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any, Callable, Dict, Optional

from catalog_scraper.config import CrawlConfig, RunType
from catalog_scraper.dedup import DedupIndex
from catalog_scraper.errors import CrawlError, ParseError, RetryExhausted, StageTransitionError
from catalog_scraper.frontier import CrawlRequest, FailureOutcome, Frontier, RetryPolicy
from catalog_scraper.items import ProductItem
from catalog_scraper.labels import StageLabel, can_transition
from catalog_scraper.parse_helpers import parse_document
from catalog_scraper.stages import FollowUp, StageResult, dispatch
from catalog_scraper.stats import RunStats, StatsStore

logger = logging.getLogger(__name__)

Fetch = Callable[[str], bytes]
Emit = Callable[[ProductItem], Any]


class CrawlEngine:
    def __init__(
        self,
        adapter,
        config: CrawlConfig,
        frontier: Frontier,
        processed: DedupIndex,
        stats: RunStats,
    ):
        self.adapter = adapter
        self.config = config
        self.frontier = frontier
        self.processed = processed
        self.stats = stats
        self._lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self._handled = 0
        self._seeded = False

    @classmethod
    def create(cls, adapter, config: CrawlConfig, stats_store: Optional[StatsStore] = None) -> "CrawlEngine":
        """Build a run: new frontier and dedup indexes, stats from the store.

        A new run clears the counters of its scope first; a resumed run loads
        them from the last checkpoint.
        """
        frontier = Frontier(
            retry_policy=RetryPolicy(config.max_request_retries),
            index=DedupIndex("requests"),
            max_size=config.frontier_max_size,
        )
        scope = adapter.table_name if config.run_type == RunType.FULL else f"{adapter.table_name}:{config.run_type.value}"
        if stats_store is not None and not config.resume:
            stats_store.reset(scope)
            logger.info(f"[STATS] new run, counters reset scope={scope}")
        stats = RunStats(store=stats_store, scope=scope)
        return cls(adapter, config, frontier, DedupIndex("processed"), stats)

    # -------------- Work unit ----------------

    def seed(self) -> CrawlRequest:
        if self._seeded:
            raise CrawlError("the seed request is enqueued once per run")
        self._seeded = True
        if self.config.run_type == RunType.TEST:
            req = CrawlRequest(self.config.test_url or self.adapter.test_url, StageLabel.SUBCATEGORY)
        else:
            req = CrawlRequest(self.adapter.home_url, StageLabel.START)
        self.frontier.enqueue([req])
        logger.info(
            f"[SEED] site={self.adapter.name} country={self.adapter.country} run_type={self.config.run_type.value} url={req.url}"
        )
        return req

    def handle(self, request: CrawlRequest, body) -> Optional[ProductItem]:
        """Run the stage handler for a fetched body and apply its result.

        Parse errors and missing detail fields are absences: the request
        counts as done and nothing is retried. Any other exception leaves the
        frontier, indexes and counters untouched and propagates so the
        caller can route the request through ``fail``.
        """
        try:
            doc = parse_document(body)
        except ParseError as e:
            logger.warning(f"[PARSE-ERROR] stage={request.stage.name} url={request.url} error={e}")
            self._done(request)
            return None

        result = dispatch(request, doc, self.adapter)
        self._commit(request, result)
        if result.absent_reason:
            logger.warning(f"[ABSENT] url={request.url} {result.absent_reason}")
        elif result.record is not None:
            logger.debug(f"[DETAIL] item={result.record.get('itemId')} url={request.url}")
        self._done(request)
        return result.record

    def fail(self, request: CrawlRequest, error: Optional[BaseException] = None) -> FailureOutcome:
        outcome = self.frontier.report_failure(request, error)
        if outcome.terminal:
            self.on_request_failed(request, outcome.error)
        return outcome

    def on_request_failed(self, request: CrawlRequest, error: RetryExhausted):
        logger.error(f"Request {request.url} failed {error.attempts} times: {error.cause!r}")
        self.stats.inc("failed")

    def _commit(self, request: CrawlRequest, result: StageResult):
        # validate before touching anything so a bad result has no effect
        for follow in result.follow_ups:
            for req in follow.requests:
                if not can_transition(request.stage, req.stage):
                    raise StageTransitionError(f"{request.stage.name} may not enqueue {req.stage.name} ({req.url})")

        for key in result.mark_seen:
            self.processed.add(key)
        for follow in result.follow_ups:
            if follow.dedup_keys is None:
                self.stats.add("urls", len(follow.requests))
                if follow.requests:
                    self.frontier.enqueue(follow.requests, forefront=follow.forefront)
                continue
            self.stats.add("urls", self._enqueue_unseen(follow))
        for counter in result.counters:
            self.stats.inc(counter)
        if result.record is not None:
            self.stats.inc("items")

    def _enqueue_unseen(self, follow: FollowUp) -> int:
        """Enqueue the requests whose entity key is new; return how many got in.

        A key is marked processed only once the frontier accepted its request,
        so a request dropped by a full frontier can be discovered again.
        """
        with self._commit_lock:
            fresh = [(req, key) for req, key in zip(follow.requests, follow.dedup_keys) if key not in self.processed]
            accepted = {req.unique_key for req in self.frontier.offer([req for req, _ in fresh], forefront=follow.forefront)}
            added = 0
            for req, key in fresh:
                if req.unique_key in accepted and self.processed.add(key):
                    added += 1
            return added

    def _done(self, request: CrawlRequest):
        self.frontier.report_success(request)
        with self._lock:
            self._handled += 1
            checkpoint = self._handled % self.config.stats_checkpoint_every == 0
        if checkpoint:
            self.stats.save()
            logger.info(f"[PROGRESS] handled={self._handled} frontier={self.frontier!r} stats={self.stats.as_dict()}")

    def finish(self) -> Dict[str, int]:
        snapshot = self.stats.save()
        logger.info(
            f"[STATS] {snapshot} handled={self._handled} retried={self.frontier.retried} "
            f"duplicates={self.frontier.duplicates} dropped={self.frontier.dropped}"
        )
        return snapshot

    # -------------- Local runtime ----------------

    def run(self, fetch: Fetch, emit: Optional[Emit] = None, workers: int = 4) -> Dict[str, int]:
        """Crawl until the frontier is drained, with at most ``workers`` requests in flight."""
        if not self._seeded:
            self.seed()
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="crawl") as pool:
            futures = set()
            while True:
                while len(futures) < workers:
                    req = self.frontier.dequeue()
                    if req is None:
                        break
                    futures.add(pool.submit(self._process, req, fetch, emit))
                if not futures:
                    break
                done, futures = wait(futures, return_when=FIRST_COMPLETED)
                for f in done:
                    f.result()
        return self.finish()

    def _process(self, request: CrawlRequest, fetch: Fetch, emit: Optional[Emit]):
        try:
            body = fetch(request.url)
            record = self.handle(request, body)
        except Exception as e:  # every per-request failure goes through the retry policy
            logger.warning(f"[HANDLER-ERROR] stage={request.stage.name} url={request.url} error={e!r}")
            self.fail(request, e)
            return
        if record is not None and emit is not None:
            emit(record)
