"""Catalog spider: Scrapy runtime for the crawl core.

Crawl flow:
1. Build the run from configuration (site adapter, frontier, dedup indexes,
   stats from the state DB: reset for a new run, kept for a resumed one).
   Configuration errors abort here, before any request is made.
2. Seed the frontier with the site's home page (START), or with one known
   category (SUBCATEGORY) in test runs.
3. Hand Scrapy at most CONCURRENT_REQUESTS requests at a time, always taking
   the next one from the frontier so forefront requests keep their place.
4. Each callback is one unit of work: the engine parses the page, runs the
   stage handler and commits follow-ups/counters; records are yielded to the
   item pipelines.
5. Download errors and handler errors go through the frontier's retry
   policy; exhausted requests are counted as failed.
6. When the frontier is drained the spider closes, saves the stats and
   uploads the dataset (non-development runs only).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import scrapy
from scrapy import Request, signals
from scrapy.exceptions import DontCloseSpider

from catalog_scraper.adapters.registry import build_adapter
from catalog_scraper.config import CrawlConfig, load_config
from catalog_scraper.db import SqliteStatsStore
from catalog_scraper.engine import CrawlEngine
from catalog_scraper.errors import classify_failure
from catalog_scraper.frontier import CrawlRequest, Priority
from catalog_scraper.pipelines import dataset_path
from catalog_scraper.upload import upload_dataset, uploader_from_settings


def enable_debug_logging():
    """Lower the root logger and Scrapy's log handlers to DEBUG.

    Needed for `-a development=1`: spider arguments are only known after the
    log handler was installed from LOG_LEVEL.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in root.handlers:
        if handler.level > logging.DEBUG:
            handler.setLevel(logging.DEBUG)


class CatalogSpider(scrapy.Spider):
    name = "catalog"

    custom_settings = {
        # Retries are decided by the frontier's retry policy, not RetryMiddleware
        "RETRY_ENABLED": False,
    }

    def __init__(
        self,
        site: Optional[str] = None,                 # site adapter name (default from CRAWL_SITE)
        country: Optional[str] = None,              # site variant, e.g. cz / sk / it
        development: Optional[str] = None,          # 1 = no proxies, no upload, debug logging
        max_request_retries: Optional[str] = None,  # retries per request after the first attempt
        proxy_groups: Optional[str] = None,         # comma separated proxy group names
        run_type: Optional[str] = None,             # full | test
        resume: Optional[str] = None,               # 1 = continue an interrupted run
        test_url: Optional[str] = None,             # category seeded by test runs
        *args,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self._overrides = {
            "site": site,
            "country": country,
            "development": development,
            "max_request_retries": max_request_retries,
            "proxy_groups": proxy_groups,
            "run_type": run_type,
            "resume": resume,
            "test_url": test_url,
        }
        self.config: Optional[CrawlConfig] = None
        self.engine: Optional[CrawlEngine] = None
        self.adapter = None
        self.max_inflight = 8

    # -------------- Scrapy lifecycle hooks ----------------

    @classmethod
    def from_crawler(cls, crawler, *args, **kwargs):  # type: ignore[override]
        """
        Scrapy hook: instantiate the spider, build the run and register the
        idle/closed signal handlers.
        """
        spider = super().from_crawler(crawler, *args, **kwargs)
        spider.setup(crawler.settings)
        crawler.signals.connect(spider.spider_idle, signal=signals.spider_idle)
        crawler.signals.connect(spider.spider_closed, signal=signals.spider_closed)
        return spider

    def setup(self, settings) -> CrawlEngine:
        """Read the configuration once and construct the run-scoped core objects."""
        self.config = load_config(settings, **self._overrides)
        self.adapter = build_adapter(self.config.site, self.config.country)
        if self.config.development:
            enable_debug_logging()
        store = SqliteStatsStore(settings.get("STATE_DB") or "data/state.db")
        self.engine = CrawlEngine.create(self.adapter, self.config, stats_store=store)
        self.max_inflight = max(1, int(settings.get("CONCURRENT_REQUESTS") or 8))
        self.logger.info(
            f"[CONFIG] site={self.config.site} country={self.config.country} development={self.config.development} "
            f"run_type={self.config.run_type.value} resume={self.config.resume} max_request_retries={self.config.max_request_retries} proxy_groups={','.join(self.config.proxy_groups) or '-'}"
        )
        return self.engine

    def start_requests(self) -> Iterable[Request]:  # type: ignore[override]
        """Seed the frontier (home page, or the test category) and hand out the first batch."""
        self.engine.seed()
        yield from self._drain()

    async def start(self):  # Scrapy 2.13+ async entrypoint
        for r in self.start_requests():
            yield r

    def spider_idle(self):
        """
        Scrapy signal handler: called when no request is scheduled or in progress.
        Refill from the frontier; keep the spider open only if something was scheduled.
        """
        scheduled = 0
        for req in self._drain():
            self.crawler.engine.crawl(req)
            scheduled += 1
        if scheduled:
            raise DontCloseSpider()
        if not self.engine.frontier.is_finished():
            self.logger.warning(
                f"[IDLE] closing with unfinished frontier pending={self.engine.frontier.pending} in_flight={self.engine.frontier.in_flight}"
            )

    def spider_closed(self, spider, reason):
        """Save the final counters, mirror them into Scrapy stats and run the upload step."""
        if spider is not self or self.engine is None:
            return
        snapshot = self.engine.finish()
        for key, value in snapshot.items():
            self.crawler.stats.set_value(f"catalog/{key}", value)
        self.logger.info(f"[CLOSED] reason={reason} stats={snapshot}")
        upload_dataset(
            self.adapter.table_name,
            dataset_path(self),
            uploader_from_settings(self.settings),
            development=self.config.development,
        )

    # -------------- Callbacks ----------------

    def parse_page(self, response: scrapy.http.Response):
        """
        Handle one fetched page of any stage.

        The engine either commits the stage result as a whole or raises, in
        which case nothing was enqueued or counted and the request is routed
        through the retry policy.
        """
        req: CrawlRequest = response.meta["crawl_request"]
        self.logger.info(f"Processing {req.url}")
        try:
            record = self.engine.handle(req, response.body)
        except Exception as e:  # handler errors are retried like fetch errors
            self.logger.warning(f"[HANDLER-ERROR] stage={req.stage.name} url={req.url} error={e!r}")
            self.engine.fail(req, e)
        else:
            if record is not None:
                yield record
        yield from self._drain()

    def on_error(self, failure):
        """Errback for download/HTTP errors: classify, then retry or count as failed."""
        req: CrawlRequest = failure.request.meta["crawl_request"]
        error = classify_failure(failure)
        self.logger.warning(f"[FETCH-ERROR] stage={req.stage.name} url={req.url} error={error!r}")
        self.engine.fail(req, error)
        yield from self._drain()

    # -------------- Frontier feeding ----------------

    def _drain(self) -> Iterable[Request]:
        """Take requests from the frontier while the worker pool has free slots."""
        frontier = self.engine.frontier
        while frontier.in_flight < self.max_inflight:
            req = frontier.dequeue()
            if req is None:
                return
            yield self._to_scrapy(req)

    def _to_scrapy(self, req: CrawlRequest) -> Request:
        return Request(
            req.url,
            callback=self.parse_page,
            errback=self.on_error,
            # dedup is done by the frontier; Scrapy's dupefilter would also drop retries
            dont_filter=True,
            priority=1 if req.priority == Priority.FOREFRONT else 0,
            meta={"crawl_request": req, "attempt": req.attempt, "stage": req.stage.value},
        )
