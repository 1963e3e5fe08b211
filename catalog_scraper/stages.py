"""Label state machine: one handler per StageLabel.

Handlers are pure. They read the parsed document through the site adapter
and describe what should happen next as a StageResult; the engine applies it
(dedup inserts, enqueues, counters) only once the handler has returned, so a
handler failing halfway through a partial page leaves no trace behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Hashable, List, Optional

from bs4 import BeautifulSoup

from catalog_scraper.errors import FieldAbsent
from catalog_scraper.frontier import CrawlRequest
from catalog_scraper.items import ProductItem
from catalog_scraper.labels import StageLabel
from catalog_scraper.pagination import plan_pages
from catalog_scraper.urls import absolute_url, canonical_url

if TYPE_CHECKING:
    from catalog_scraper.adapters.base import SiteAdapter

logger = logging.getLogger(__name__)


@dataclass
class FollowUp:
    requests: List[CrawlRequest]
    forefront: bool = False
    # When set (same length as requests) each key is checked-and-inserted into
    # the run's processed-entity index on commit; requests whose key was
    # already there are dropped.
    dedup_keys: Optional[List[Hashable]] = None


@dataclass
class StageResult:
    follow_ups: List[FollowUp] = field(default_factory=list)
    record: Optional[ProductItem] = None
    counters: List[str] = field(default_factory=list)
    # identifiers of the entity this page itself represents, marked as
    # processed on commit so variants linking back to it are not re-queued
    mark_seen: List[Hashable] = field(default_factory=list)
    absent_reason: Optional[str] = None


StageHandler = Callable[[CrawlRequest, BeautifulSoup, "SiteAdapter"], StageResult]


def handle_start(request: CrawlRequest, doc: BeautifulSoup, adapter: "SiteAdapter") -> StageResult:
    links = adapter.category_links(doc)
    requests = [CrawlRequest(absolute_url(href, adapter.home_url), StageLabel.SUBCATEGORY) for href in links]
    logger.info(f"[START] categories={len(requests)} url={request.url}")
    return StageResult(follow_ups=[FollowUp(requests, forefront=True)])


def handle_subcategory(request: CrawlRequest, doc: BeautifulSoup, adapter: "SiteAdapter") -> StageResult:
    product_count = adapter.product_count(doc)
    # A declared count of 0 is treated like no count at all: the page is
    # walked as an intermediate category, never as an empty leaf.
    if product_count:
        hrefs = adapter.product_links(doc)
        pages = plan_pages(product_count, len(hrefs), adapter.listing_base_url(request.url), page_param=adapter.page_param)
        logger.info(
            f"[SUBCAT] leaf url={request.url} product_count={product_count} per_page={len(hrefs)} extra_pages={len(pages)}"
        )
        return StageResult(follow_ups=[FollowUp(pages, forefront=True), _detail_follow_up(request, hrefs)])

    links = adapter.subcategory_links(doc)
    # category menu links are site-relative, resolved like the top-level ones
    requests = [CrawlRequest(absolute_url(href, adapter.home_url), StageLabel.SUBCATEGORY) for href in links]
    logger.info(f"[SUBCAT] intermediate url={request.url} children={len(requests)}")
    return StageResult(follow_ups=[FollowUp(requests, forefront=True)])


def handle_listing(request: CrawlRequest, doc: BeautifulSoup, adapter: "SiteAdapter") -> StageResult:
    hrefs = adapter.product_links(doc)
    logger.debug(f"[LIST] url={request.url} anchors={len(hrefs)}")
    return StageResult(follow_ups=[_detail_follow_up(request, hrefs)])


def handle_detail(request: CrawlRequest, doc: BeautifulSoup, adapter: "SiteAdapter") -> StageResult:
    result = StageResult(counters=["totalItems"])

    crawled_id = adapter.item_id_from_url(request.url)
    if crawled_id:
        result.mark_seen.append(crawled_id)
    variants, keys = [], []
    for href in adapter.variant_links(doc):
        url = absolute_url(href, request.url)
        item_id = adapter.item_id_from_url(url)
        if not item_id or item_id == crawled_id or item_id in keys:
            continue
        variants.append(CrawlRequest(url, StageLabel.DETAIL))
        keys.append(item_id)
    result.follow_ups.append(FollowUp(variants, dedup_keys=keys))

    try:
        result.record = adapter.extract(doc, request.url)
    except FieldAbsent as e:
        result.absent_reason = str(e)
    return result


def _detail_follow_up(request: CrawlRequest, hrefs: List[str]) -> FollowUp:
    urls = [absolute_url(href, request.url) for href in hrefs]
    return FollowUp(
        [CrawlRequest(url, StageLabel.DETAIL) for url in urls],
        dedup_keys=[canonical_url(url) for url in urls],
    )


HANDLERS: Dict[StageLabel, StageHandler] = {
    StageLabel.START: handle_start,
    StageLabel.SUBCATEGORY: handle_subcategory,
    StageLabel.LISTING: handle_listing,
    StageLabel.DETAIL: handle_detail,
}

_unhandled = set(StageLabel) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"stage labels without a handler: {sorted(label.name for label in _unhandled)}")


def dispatch(request: CrawlRequest, doc: BeautifulSoup, adapter: "SiteAdapter") -> StageResult:
    return HANDLERS[request.stage](request, doc, adapter)
