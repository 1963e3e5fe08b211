from __future__ import annotations

from math import ceil
from typing import List, Optional

from catalog_scraper.frontier import CrawlRequest
from catalog_scraper.labels import StageLabel
from catalog_scraper.urls import add_query_param


def page_count(total_items: Optional[int], per_page: Optional[int]) -> int:
    """Number of listing pages needed to cover ``total_items``; 0 when unknown."""
    if not total_items or not per_page or total_items <= 0 or per_page <= 0:
        return 0
    return ceil(total_items / per_page)


def plan_pages(
    total_items: Optional[int],
    per_page: Optional[int],
    base_url: str,
    stage: StageLabel = StageLabel.LISTING,
    page_param: str = "page",
) -> List[CrawlRequest]:
    """
    Build the continuation requests for pages 2..N of a listing.

    Page 1 is the page that declared the count, so it is never planned.
    Returns an empty list when nothing was observed on the page (no division
    by zero) or when everything fits on one page.
    """
    pages = page_count(total_items, per_page)
    if pages <= 1:
        return []
    return [
        CrawlRequest(add_query_param(base_url, **{page_param: n}), stage)
        for n in range(2, pages + 1)
    ]
