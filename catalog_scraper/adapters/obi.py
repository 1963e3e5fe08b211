"""OBI (home improvement) catalog adapter.

Site layout:
1. Home page navigation lists the top-level categories.
2. A category page either declares its product count on ``.variants`` (leaf
   listing, paginated with ``?page=N``) or links child categories.
3. Detail pages end in ``/p/<item id>`` and link their size/color variants.
"""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from catalog_scraper.adapters.base import SiteAdapter
from catalog_scraper.errors import FieldAbsent
from catalog_scraper.items import ProductItem
from catalog_scraper.parse_helpers import (
    clean_price,
    leading_int,
    missing_fields,
    normalize_currency,
    select_attr,
    select_text,
    select_texts,
)

NAV_LINKS = ".headr__nav-cat-col-inner > .headr__nav-cat-row > a.headr__nav-cat-link"
NAV_LINKS_FALLBACK = "ul.first-level > li > a"
PRODUCT_ANCHORS = "li.product > a[data-ui-name]"
SUBCATEGORY_LINKS = 'a[wt_name="assortment_menu.level2"]'
VARIANT_LINKS = (
    '.selectboxes .selectbox li:not([class*="disabled"]) a[wt_name*="size_variant"], '
    '.selectboxes .selectbox li[data-ui-name="ads.variants.color.enabled"] a[wt_name*="color_variant"]'
)
BREADCRUMBS = 'a[class*="normal"][wt_name*="breadcrumb.level"]'

ITEM_ID_RE = re.compile(r"p/(\d+)(?:#/)?$")
# power drills, a leaf listing; test runs can point elsewhere with CRAWL_TEST_URL
TEST_CATEGORY_PATH = "/vrtacky/c/1315"


class ObiAdapter(SiteAdapter):
    name = "obi"
    countries = frozenset({"cz", "sk", "pl", "hu", "it", "at", "de", "si", "hr", "ro", "ch"})

    @property
    def _domain_suffix(self) -> str:
        return "-italia" if self.country == "it" else ""

    @property
    def home_url(self) -> str:
        return f"https://www.obi{self._domain_suffix}.{self.country}"

    @property
    def table_name(self) -> str:
        return f"obi{self._domain_suffix}_{self.country}"

    @property
    def test_url(self) -> str:
        return f"{self.home_url}{TEST_CATEGORY_PATH}"

    def listing_base_url(self, url: str) -> str:
        return url.split("?", 1)[0].rstrip("/") + "/"

    def category_links(self, doc: BeautifulSoup) -> List[str]:
        anchors = doc.select(NAV_LINKS)
        if anchors:
            # data-webtrekk marks tracking-only entries (promo tiles, not categories)
            return [a["href"] for a in anchors if a.get("href") and not a.get("data-webtrekk")]
        # fallback menu links are taken as they are
        return [a["href"] for a in doc.select(NAV_LINKS_FALLBACK) if a.get("href")]

    def product_count(self, doc: BeautifulSoup) -> Optional[int]:
        return leading_int(select_attr(doc, ".variants", "data-productcount"))

    def product_links(self, doc: BeautifulSoup) -> List[str]:
        return [a["href"] for a in doc.select(PRODUCT_ANCHORS) if a.get("href")]

    def subcategory_links(self, doc: BeautifulSoup) -> List[str]:
        return [a["href"] for a in doc.select(SUBCATEGORY_LINKS) if a.get("href")]

    def item_id_from_url(self, url: str) -> Optional[str]:
        m = ITEM_ID_RE.search(url)
        return m.group(1) if m else None

    def variant_links(self, doc: BeautifulSoup) -> List[str]:
        return [a["href"] for a in doc.select(VARIANT_LINKS) if a.get("href")]

    def extract(self, doc: BeautifulSoup, url: str) -> ProductItem:
        item_id = select_attr(doc, 'input[name="code"]', "value")
        currency = normalize_currency(select_attr(doc, 'meta[itemprop="priceCurrency"]', "content"))
        current_price = clean_price(select_text(doc, '[data-ui-name="ads.price.strong"]'))
        missing = missing_fields(itemId=item_id, currency=currency, currentPrice=current_price)
        if missing:
            raise FieldAbsent(missing)

        struck = select_text(doc, ".buybox .saving + del")
        stock_text = select_text(doc, "div.marg_b5") or ""
        return ProductItem(
            itemUrl=url,
            itemId=item_id,
            itemName=select_text(doc, ".overview__description > .overview__heading"),
            currency=currency,
            currentPrice=current_price,
            discounted=bool(struck),
            originalPrice=clean_price(struck) if struck else None,
            inStock=bool(re.search(r"\d+", stock_text)),
            img=self._image(doc),
            category="/".join(select_texts(doc, BREADCRUMBS)) or None,
        )

    def _image(self, doc: BeautifulSoup) -> Optional[str]:
        src = select_attr(doc, ".ads-slider__link", "href") or select_attr(doc, ".ads-slider__image", "data-src")
        if not src:
            return None
        if src.startswith("//"):
            return f"https:{src}"
        return src
