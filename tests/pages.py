"""OBI-shaped HTML builders and an in-memory fake site."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from catalog_scraper.errors import FetchError

HOME = "https://www.obi.cz"


def home_page(category_hrefs: Iterable[str], tracked_hrefs: Iterable[str] = ()) -> str:
    links = "".join(
        f'<div class="headr__nav-cat-row"><a class="headr__nav-cat-link" href="{href}">{href}</a></div>'
        for href in category_hrefs
    )
    links += "".join(
        f'<div class="headr__nav-cat-row"><a class="headr__nav-cat-link" data-webtrekk="promo" href="{href}">promo</a></div>'
        for href in tracked_hrefs
    )
    return f'<html><body><nav><div class="headr__nav-cat-col-inner">{links}</div></nav></body></html>'


def category_page(
    product_hrefs: Iterable[str] = (),
    product_count: Optional[str] = None,
    subcategory_hrefs: Iterable[str] = (),
) -> str:
    count = f'<div class="variants" data-productcount="{product_count}"></div>' if product_count is not None else ""
    products = "".join(
        f'<li class="product"><a data-ui-name="ads.product" href="{href}">{href}</a></li>' for href in product_hrefs
    )
    subcats = "".join(f'<a wt_name="assortment_menu.level2" href="{href}">{href}</a>' for href in subcategory_hrefs)
    return f"<html><body>{count}<ul>{products}</ul><aside>{subcats}</aside></body></html>"


def detail_page(
    item_id: Optional[str],
    price: Optional[str] = "1 299,90 Kč",
    currency: Optional[str] = "CZK",
    struck: Optional[str] = None,
    name: str = "Aku vrtačka",
    stock: str = "Skladem 5 ks",
    size_variants: Iterable[str] = (),
    disabled_variants: Iterable[str] = (),
    color_variants: Iterable[str] = (),
) -> str:
    parts = ["<html><head>"]
    if currency is not None:
        parts.append(f'<meta itemprop="priceCurrency" content="{currency}">')
    parts.append("</head><body>")
    if item_id is not None:
        parts.append(f'<form><input type="hidden" name="code" value=" {item_id} "></form>')
    parts.append(f'<div class="overview__description"><h1 class="overview__heading"> {name} </h1></div>')
    parts.append('<div class="buybox">')
    if struck is not None:
        parts.append(f'<span class="saving">-20 %</span><del>{struck}</del>')
    if price is not None:
        parts.append(f'<strong data-ui-name="ads.price.strong">{price}</strong>')
    parts.append("</div>")
    parts.append(f'<div class="marg_b5">{stock}</div>')
    parts.append('<a class="ads-slider__link" href="//images.obi.cz/product/1.jpg"></a>')
    parts.append(
        '<a class="breadcrumb normal" wt_name="breadcrumb.level1">Dílna</a>'
        '<a class="breadcrumb normal" wt_name="breadcrumb.level2">Vrtačky</a>'
    )
    items = "".join(f'<li><a wt_name="size_variant" href="{h}">S</a></li>' for h in size_variants)
    items += "".join(f'<li class="disabled"><a wt_name="size_variant" href="{h}">X</a></li>' for h in disabled_variants)
    items += "".join(
        f'<li data-ui-name="ads.variants.color.enabled"><a wt_name="color_variant" href="{h}">C</a></li>'
        for h in color_variants
    )
    parts.append(f'<div class="selectboxes"><div class="selectbox"><ul>{items}</ul></div></div>')
    parts.append("</body></html>")
    return "".join(parts)


def product_url(item_id) -> str:
    return f"{HOME}/naradi/produkt/p/{item_id}"


class FakeSite:
    """fetch(url) -> bytes over a dict of pages; records every fetch."""

    def __init__(self, pages: Dict[str, str], failing: Optional[Dict[str, FetchError]] = None):
        self.pages = pages
        self.failing = failing or {}
        self.fetched: List[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str) -> bytes:
        with self._lock:
            self.fetched.append(url)
        if url in self.failing:
            raise self.failing[url]
        if url not in self.pages:
            raise FetchError(f"HTTP 404 for {url}", transient=False, status=404)
        return self.pages[url].encode("utf-8")

    def count(self, url: str) -> int:
        return self.fetched.count(url)


