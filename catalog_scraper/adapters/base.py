"""Site adapter interface.

An adapter owns everything site specific: URLs, selectors and how a detail
page maps onto a ProductItem. The stage handlers only ever talk to this
interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import FrozenSet, List, Optional

from bs4 import BeautifulSoup

from catalog_scraper.errors import ConfigurationError
from catalog_scraper.items import ProductItem


class SiteAdapter(ABC):
    name: str = ""
    countries: FrozenSet[str] = frozenset()
    page_param: str = "page"

    def __init__(self, country: str):
        country = (country or "").strip().lower()
        if country not in self.countries:
            raise ConfigurationError(
                f"unknown site variant {self.name}/{country!r}; supported countries: {', '.join(sorted(self.countries))}"
            )
        self.country = country

    @property
    @abstractmethod
    def home_url(self) -> str:
        """Seed URL of the START stage."""

    @property
    @abstractmethod
    def table_name(self) -> str:
        """Warehouse table (and stats scope) of this site variant."""

    @property
    @abstractmethod
    def test_url(self) -> str:
        """One known leaf category, seeded as SUBCATEGORY by test runs."""

    def listing_base_url(self, url: str) -> str:
        """URL the pagination planner adds the page parameter to."""
        return url

    # START
    @abstractmethod
    def category_links(self, doc: BeautifulSoup) -> List[str]: ...

    # SUBCATEGORY
    @abstractmethod
    def product_count(self, doc: BeautifulSoup) -> Optional[int]: ...

    @abstractmethod
    def subcategory_links(self, doc: BeautifulSoup) -> List[str]: ...

    # SUBCATEGORY (leaf) and LISTING
    @abstractmethod
    def product_links(self, doc: BeautifulSoup) -> List[str]: ...

    # DETAIL
    @abstractmethod
    def item_id_from_url(self, url: str) -> Optional[str]: ...

    @abstractmethod
    def variant_links(self, doc: BeautifulSoup) -> List[str]: ...

    @abstractmethod
    def extract(self, doc: BeautifulSoup, url: str) -> ProductItem:
        """Build the record for a detail page; raise FieldAbsent when required fields are missing."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(country={self.country!r})"
