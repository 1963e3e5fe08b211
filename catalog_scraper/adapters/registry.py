from typing import Dict, Type

from catalog_scraper.adapters.base import SiteAdapter
from catalog_scraper.adapters.obi import ObiAdapter
from catalog_scraper.errors import ConfigurationError

ADAPTERS: Dict[str, Type[SiteAdapter]] = {
    ObiAdapter.name: ObiAdapter,
}


def build_adapter(site: str, country: str) -> SiteAdapter:
    try:
        adapter_cls = ADAPTERS[site]
    except KeyError:
        raise ConfigurationError(f"unknown site {site!r}; available: {', '.join(sorted(ADAPTERS))}") from None
    return adapter_cls(country)
