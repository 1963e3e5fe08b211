import pytest

from catalog_scraper.adapters.obi import ObiAdapter
from catalog_scraper.config import CrawlConfig
from catalog_scraper.db import MemoryStatsStore
from catalog_scraper.engine import CrawlEngine


@pytest.fixture
def adapter():
    return ObiAdapter("cz")


@pytest.fixture
def stats_store():
    return MemoryStatsStore()


@pytest.fixture
def make_engine(adapter, stats_store):
    def _make(**config):
        return CrawlEngine.create(adapter, CrawlConfig(**config), stats_store=stats_store)

    return _make


@pytest.fixture
def crawler_settings(tmp_path):
    return {
        "STATE_DB": str(tmp_path / "state.db"),
        "OUTPUT_JSONL": str(tmp_path / "obi_cz.jsonl"),
        "CONCURRENT_REQUESTS": 2,
    }


@pytest.fixture
def spider(crawler_settings):
    from scrapy.utils.test import get_crawler

    from catalog_scraper.spiders.catalog import CatalogSpider

    crawler = get_crawler(CatalogSpider, settings_dict=crawler_settings)
    return CatalogSpider.from_crawler(crawler, country="cz", development="1")
