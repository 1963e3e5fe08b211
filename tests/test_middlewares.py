from types import SimpleNamespace

import pytest
from scrapy import Request
from scrapy.exceptions import NotConfigured
from scrapy.utils.test import get_crawler

from catalog_scraper.config import CrawlConfig
from catalog_scraper.middlewares import ProxyPoolMiddleware, StickySessionMiddleware

POOL = {"CZECH_LUMINATI": ["http://p1:8000", "http://p2:8000"], "SHADER": ["http://s1:8000"]}


def test_requests_to_one_host_share_a_session():
    mw = StickySessionMiddleware(pool_size=10)
    a = Request("https://www.obi.cz/p/1", meta={"attempt": 0})
    b = Request("https://www.obi.cz/p/2", meta={"attempt": 0})
    mw.process_request(a, None)
    mw.process_request(b, None)
    assert a.meta["cookiejar"] == b.meta["cookiejar"]
    assert a.meta["cookiejar"].startswith("www.obi.cz#")


def test_retried_request_moves_to_another_session():
    mw = StickySessionMiddleware(pool_size=10)
    assert mw.session_for("https://www.obi.cz/p/1", 0) != mw.session_for("https://www.obi.cz/p/1", 1)


def test_empty_proxy_pool_disables_the_middleware():
    with pytest.raises(NotConfigured):
        ProxyPoolMiddleware.from_crawler(get_crawler(settings_dict={"PROXY_POOL": {}}))


def test_proxy_is_chosen_from_selected_groups():
    mw = ProxyPoolMiddleware(POOL)
    spider = SimpleNamespace(config=CrawlConfig(proxy_groups=("SHADER",)))
    req = Request("https://www.obi.cz/p/1", meta={"cookiejar": "www.obi.cz#3"})
    mw.process_request(req, spider)
    assert req.meta["proxy"] == "http://s1:8000"


def test_same_session_keeps_its_proxy():
    mw = ProxyPoolMiddleware(POOL)
    spider = SimpleNamespace(config=CrawlConfig())
    first = Request("https://www.obi.cz/p/1", meta={"cookiejar": "www.obi.cz#7"})
    second = Request("https://www.obi.cz/p/2", meta={"cookiejar": "www.obi.cz#7"})
    mw.process_request(first, spider)
    mw.process_request(second, spider)
    assert first.meta["proxy"] == second.meta["proxy"]


def test_development_runs_go_direct():
    mw = ProxyPoolMiddleware(POOL)
    req = Request("https://www.obi.cz/p/1")
    mw.process_request(req, SimpleNamespace(config=CrawlConfig(development=True)))
    assert "proxy" not in req.meta
