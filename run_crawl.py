#!/usr/bin/env python3
"""Run the catalog crawl for one site variant.

Configuration is validated before the crawler starts, so an unknown site or
country aborts with a message and no request is ever sent.

Usage (from project root):
  python run_crawl.py --site obi --country cz
  python run_crawl.py --country sk --development --max-request-retries 1
  python run_crawl.py --type test --development
  python run_crawl.py --country cz --resume      # after a crash, same run

Equivalent to: scrapy crawl catalog -a country=cz ...
"""
from __future__ import annotations

import argparse
import os
import sys

from scrapy.crawler import CrawlerProcess
from scrapy.utils.project import get_project_settings

from catalog_scraper.adapters.registry import build_adapter
from catalog_scraper.config import load_config
from catalog_scraper.errors import ConfigurationError
from catalog_scraper.spiders.catalog import CatalogSpider


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Crawl an e-commerce catalog into a JSONL dataset.")
    ap.add_argument("--site", help="site adapter name (default: CRAWL_SITE or obi)")
    ap.add_argument("--country", help="site variant, e.g. cz, sk, it (default: CRAWL_COUNTRY or cz)")
    ap.add_argument("--development", action="store_true", help="no proxies, no upload, debug logging")
    ap.add_argument("--max-request-retries", type=int, help="retries per request after the first attempt")
    ap.add_argument("--proxy-groups", help="comma separated proxy group names")
    ap.add_argument("--type", dest="run_type", choices=["full", "test"], help="full catalog or one known test category")
    ap.add_argument("--test-url", help="category seeded by --type test (default: the site adapter's)")
    ap.add_argument("--resume", action="store_true", help="continue an interrupted run: keep counters and dataset")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    os.environ.setdefault("SCRAPY_SETTINGS_MODULE", "catalog_scraper.settings")
    settings = get_project_settings()
    overrides = {
        "site": args.site,
        "country": args.country,
        "development": True if args.development else None,
        "max_request_retries": args.max_request_retries,
        "proxy_groups": args.proxy_groups,
        "run_type": args.run_type,
        "resume": True if args.resume else None,
        "test_url": args.test_url,
    }
    try:
        config = load_config(settings, **overrides)
        build_adapter(config.site, config.country)
    except ConfigurationError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2
    if config.development:
        settings.set("LOG_LEVEL", "DEBUG", priority="cmdline")

    process = CrawlerProcess(settings)
    process.crawl(CatalogSpider, **{k: v for k, v in overrides.items() if v is not None})
    process.start()
    return 0


if __name__ == "__main__":
    sys.exit(main())
