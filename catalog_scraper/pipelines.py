from pathlib import Path
from typing import Any

import orjson
from itemadapter import ItemAdapter

from catalog_scraper.items import RECORD_FIELDS


def dataset_path(spider) -> Path:
    configured = spider.settings.get("OUTPUT_JSONL")
    if configured:
        return Path(configured)
    return Path("data") / f"{spider.adapter.table_name}.jsonl"


class RecordDefaultsPipeline:
    """Make sure every record carries all table attributes (missing ones as null)."""

    def process_item(self, item: Any, spider) -> Any:
        adapter = ItemAdapter(item)
        for name in RECORD_FIELDS:
            if adapter.get(name) is None:
                adapter[name] = None
        return item


class JSONLinesPipeline:
    """JSONL dataset sink. No dedup: the crawl core never emits a product twice."""

    def open_spider(self, spider):
        self.path = dataset_path(spider)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # a new run starts an empty dataset, a resumed one keeps appending
        config = getattr(spider, "config", None)
        resume = bool(config and config.resume)
        self.f = self.path.open("ab" if resume else "wb")
        spider.logger.info(f"[DATASET] path={self.path} resume={resume}")
        self.written = 0

    def close_spider(self, spider):
        if hasattr(self, "f"):
            self.f.close()
            spider.logger.info(f"[DATASET] path={self.path} written={self.written}")

    def process_item(self, item: Any, spider) -> Any:
        adapter = ItemAdapter(item)
        # basic validation: records always carry identity and price
        if not adapter.get("itemId") or adapter.get("currentPrice") is None:
            spider.logger.warning(f"[PIPELINE-SKIP] missing fields itemId={adapter.get('itemId')} url={adapter.get('itemUrl')}")
            if spider.crawler and getattr(spider.crawler, "stats", None):
                spider.crawler.stats.inc_value("pipeline/dropped_missing_fields", 1)
            return item
        line = orjson.dumps(adapter.asdict(), option=orjson.OPT_APPEND_NEWLINE)
        self.f.write(line)
        self.f.flush()
        self.written += 1
        return item
