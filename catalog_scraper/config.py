"""Run configuration, read once when the crawl starts.

Values come from spider arguments (``-a key=value``) first, then from the
Scrapy settings, which themselves default to CRAWL_* environment variables
(see settings.py).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from catalog_scraper.errors import ConfigurationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


class RunType(str, Enum):
    FULL = "full"  # whole catalog from the home page
    TEST = "test"  # one known category, to check the selectors still match


@dataclass(frozen=True)
class CrawlConfig:
    site: str = "obi"
    country: str = "cz"
    development: bool = False
    run_type: RunType = RunType.FULL
    test_url: Optional[str] = None  # overrides the adapter's test category
    # False: a new run, counters of the scope and the dataset start empty.
    # True: continue an interrupted run from its last checkpoint.
    resume: bool = False
    proxy_groups: Tuple[str, ...] = ()
    max_request_retries: int = 3
    frontier_max_size: Optional[int] = None
    stats_checkpoint_every: int = 50


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{key}: expected a boolean, got {value!r}")


def _as_int(key: str, value: Any, minimum: int = 0) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key}: expected an integer, got {value!r}") from None
    if number < minimum:
        raise ConfigurationError(f"{key}: must be >= {minimum}, got {number}")
    return number


def _as_run_type(value: Any) -> RunType:
    if isinstance(value, RunType):
        return value
    try:
        return RunType(str(value).strip().lower())
    except ValueError:
        supported = ", ".join(t.value for t in RunType)
        raise ConfigurationError(f"unknown run type {value!r}, supported types are {supported}") from None


def _as_groups(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(g.strip() for g in value if str(g).strip())


def load_config(settings: Optional[Mapping[str, Any]] = None, **overrides) -> CrawlConfig:
    """Build a CrawlConfig from spider arguments and settings.

    Raises ConfigurationError for malformed values; the site/country pair is
    validated separately when the site adapter is built.
    """
    settings = settings or {}

    def pick(arg: str, setting: str, default: Any) -> Any:
        if overrides.get(arg) is not None:
            return overrides[arg]
        value = settings.get(setting)
        return default if value is None else value

    defaults = CrawlConfig()
    max_size = pick("frontier_max_size", "FRONTIER_MAX_SIZE", None)
    return CrawlConfig(
        site=str(pick("site", "CRAWL_SITE", defaults.site)).strip().lower(),
        country=str(pick("country", "CRAWL_COUNTRY", defaults.country)).strip().lower(),
        development=_as_bool("development", pick("development", "CRAWL_DEVELOPMENT", defaults.development)),
        run_type=_as_run_type(pick("run_type", "CRAWL_RUN_TYPE", defaults.run_type)),
        resume=_as_bool("resume", pick("resume", "CRAWL_RESUME", defaults.resume)),
        test_url=pick("test_url", "CRAWL_TEST_URL", None) or None,
        proxy_groups=_as_groups(pick("proxy_groups", "CRAWL_PROXY_GROUPS", defaults.proxy_groups)),
        max_request_retries=_as_int(
            "max_request_retries", pick("max_request_retries", "CRAWL_MAX_REQUEST_RETRIES", defaults.max_request_retries)
        ),
        frontier_max_size=_as_int("frontier_max_size", max_size, minimum=1) if max_size not in (None, "", 0, "0") else None,
        stats_checkpoint_every=_as_int(
            "stats_checkpoint_every",
            pick("stats_checkpoint_every", "STATS_CHECKPOINT_EVERY", defaults.stats_checkpoint_every),
            minimum=1,
        ),
    )
