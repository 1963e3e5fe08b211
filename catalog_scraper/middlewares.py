import zlib
from urllib.parse import urlsplit

from scrapy.exceptions import NotConfigured


def _bucket(value: str, size: int) -> int:
    return zlib.crc32(value.encode("utf-8")) % size


class StickySessionMiddleware:
    """Pin every request to a per-host session (Scrapy cookie jar).

    All requests to one host share a session; a retried request moves to the
    next session slot so a blocked session is not reused for it.
    """

    def __init__(self, pool_size: int = 150):
        self.pool_size = max(1, pool_size)

    @classmethod
    def from_crawler(cls, crawler):
        return cls(crawler.settings.getint("SESSION_POOL_SIZE", 150))

    def session_for(self, url: str, attempt: int = 0) -> str:
        host = urlsplit(url).netloc
        slot = (_bucket(host, self.pool_size) + attempt) % self.pool_size
        return f"{host}#{slot}"

    def process_request(self, request, spider):
        if "cookiejar" not in request.meta:
            request.meta["cookiejar"] = self.session_for(request.url, request.meta.get("attempt", 0))
        return None


class ProxyPoolMiddleware:
    """Route requests through the configured upstream proxy groups.

    The proxy is chosen from the request's session so a session always
    talks through the same exit. Disabled in development runs.
    """

    def __init__(self, pool):
        self.pool = pool

    @classmethod
    def from_crawler(cls, crawler):
        pool = crawler.settings.get("PROXY_POOL") or {}
        if not pool:
            raise NotConfigured("PROXY_POOL is empty")
        return cls(pool)

    def proxies_for(self, groups):
        if isinstance(self.pool, (list, tuple)):
            return list(self.pool)
        selected = groups or sorted(self.pool)
        return [proxy for group in selected for proxy in self.pool.get(group, [])]

    def process_request(self, request, spider):
        config = getattr(spider, "config", None)
        if config is None or config.development or "proxy" in request.meta:
            return None
        proxies = self.proxies_for(config.proxy_groups)
        if not proxies:
            return None
        session = str(request.meta.get("cookiejar") or urlsplit(request.url).netloc)
        request.meta["proxy"] = proxies[_bucket(session, len(proxies))]
        return None
