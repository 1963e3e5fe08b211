from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


def canonical_url(url: str) -> str:
    """
    Return the normalized form of a URL used as a request identity.

    - Lower-cases scheme and host
    - Removes a trailing slash from the path (but keeps "/" for the site root)
    - Keeps the query string, drops the fragment
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/") or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, ""))


def add_query_param(url: str, **params) -> str:
    """
    Return a new URL with the given query parameters added or updated.

    - Preserves existing query parameters unless overwritten by params
    - Ignores any param with value None
    - Leaves path and fragment unchanged
    """
    parts = urlsplit(url)
    q = dict(parse_qsl(parts.query, keep_blank_values=True))
    q.update({k: str(v) for k, v in params.items() if v is not None})
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(q), parts.fragment))


def absolute_url(href: str, base_url: str) -> str:
    # protocol-relative links ("//cdn.example/x.jpg") resolve against the base scheme
    return urljoin(base_url, href.strip())
