from __future__ import annotations

import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Tag

from catalog_scraper.errors import ParseError

# Codes no longer traded, mapped to their successor currency.
LEGACY_CURRENCIES = {
    "SKK": "EUR",
    "HRK": "EUR",
}

_DASH_SUFFIX = re.compile(r"[,.]\s*-+")
_NON_PRICE = re.compile(r"[^\d,.]")
_SEPARATORS = re.compile(r"[,.]")


def parse_document(body: Union[bytes, str, None]) -> BeautifulSoup:
    """Parse raw HTML into a CSS-selectable tree (lxml backend).

    Raises ParseError for empty bodies and for input lxml cannot make sense of.
    """
    if not body:
        raise ParseError("empty document")
    try:
        soup = BeautifulSoup(body, "lxml")
    except Exception as e:
        raise ParseError(f"unparsable document: {e}") from e
    if soup.find() is None:
        raise ParseError("document has no elements")
    return soup


def clean_price(text: Optional[str]) -> Optional[float]:
    """Turn a locale-formatted price ("1 299,90 Kč", "€1,299.90", "399,-") into a float.

    The right-most "," or "." followed by one or two digits is the decimal
    separator; every other separator is digit grouping.
    """
    if not text:
        return None
    s = _DASH_SUFFIX.sub("", text)
    s = _NON_PRICE.sub("", s).strip(",.")
    if not s or not any(ch.isdigit() for ch in s):
        return None
    last_sep = max(s.rfind(","), s.rfind("."))
    fraction = ""
    if last_sep != -1 and len(s) - last_sep - 1 in (1, 2):
        s, fraction = s[:last_sep], s[last_sep + 1:]
    whole = _SEPARATORS.sub("", s) or "0"
    return round(float(f"{whole}.{fraction or '0'}"), 2)


def normalize_currency(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    code = code.strip().upper()
    if not code:
        return None
    return LEGACY_CURRENCIES.get(code, code)


def select_text(root: Tag, selector: str) -> Optional[str]:
    el = root.select_one(selector)
    if el is None:
        return None
    text = el.get_text(" ", strip=True)
    return text or None


def select_attr(root: Tag, selector: str, attr: str) -> Optional[str]:
    el = root.select_one(selector)
    if el is None:
        return None
    value = el.get(attr)
    if isinstance(value, list):  # multi-valued attributes such as class
        value = " ".join(value)
    if value is None:
        return None
    value = value.strip()
    return value or None


def select_texts(root: Tag, selector: str) -> List[str]:
    return [t for t in (el.get_text(" ", strip=True) for el in root.select(selector)) if t]


def leading_int(raw: Optional[str]) -> Optional[int]:
    """Parse like JavaScript ``parseInt(raw.replace(/\\s+/g, ""), 10)``.

    All whitespace is removed first (so "1 234" is 1234), then the leading
    run of digits is read. Returns None when there is none.
    """
    if raw is None:
        return None
    m = re.match(r"[+-]?\d+", re.sub(r"\s+", "", raw))
    return int(m.group(0)) if m else None


def missing_fields(**values) -> List[str]:
    return [name for name, value in values.items() if value in (None, "")]

