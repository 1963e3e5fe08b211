import pytest

from catalog_scraper.errors import ParseError
from catalog_scraper.parse_helpers import (
    clean_price,
    leading_int,
    missing_fields,
    normalize_currency,
    parse_document,
    select_attr,
    select_text,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1 299,90 Kč", 1299.9),
        ("€1,299.90", 1299.9),
        ("399,-", 399.0),
        ("1.299", 1299.0),
        ("12,5 €", 12.5),
        ("2.499,00 Ft", 2499.0),
        ("", None),
        ("zdarma", None),
        (None, None),
    ],
)
def test_clean_price(raw, expected):
    assert clean_price(raw) == expected


def test_normalize_currency():
    assert normalize_currency(" czk ") == "CZK"
    assert normalize_currency("SKK") == "EUR"
    assert normalize_currency("HRK") == "EUR"
    assert normalize_currency("") is None
    assert normalize_currency(None) is None


@pytest.mark.parametrize(
    "raw, expected",
    [("25", 25), ("1 234", 1234), ("12 produktů", 12), ("0", 0), ("abc", None), ("", None), (None, None)],
)
def test_leading_int(raw, expected):
    assert leading_int(raw) == expected


def test_parse_document_rejects_empty_body():
    with pytest.raises(ParseError):
        parse_document(b"")
    with pytest.raises(ParseError):
        parse_document(None)


def test_select_helpers_strip_and_default_to_none():
    doc = parse_document(b'<div><p class="a">  hello  </p><input name="code" value="  "></div>')
    assert select_text(doc, "p.a") == "hello"
    assert select_text(doc, "p.missing") is None
    assert select_attr(doc, 'input[name="code"]', "value") is None


def test_missing_fields():
    assert missing_fields(itemId="1", currency=None, currentPrice="") == ["currency", "currentPrice"]
