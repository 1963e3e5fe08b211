from catalog_scraper.frontier import CrawlRequest
from catalog_scraper.labels import StageLabel, can_transition
from catalog_scraper.parse_helpers import parse_document
from catalog_scraper.stages import HANDLERS, dispatch

from pages import HOME, category_page, detail_page, home_page, product_url


def _run(adapter, url, stage, html):
    return dispatch(CrawlRequest(url, stage), parse_document(html), adapter)


def test_every_label_has_a_handler():
    assert set(HANDLERS) == set(StageLabel)


def test_start_fans_out_to_categories_at_the_forefront(adapter):
    result = _run(adapter, HOME, StageLabel.START, home_page(["/dilna/c/1", "https://www.obi.cz/zahrada/c/2"]))
    (follow,) = result.follow_ups
    assert follow.forefront
    assert [r.url for r in follow.requests] == [f"{HOME}/dilna/c/1", f"{HOME}/zahrada/c/2"]
    assert all(r.stage == StageLabel.SUBCATEGORY for r in follow.requests)
    assert result.counters == []


def test_zero_product_count_is_walked_as_intermediate_category(adapter):
    html = category_page(["/p/1"], product_count="0", subcategory_hrefs=["/dilna/vrtacky/c/11"])
    result = _run(adapter, f"{HOME}/dilna/c/1", StageLabel.SUBCATEGORY, html)
    (follow,) = result.follow_ups
    assert follow.forefront
    assert [(r.url, r.stage) for r in follow.requests] == [(f"{HOME}/dilna/vrtacky/c/11", StageLabel.SUBCATEGORY)]


def test_missing_product_count_is_walked_as_intermediate_category(adapter):
    html = category_page(subcategory_hrefs=["/a/c/1", "/b/c/2"])
    result = _run(adapter, f"{HOME}/dilna/c/1", StageLabel.SUBCATEGORY, html)
    assert [r.stage for r in result.follow_ups[0].requests] == [StageLabel.SUBCATEGORY] * 2


def test_child_category_links_resolve_against_the_home_url(adapter):
    html = category_page(subcategory_hrefs=["vrtacky/c/11"])
    result = _run(adapter, f"{HOME}/dilna/c/1", StageLabel.SUBCATEGORY, html)
    assert [r.url for r in result.follow_ups[0].requests] == [f"{HOME}/vrtacky/c/11"]


def test_leaf_category_plans_pagination_and_details(adapter):
    hrefs = [f"/naradi/produkt/p/{n}" for n in range(10)]
    html = category_page(hrefs, product_count="25")
    result = _run(adapter, f"{HOME}/vrtacky/c/100?sort=price", StageLabel.SUBCATEGORY, html)

    pages, details = result.follow_ups
    assert pages.forefront
    assert [r.url for r in pages.requests] == [f"{HOME}/vrtacky/c/100/?page=2", f"{HOME}/vrtacky/c/100/?page=3"]
    assert all(r.stage == StageLabel.LISTING for r in pages.requests)

    assert not details.forefront
    assert len(details.requests) == 10
    assert details.dedup_keys == [r.unique_key for r in details.requests]
    assert all(r.stage == StageLabel.DETAIL for r in details.requests)


def test_listing_emits_detail_requests_only(adapter):
    result = _run(adapter, f"{HOME}/vrtacky/c/100/?page=2", StageLabel.LISTING, category_page(["/p/1", "/p/2"]))
    (follow,) = result.follow_ups
    assert [r.stage for r in follow.requests] == [StageLabel.DETAIL, StageLabel.DETAIL]
    assert all(can_transition(StageLabel.LISTING, r.stage) for r in follow.requests)


def test_detail_keys_variants_by_item_id_and_skips_itself(adapter):
    html = detail_page(
        "1",
        size_variants=[product_url(1), product_url(2), "/bez-id", product_url(2) + "#/"],
        color_variants=[product_url(3)],
    )
    result = _run(adapter, product_url(1), StageLabel.DETAIL, html)
    (variants,) = result.follow_ups
    assert variants.dedup_keys == ["2", "3"]
    assert result.mark_seen == ["1"]
    assert result.counters == ["totalItems"]
    assert result.record["itemId"] == "1"


def test_detail_without_required_fields_reports_absence(adapter):
    result = _run(adapter, product_url(9), StageLabel.DETAIL, detail_page("9", currency=None))
    assert result.record is None
    assert "currency" in result.absent_reason
    assert result.counters == ["totalItems"]
