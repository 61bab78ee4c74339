from dataclasses import replace

import pytest

from conftest import FakeFetch, FakeRender, ForbiddenRender, rendered
from promo_crawler.config import InvalidSite, SiteConfig
from promo_crawler.core import check_country, discover_candidates, run_all
from promo_crawler.report import to_text

LISTING = "https://example.test/de/angebote"
DATE_PAGE = "https://example.test/de/angebote/d.08-12-2025.html"
LISTING_HTML = """
<html><body>
  <h1>Alle Angebote</h1>
  <a href="/de/angebote/d.08-12-2025.html?ref=home">Ab Montag</a>
</body></html>
"""
DATE_HTML = "<html><body><h1>Ab Montag</h1><p>Es wurden 37 Aktionsartikel gefunden</p></body></html>"


@pytest.mark.asyncio
async def test_country_summary_end_to_end(site, settings):
    fetch = FakeFetch({LISTING: LISTING_HTML, DATE_PAGE: DATE_HTML})

    summary = await check_country(site, settings, fetch=fetch, render=ForbiddenRender())

    assert summary.date_pages_found == 1
    assert [p.url for p in summary.pages] == [LISTING, DATE_PAGE]
    assert summary.pages[0].count is None
    assert summary.pages[1].count == 37
    assert summary.failures == []
    assert summary.as_dict()["datePlpsFound"] == 1


@pytest.mark.asyncio
async def test_listing_root_always_checked(site, settings):
    summary = await check_country(site, settings, fetch=FakeFetch(), render=ForbiddenRender())

    assert [p.url for p in summary.pages] == [LISTING]
    assert summary.date_pages_found == 0
    assert summary.failures == [{"url": LISTING, "error": "failed to fetch or render page"}]


@pytest.mark.asyncio
async def test_discovery_renders_with_escalating_timeouts(site, settings):
    settings = replace(settings, rendering=True)
    render = FakeRender(results=[
        None,
        rendered("", html="<p>noch nichts</p>"),
        rendered("", html=LISTING_HTML),
    ])

    pages = await discover_candidates(site, settings, fetch=FakeFetch(), render=render)

    assert pages == {LISTING, DATE_PAGE}
    assert [t for _, t in render.calls] == [1000, 2000, 3000]


@pytest.mark.asyncio
async def test_discovery_skips_render_when_fetch_found_links(site, settings):
    settings = replace(settings, rendering=True)
    fetch = FakeFetch({LISTING: LISTING_HTML})

    pages = await discover_candidates(site, settings, fetch=fetch, render=ForbiddenRender())

    assert pages == {LISTING, DATE_PAGE}


@pytest.mark.asyncio
async def test_country_error_does_not_stop_batch(site, settings):
    broken = SiteConfig(country="XX", root="https://broken.test", listing_path="/promo", keywords=("Artikel",))

    class SelectiveFetch(FakeFetch):
        async def __call__(self, url, accept_language="", timeout=0):
            if "broken.test" in url:
                raise RuntimeError("dns failure")
            return await super().__call__(url, accept_language, timeout)

    fetch = SelectiveFetch({LISTING: LISTING_HTML, DATE_PAGE: DATE_HTML})
    report = await run_all([broken, site], settings, fetch=fetch, render=ForbiddenRender())

    assert list(report.countries) == ["XX", "AT"]
    assert report.countries["XX"].error == "dns failure"
    assert report.countries["AT"].pages[1].count == 37


@pytest.mark.asyncio
async def test_report_is_stable_for_frozen_inputs(site, settings):
    fetch = FakeFetch({LISTING: LISTING_HTML, DATE_PAGE: DATE_HTML})

    first = await run_all([site], settings, fetch=fetch, render=ForbiddenRender())
    second = await run_all([site], settings, fetch=fetch, render=ForbiddenRender())

    a, b = first.as_dict(), second.as_dict()
    a.pop("timestamp")
    b.pop("timestamp")
    assert a == b
    assert to_text(first) == to_text(second)
    assert a["totalChecked"] == 2
    assert a["unknownPages"] == [LISTING]
    assert a["zeroPages"] == []


@pytest.mark.asyncio
async def test_invalid_site_entry_reported_in_config_order(site, settings):
    invalid = InvalidSite(country="XX", error="site entry XX missing keywords")
    fetch = FakeFetch({LISTING: LISTING_HTML, DATE_PAGE: DATE_HTML})

    report = await run_all([invalid, site], settings, fetch=fetch, render=ForbiddenRender())

    assert list(report.countries) == ["XX", "AT"]
    assert report.countries["XX"].as_dict() == {
        "datePlpsFound": 0,
        "pages": [],
        "error": "site entry XX missing keywords",
    }
    assert report.countries["AT"].pages[1].count == 37
    assert fetch.calls == [LISTING, LISTING, DATE_PAGE]


def test_run_all_requires_resolved_settings(site):
    with pytest.raises(TypeError):
        run_all([site])
