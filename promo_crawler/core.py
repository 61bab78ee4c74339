# promo_crawler/core.py
from __future__ import annotations
import asyncio
import gc
from datetime import datetime, timezone
from time import perf_counter
from typing import Optional, Sequence, Set, Union

from . import logger
from .config import InvalidSite, Settings, SiteConfig
from .discovery import canonical_url, discover_links, is_date_page, order_candidates
from .fetch import fetch_html
from .memory_utils import log_memory
from .models import BatchReport, CountrySummary
from .pipeline import Fetcher, Renderer, check_page
from .playwright_helpers import render_page
from .retry import run_with_retries


async def discover_candidates(
    site: SiteConfig,
    settings: Settings,
    fetch: Fetcher = fetch_html,
    render: Renderer = render_page,
) -> Set[str]:
    """Candidate pages for one site; always contains the listing root."""
    listing = canonical_url(site.listing_url)
    pages: Set[str] = set()

    if not site.always_render:
        logger.info("discovery.fetch country=%s url=%s", site.country, listing)
        html = await fetch(listing, site.language_header, settings.fetch_timeout_sec)
        if html:
            logger.info("discovery.fetch_ok country=%s length=%d", site.country, len(html))
            pages |= discover_links(html, site.root, site.listing_path)
        else:
            logger.info("discovery.fetch_unusable country=%s", site.country)

    pages.add(listing)

    if len(pages) <= 1 and settings.rendering:
        logger.info("discovery.render country=%s reason=no_links_from_fetch", site.country)

        async def attempt(_n: int, timeout_ms: int) -> Optional[Set[str]]:
            rendered = await render(listing, site, timeout_ms=timeout_ms)
            if rendered is None:
                return None
            found = discover_links(rendered.html, site.root, site.listing_path) - {listing}
            return found or None

        found = await run_with_retries(settings.discovery_retry, attempt, label="discovery")
        if found:
            pages |= found

    logger.info("discovery.done country=%s pages=%d", site.country, len(pages))
    return pages


async def check_country(
    site: SiteConfig,
    settings: Settings,
    fetch: Fetcher = fetch_html,
    render: Renderer = render_page,
) -> CountrySummary:
    """Discover and check every candidate page of one site. Never raises."""
    summary = CountrySummary(country=site.country)
    try:
        candidates = await discover_candidates(site, settings, fetch=fetch, render=render)
        ordered = order_candidates(candidates, site.listing_url)
        summary.date_pages_found = sum(1 for u in ordered if is_date_page(u))

        for url in ordered:
            outcome = await check_page(url, site, settings, fetch=fetch, render=render)
            summary.pages.append(outcome)
            if outcome.error:
                summary.failures.append({"url": url, "error": outcome.error})
    except Exception as e:
        logger.exception("country.failed country=%s error=%s", site.country, e)
        summary.error = str(e) or e.__class__.__name__

    logger.info(
        "country.done country=%s date_pages=%d pages=%d failures=%d",
        site.country,
        summary.date_pages_found,
        len(summary.pages),
        len(summary.failures),
    )
    return summary


async def run_all(
    sites: Sequence[Union[SiteConfig, InvalidSite]],
    settings: Settings,
    fetch: Fetcher = fetch_html,
    render: Renderer = render_page,
) -> BatchReport:
    """
    Check every configured country and assemble the report.

    Countries run under a semaphore sized by ``settings.concurrency`` (1 keeps
    the sequential behavior); pages within a country are always sequential.
    Invalid site entries are reported as country-level errors in config order.
    ``settings`` must be resolved before entering the event loop.
    """
    started = datetime.now(timezone.utc)
    start = perf_counter()
    logger.info(
        "run.start countries=%d concurrency=%d rendering=%s",
        len(sites),
        settings.concurrency,
        settings.rendering,
    )

    sem = asyncio.Semaphore(settings.concurrency)

    async def limited(site: Union[SiteConfig, InvalidSite]) -> CountrySummary:
        if isinstance(site, InvalidSite):
            logger.error("country.invalid_config country=%s error=%s", site.country, site.error)
            return CountrySummary(country=site.country, error=site.error)
        async with sem:
            log_memory(logger, f"before_country country={site.country}")
            try:
                return await check_country(site, settings, fetch=fetch, render=render)
            finally:
                gc.collect()
                log_memory(logger, f"after_country country={site.country}")

    results = await asyncio.gather(*(limited(s) for s in sites), return_exceptions=True)

    report = BatchReport(timestamp=started.isoformat())
    for site, result in zip(sites, results):
        if isinstance(result, BaseException):
            logger.error("country.crashed country=%s error=%s", site.country, result)
            result = CountrySummary(country=site.country, error=str(result) or result.__class__.__name__)
        report.countries[site.country] = result

    logger.info(
        "run.completed countries=%d pages=%d duration_sec=%.2f",
        len(report.countries),
        len(report.outcomes()),
        perf_counter() - start,
    )
    return report
