# promo_crawler/pipeline.py
from __future__ import annotations
from typing import Awaitable, Callable, Iterable, Optional

from . import logger
from .config import RetryPolicy, Settings, SiteConfig
from .extract import extract_count, find_snippet, focus_text, html_to_text, slice_text
from .fetch import fetch_html
from .models import PageOutcome
from .playwright_helpers import RenderedPage, render_page
from .retry import run_with_retries

Fetcher = Callable[..., Awaitable[Optional[str]]]
Renderer = Callable[..., Awaitable[Optional[RenderedPage]]]

NO_CONTENT = "failed to fetch or render page"
NO_RENDERING = "rendering unavailable"


def _first_count(
    texts: Iterable[str],
    site: SiteConfig,
    settings: Settings,
    max_fallback: Optional[bool] = None,
) -> Optional[int]:
    if max_fallback is None:
        max_fallback = settings.max_fallback
    for text in texts:
        if not text:
            continue
        count = extract_count(
            text,
            site.keywords,
            max_value=settings.plausibility_max,
            gap=settings.keyword_gap,
            max_fallback=max_fallback,
        )
        if count is not None:
            return count
    return None


async def render_with_retry(
    url: str,
    site: SiteConfig,
    policy: RetryPolicy,
    settings: Settings,
    render: Renderer = render_page,
) -> Optional[RenderedPage]:
    """
    Render until an attempt yields a count, escalating the timeout.

    A page that loaded only partly (navigation timeout) or shows no count is a
    failed attempt. When every attempt fails, the last page that could be read
    is returned for the slice stage.
    """
    last: Optional[RenderedPage] = None

    async def attempt(_n: int, timeout_ms: int) -> Optional[RenderedPage]:
        nonlocal last
        page = await render(url, site, timeout_ms=timeout_ms, wait_for=site.keywords, keyword_wait_ms=settings.keyword_wait_ms)
        if page is None:
            return None
        last = page
        if _first_count((page.focus, page.text), site, settings) is None:
            logger.info("render.no_count url=%s timeout_ms=%d", url, timeout_ms)
            return None
        return page

    return await run_with_retries(policy, attempt, label="render") or last


async def check_page(
    url: str,
    site: SiteConfig,
    settings: Settings,
    fetch: Fetcher = fetch_html,
    render: Renderer = render_page,
) -> PageOutcome:
    """
    Produce the outcome for one candidate page. Never raises.

    Ladder: fetched markup (headline area, then whole text), rendered page
    (headline area, then visible text), leading slice of whatever was retrieved.
    Sites flagged ``always_render`` skip the fetch stage.
    """
    try:
        markup: Optional[str] = None
        if not site.always_render:
            markup = await fetch(url, site.language_header, settings.fetch_timeout_sec)
            if markup:
                text = html_to_text(markup)
                count = _first_count((focus_text(markup), text), site, settings)
                if count is not None:
                    logger.info("page.result url=%s count=%d source=fetch", url, count)
                    return PageOutcome(url=url, count=count, snippet=find_snippet(text, site.keywords), source="fetch")

        rendered: Optional[RenderedPage] = None
        if settings.rendering:
            logger.info("page.render url=%s always_render=%s", url, site.always_render)
            rendered = await render_with_retry(url, site, settings.page_retry, settings, render=render)
            if rendered is not None:
                count = _first_count((rendered.focus, rendered.text), site, settings)
                if count is not None:
                    logger.info("page.result url=%s count=%d source=render", url, count)
                    return PageOutcome(url=url, count=count, snippet=find_snippet(rendered.text, site.keywords), source="render")
        elif site.always_render:
            logger.info("page.unknown url=%s reason=rendering_unavailable", url)
            return PageOutcome(url=url, error=NO_RENDERING)

        leftover = rendered.text if rendered is not None and rendered.text else markup
        if not leftover:
            logger.info("page.failed url=%s reason=no_content", url)
            return PageOutcome(url=url, error=NO_CONTENT)

        head = leftover[: settings.slice_chars]
        if leftover is markup:
            # raw markup: read text and meta descriptions only, no largest-number guess
            head = slice_text(head)
            count = _first_count((head,), site, settings, max_fallback=False)
            snippet = find_snippet(head, site.keywords) or find_snippet(html_to_text(markup), site.keywords)
        else:
            count = _first_count((head,), site, settings)
            snippet = find_snippet(leftover, site.keywords)
        if count is not None:
            logger.info("page.result url=%s count=%d source=slice", url, count)
            return PageOutcome(url=url, count=count, snippet=snippet, source="slice")

        logger.info("page.result url=%s count=unknown", url)
        return PageOutcome(url=url, snippet=snippet)
    except Exception as e:
        logger.exception("page.failed url=%s error=%s", url, e)
        return PageOutcome(url=url, error=str(e) or e.__class__.__name__)
