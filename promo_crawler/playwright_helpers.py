# promo_crawler/playwright_helpers.py
from __future__ import annotations
import asyncio
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from . import logger
from .constants import BROWSER_ARGS, KEYWORD_WAIT_MS, SETTLE_WAIT_MS, USER_AGENT, VIEWPORT

if TYPE_CHECKING:
    from .config import SiteConfig

FOCUS_JS = """
() => {
  const sel = 'h1, h2, [class*="headline"], [class*="result-count"], [class*="results"]';
  const out = [];
  document.querySelectorAll(sel).forEach(el => {
    out.push(el.innerText || '');
    const nxt = el.nextElementSibling;
    if (nxt) out.push(nxt.innerText || '');
  });
  return out.join('\\n');
}
"""

BODY_TEXT_JS = "() => (document.body && document.body.innerText) || ''"

KEYWORD_JS = """
(kws) => {
  const t = ((document.body && document.body.innerText) || '').toLowerCase();
  return kws.some(k => t.includes(k));
}
"""


@dataclass(frozen=True)
class RenderedPage:
    url: str
    html: str
    text: str
    focus: str = ""


async def launch_browser(pw):
    return await pw.chromium.launch(headless=True, args=BROWSER_ARGS)


async def new_context(browser, locale: str, accept_language: str):
    """Fresh context with a desktop signature for one page load."""
    ctx = await browser.new_context(user_agent=USER_AGENT, viewport=VIEWPORT, locale=locale)
    await ctx.set_extra_http_headers({"Accept-Language": accept_language})
    return ctx


async def _teardown(page, ctx, browser, url: str) -> None:
    for name, res in (("page", page), ("context", ctx), ("browser", browser)):
        if res is None:
            continue
        try:
            await res.close()
        except Exception as e:
            logger.debug("render.close_failed url=%s resource=%s error=%s", url, name, e)
    logger.debug("render.teardown url=%s", url)


async def render_page(
    url: str,
    site: "SiteConfig",
    timeout_ms: int = 60000,
    wait_for: Optional[Sequence[str]] = None,
    keyword_wait_ms: int = KEYWORD_WAIT_MS,
) -> Optional[RenderedPage]:
    """
    Load ``url`` in its own browser and return the rendered markup and visible text.

    Navigation errors are not fatal: whatever DOM loaded is still read. Page,
    context and browser are closed on every exit path. Returns None only when
    the browser could not be started or the DOM could not be read.
    """
    try:
        async with async_playwright() as pw:
            browser = ctx = page = None
            try:
                browser = await launch_browser(pw)
                ctx = await new_context(browser, site.locale, site.language_header)
                page = await ctx.new_page()
                try:
                    await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                except PlaywrightError as e:
                    logger.info("render.nav_error url=%s timeout_ms=%d error=%s", url, timeout_ms, str(e)[:300])

                if wait_for:
                    try:
                        await page.wait_for_function(
                            KEYWORD_JS, arg=[k.lower() for k in wait_for], timeout=keyword_wait_ms
                        )
                        logger.info("render.keyword_seen url=%s", url)
                    except PlaywrightError:
                        logger.info("render.keyword_missing url=%s wait_ms=%d", url, keyword_wait_ms)

                await page.wait_for_timeout(SETTLE_WAIT_MS)
                html = await page.content()
                text = await page.evaluate(BODY_TEXT_JS)
                focus = await page.evaluate(FOCUS_JS)
                return RenderedPage(url=url, html=html or "", text=text or "", focus=focus or "")
            finally:
                await _teardown(page, ctx, browser, url)
    except Exception as e:
        logger.warning("render.failed url=%s error=%s", url, str(e)[:400])
        return None


async def _chromium_installed() -> bool:
    async with async_playwright() as pw:
        return os.path.exists(pw.chromium.executable_path)


def probe_browser() -> bool:
    """Check once, outside any running event loop, that a Chromium build is installed."""
    try:
        ok = asyncio.run(_chromium_installed())
    except Exception as e:
        logger.warning("render.probe_failed error=%s", str(e)[:300])
        return False
    logger.info("render.probe chromium_installed=%s", ok)
    return ok
