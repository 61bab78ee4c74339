# promo_crawler/fetch.py
from __future__ import annotations
import asyncio
from typing import Optional

import aiohttp

from . import logger
from .constants import DEFAULT_FETCH_TIMEOUT_SEC, USER_AGENT


def browser_headers(accept_language: str) -> dict:
    return {
        "User-Agent": USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": accept_language,
    }


async def fetch_html(
    url: str,
    accept_language: str = "de-DE,de;q=0.9",
    timeout: float = DEFAULT_FETCH_TIMEOUT_SEC,
) -> Optional[str]:
    """
    Plain GET with a browser-like signature. Returns the body on 2xx, None otherwise.

    No retries here; the caller decides whether to try again or fall back to rendering.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with aiohttp.ClientSession(headers=browser_headers(accept_language), timeout=client_timeout) as session:
            async with session.get(url, allow_redirects=True) as resp:
                if not 200 <= resp.status < 300:
                    logger.info("fetch.not_ok url=%s status=%d", url, resp.status)
                    return None
                body = await resp.text(errors="replace")
                logger.debug("fetch.ok url=%s bytes=%d", url, len(body))
                return body
    except asyncio.TimeoutError:
        logger.warning("fetch.timeout url=%s timeout_sec=%.1f", url, timeout)
    except aiohttp.ClientError as e:
        logger.warning("fetch.failed url=%s error=%s", url, str(e)[:300])
    except Exception as e:
        logger.warning("fetch.failed url=%s error=%s", url, str(e)[:300])
    return None
