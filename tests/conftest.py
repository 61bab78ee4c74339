import pytest

from promo_crawler.config import RetryPolicy, Settings, SiteConfig
from promo_crawler.playwright_helpers import RenderedPage


@pytest.fixture
def site():
    return SiteConfig(
        country="AT",
        root="https://example.test",
        listing_path="/de/angebote",
        keywords=("Aktionsartikel",),
        locale="de-AT",
    )


@pytest.fixture
def settings():
    return Settings(
        rendering=False,
        discovery_retry=RetryPolicy(max_attempts=3, base_timeout_ms=1000, backoff_sec=0),
        page_retry=RetryPolicy(max_attempts=2, base_timeout_ms=1000, backoff_sec=0),
    )


class FakeFetch:
    """Returns canned markup per URL and records every call."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.calls = []

    async def __call__(self, url, accept_language="", timeout=0):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.pages.get(url)


class FakeRender:
    """Returns queued RenderedPage results (or None) and records timeouts."""

    def __init__(self, results=None, default=None):
        self.results = list(results or [])
        self.default = default
        self.calls = []

    async def __call__(self, url, site, timeout_ms=0, wait_for=None, keyword_wait_ms=0):
        self.calls.append((url, timeout_ms))
        if self.results:
            return self.results.pop(0)
        return self.default


class ForbiddenRender:
    async def __call__(self, *args, **kwargs):
        raise AssertionError("renderer must not be called")


def rendered(text, html="", focus="", url="https://example.test/"):
    return RenderedPage(url=url, html=html, text=text, focus=focus)
