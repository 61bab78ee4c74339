# promo_crawler/discovery.py
from __future__ import annotations
import re
from typing import Iterable, List, Sequence, Set
from urllib.parse import urljoin, urlsplit, urlunsplit

from lxml import etree
from lxml import html as lxml_html

from . import logger
from .constants import DATE_PAGE_PATTERN

DATE_PAGE_RE = re.compile(DATE_PAGE_PATTERN, re.IGNORECASE)
# date pages anywhere in raw markup, including inline JSON with escaped slashes;
# a match starts at a quote, "=", "(" or whitespace
RAW_DATE_PAGE_RE = re.compile(
    r"""(?:^|(?<=["'=(\s]))([^"'\s<>=()]*?(?:/|\\/)d\.\d{2}-\d{2}-\d{4}\.html)""",
    re.IGNORECASE,
)
SKIP_SCHEMES = ("javascript:", "mailto:", "tel:")


def canonical_url(url: str) -> str:
    """Drop query string and fragment."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def is_date_page(url: str) -> bool:
    return bool(DATE_PAGE_RE.search(url or ""))


def _bare_host(host: str) -> str:
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


def is_same_site(href: str, root: str) -> bool:
    if href.startswith("//"):
        return _bare_host(urlsplit("http:" + href).hostname) == _bare_host(urlsplit(root).hostname)
    if href.startswith("/"):
        return True
    host = urlsplit(href).hostname
    if host is None:
        # relative path like "d.08-12-2025.html"
        return not re.match(r"^[a-z][a-z0-9+.-]*:", href, re.IGNORECASE)
    return _bare_host(host) == _bare_host(urlsplit(root).hostname)


def looks_promotional(href: str, segments: Sequence[str]) -> bool:
    lower = href.lower()
    if is_date_page(lower):
        return True
    return any(seg and seg in lower for seg in segments)


def listing_segments(listing_path: str) -> List[str]:
    """'/de/angebote' -> ['/angebote']"""
    parts = [p for p in (listing_path or "").lower().split("/") if p]
    return ["/" + parts[-1]] if parts else []


def extract_anchor_hrefs(markup: str) -> List[str]:
    if not markup or not markup.strip():
        return []
    try:
        doc = lxml_html.fromstring(markup)
    except (etree.ParserError, ValueError) as e:
        logger.debug("discovery.parse_failed error=%s", e)
        return []
    return [h.strip() for h in doc.xpath("//a/@href") if h and h.strip()]


def _collect_anchors(markup: str, root: str, segments: Sequence[str]) -> Set[str]:
    found: Set[str] = set()
    for href in extract_anchor_hrefs(markup):
        if href.lower().startswith(SKIP_SCHEMES):
            continue
        if not is_same_site(href, root):
            continue
        if not looks_promotional(href, segments):
            continue
        found.add(canonical_url(urljoin(root + "/", href)))
    return found


def _collect_raw_date_pages(markup: str, root: str) -> Set[str]:
    found: Set[str] = set()
    for m in RAW_DATE_PAGE_RE.finditer(markup or ""):
        href = m.group(1).replace("\\/", "/")
        if not href or not is_same_site(href, root):
            continue
        found.add(canonical_url(urljoin(root + "/", href)))
    return found


def discover_links(markup: str, root: str, listing_path: str = "") -> Set[str]:
    """
    Candidate promotion pages linked from ``markup``.

    Union of same-site anchors that look promotional and a raw scan for
    date-page URLs. All results are absolute, without query or fragment.
    """
    root = root.rstrip("/")
    segments = listing_segments(listing_path)
    anchors = _collect_anchors(markup, root, segments)
    raw = _collect_raw_date_pages(markup, root)
    logger.info("discovery.links root=%s anchors=%d date_pages_raw=%d", root, len(anchors), len(raw))
    return anchors | raw


def order_candidates(urls: Iterable[str], listing_url: str) -> List[str]:
    """Listing root first, then date pages, then other promotion links; URL order within groups."""
    listing = canonical_url(listing_url)
    rest = set(urls) - {listing}
    dated = sorted(u for u in rest if is_date_page(u))
    other = sorted(u for u in rest if not is_date_page(u))
    return [listing] + dated + other
