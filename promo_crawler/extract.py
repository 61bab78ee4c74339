# promo_crawler/extract.py
"""
Count extraction from page text.

Sites phrase the result line differently per locale ("37 Aktionsartikel
gefunden", "Aktionsartikel: 37", a number in a badge on the line above the
label, ...), so extraction walks a ladder of progressively looser rules and
returns the first plausible value:

1. number followed by a keyword (or keyword followed by a number) within a
   short gap on the same line, keywords tried in priority order;
2. line scan: the first number on a keyword line, else the previous line,
   else the next line;
3. optionally the largest number in the block, when the block mentions a
   keyword at all.

Every candidate goes through ``normalize_number`` and the plausibility bound.
"""
from __future__ import annotations
import re
from typing import Iterable, List, Optional, Sequence

from lxml import etree
from lxml import html as lxml_html

from .constants import DEFAULT_KEYWORD_GAP, DEFAULT_PLAUSIBILITY_MAX, SNIPPET_RADIUS
from .numbers import normalize_number

NUMBER = r"(\d{1,3}(?:[.,\u00a0\u202f ]\d{3})+|\d+)"
NUMBER_RE = re.compile(r"(?<!\d)" + NUMBER + r"(?!\d)")

BLOCK_TAGS = {
    "p", "div", "li", "ul", "ol", "br", "tr", "td", "th", "table", "section",
    "article", "header", "footer", "main", "nav", "aside",
    "h1", "h2", "h3", "h4", "h5", "h6",
}
DROP_XPATH = "//script|//style|//noscript|//template|//svg"
FOCUS_XPATH = (
    "//h1|//h2|//*[contains(@class, 'headline')]"
    "|//*[contains(@class, 'result-count')]|//*[contains(@class, 'results')]"
)
META_XPATH = (
    "//meta[contains(@name, 'description') or contains(@property, 'description')"
    " or contains(@name, 'title') or contains(@property, 'title')]/@content"
)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"[ \t\u00a0\u202f]+")


def is_plausible(value: Optional[int], max_value: int = DEFAULT_PLAUSIBILITY_MAX) -> bool:
    return value is not None and 0 <= value <= max_value


def _tidy(text: str) -> str:
    lines = (_WS_RE.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def _parse(markup: str):
    if not markup or not markup.strip():
        return None
    try:
        doc = lxml_html.fromstring(markup)
    except (etree.ParserError, ValueError):
        return None
    for el in doc.xpath(DROP_XPATH):
        el.drop_tree()
    return doc


def _element_text(el) -> str:
    for sub in el.iter():
        if isinstance(sub.tag, str) and sub.tag.lower() in BLOCK_TAGS:
            sub.tail = "\n" + (sub.tail or "")
    return el.text_content()


def html_to_text(markup: str) -> str:
    """Visible text of an HTML document, one block element per line."""
    doc = _parse(markup)
    if doc is None:
        return _tidy(_TAG_RE.sub(" ", markup or ""))
    return _tidy(_element_text(doc))


def focus_text(markup: str) -> str:
    """Text of heading-like elements plus their immediate next sibling."""
    doc = _parse(markup)
    if doc is None:
        return ""
    parts: List[str] = []
    for el in doc.xpath(FOCUS_XPATH):
        parts.append(_element_text(el))
        nxt = el.getnext()
        if nxt is not None:
            parts.append(_element_text(nxt))
    return _tidy("\n".join(parts))


def slice_text(markup: str) -> str:
    """
    Readable text of a markup fragment: visible text plus title/description
    meta values. Other attribute values (asset URLs, version strings) are left out.
    """
    doc = _parse(markup)
    if doc is None:
        return html_to_text(markup)
    metas = [c for c in doc.xpath(META_XPATH) if c and c.strip()]
    return _tidy("\n".join([_element_text(doc)] + metas))


def _keyword_re(keyword: str) -> str:
    return re.escape(keyword.strip())


def mentions_keyword(text: str, keywords: Iterable[str]) -> bool:
    if not text:
        return False
    return any(re.search(_keyword_re(k), text, re.IGNORECASE) for k in keywords if k)


def find_snippet(text: str, keywords: Iterable[str], radius: int = SNIPPET_RADIUS) -> Optional[str]:
    if not text:
        return None
    for kw in keywords:
        m = re.search(r".{0,%d}%s.{0,%d}" % (radius, _keyword_re(kw), radius), text, re.IGNORECASE)
        if m:
            return m.group(0).strip()
    return None


def _first_plausible(line: str, max_value: int) -> Optional[int]:
    for m in NUMBER_RE.finditer(line):
        value = normalize_number(m.group(1))
        if is_plausible(value, max_value):
            return value
    return None


def _match_pairs(text: str, keyword: str, gap: int, max_value: int) -> Optional[int]:
    kw = _keyword_re(keyword)
    patterns = (
        re.compile(r"(?<!\d)" + NUMBER + r"[^\d\r\n]{0,%d}?%s" % (gap, kw), re.IGNORECASE),
        re.compile(r"%s[^\d\r\n]{0,%d}?" % (kw, gap) + NUMBER + r"(?!\d)", re.IGNORECASE),
    )
    for rx in patterns:
        for m in rx.finditer(text):
            value = normalize_number(m.group(1))
            if is_plausible(value, max_value):
                return value
    return None


def _scan_lines(text: str, keywords: Sequence[str], max_value: int) -> Optional[int]:
    lines = [l.strip() for l in re.split(r"\r?\n", text) if l.strip()]
    for kw in keywords:
        kw_rx = re.compile(_keyword_re(kw), re.IGNORECASE)
        for i, line in enumerate(lines):
            if not kw_rx.search(line):
                continue
            for j in (i, i - 1, i + 1):
                if 0 <= j < len(lines):
                    value = _first_plausible(lines[j], max_value)
                    if value is not None:
                        return value
    return None


def _largest_number(text: str, max_value: int) -> Optional[int]:
    values = [normalize_number(m.group(1)) for m in NUMBER_RE.finditer(text)]
    values = [v for v in values if v is not None and v > 1 and is_plausible(v, max_value)]
    return max(values) if values else None


def extract_count(
    text: str,
    keywords: Sequence[str],
    *,
    max_value: int = DEFAULT_PLAUSIBILITY_MAX,
    gap: int = DEFAULT_KEYWORD_GAP,
    max_fallback: bool = False,
) -> Optional[int]:
    """Return the item count for the first matching keyword, or None."""
    if not text or not keywords:
        return None

    for kw in keywords:
        if not kw:
            continue
        value = _match_pairs(text, kw, gap, max_value)
        if value is not None:
            return value

    value = _scan_lines(text, [k for k in keywords if k], max_value)
    if value is not None:
        return value

    if max_fallback and mentions_keyword(text, keywords):
        return _largest_number(text, max_value)
    return None
