# promo_crawler/config.py
from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urljoin

from . import logger
from .constants import (
    DEFAULT_FETCH_TIMEOUT_SEC,
    DEFAULT_KEYWORD_GAP,
    DEFAULT_PLAUSIBILITY_MAX,
    DEFAULT_SLICE_CHARS,
    KEYWORD_WAIT_MS,
)


class ConfigError(ValueError):
    """Raised when data/sites.json, or one of its entries, is malformed."""


@dataclass(frozen=True)
class SiteConfig:
    country: str
    root: str
    listing_path: str
    keywords: Tuple[str, ...]
    locale: str = "de-DE"
    accept_language: Optional[str] = None
    always_render: bool = False
    enabled: bool = True

    @property
    def listing_url(self) -> str:
        return urljoin(self.root.rstrip("/") + "/", self.listing_path.lstrip("/"))

    @property
    def language_header(self) -> str:
        if self.accept_language:
            return self.accept_language
        lang = self.locale.split("-")[0]
        return f"{self.locale},{lang};q=0.9"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_timeout_ms: int = 60000
    backoff_sec: float = 1.0

    def timeout_for(self, attempt: int) -> int:
        # 60s, 120s, 180s
        return self.base_timeout_ms * attempt

    def delay_for(self, attempt: int) -> float:
        return self.backoff_sec * attempt


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def rendering_available() -> bool:
    """True when ENABLE_RENDERING is on and a Chromium build is installed for Playwright."""
    if not _env_bool("ENABLE_RENDERING", True):
        logger.info("config: rendering disabled by ENABLE_RENDERING")
        return False
    from .playwright_helpers import probe_browser
    if not probe_browser():
        logger.warning("config: no usable browser, running in fetch-only mode")
        return False
    return True


@dataclass(frozen=True)
class Settings:
    secret: Optional[str] = None
    fetch_timeout_sec: float = DEFAULT_FETCH_TIMEOUT_SEC
    plausibility_max: int = DEFAULT_PLAUSIBILITY_MAX
    keyword_gap: int = DEFAULT_KEYWORD_GAP
    slice_chars: int = DEFAULT_SLICE_CHARS
    keyword_wait_ms: int = KEYWORD_WAIT_MS
    max_fallback: bool = True
    rendering: bool = True
    concurrency: int = 1
    discovery_retry: RetryPolicy = field(default_factory=RetryPolicy)
    page_retry: RetryPolicy = field(default_factory=lambda: RetryPolicy(max_attempts=2))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            secret=os.getenv("SCRAPER_SECRET") or None,
            fetch_timeout_sec=float(os.getenv("FETCH_TIMEOUT_SEC", DEFAULT_FETCH_TIMEOUT_SEC)),
            plausibility_max=int(os.getenv("PLAUSIBILITY_MAX", DEFAULT_PLAUSIBILITY_MAX)),
            keyword_gap=int(os.getenv("KEYWORD_GAP", DEFAULT_KEYWORD_GAP)),
            max_fallback=_env_bool("MAX_FALLBACK", True),
            rendering=rendering_available(),
            concurrency=max(1, int(os.getenv("CHECK_CONCURRENCY", "1"))),
        )


def _candidate_paths() -> List[str]:
    paths = []
    if os.getenv("SITES_CONFIG"):
        paths.append(os.getenv("SITES_CONFIG"))
    paths.extend([
        os.path.join(os.path.dirname(__file__), "..", "data", "sites.json"),
        "/app/data/sites.json",
        "data/sites.json",
    ])
    return paths


def load_sites_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the raw site list from data/sites.json (or an explicit path)."""
    possible_paths = [path] if path else _candidate_paths()

    for p in possible_paths:
        p = os.path.abspath(p)
        logger.info("config: trying config_path=%s", p)
        if os.path.exists(p):
            with open(p, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get("sites"), list):
                raise ConfigError(f"{p} must be an object with a 'sites' list")
            logger.info("config: loaded %s sites=%d", p, len(data["sites"]))
            return data

    logger.error("config: sites.json not found in any of the expected locations")
    raise FileNotFoundError("sites.json config file not found")


@dataclass(frozen=True)
class InvalidSite:
    """A site entry that failed validation. Reported as a country-level error."""
    country: str
    error: str
    enabled: bool = True


def _entry_label(raw: Any, index: int) -> str:
    if isinstance(raw, dict) and raw.get("country"):
        return str(raw["country"]).upper()
    return f"entry#{index}"


def parse_site(raw: Dict[str, Any]) -> SiteConfig:
    if not isinstance(raw, dict):
        raise ConfigError("site entry must be an object")
    missing = [k for k in ("country", "root", "listing_path", "keywords") if not raw.get(k)]
    if missing:
        raise ConfigError(f"site entry {raw.get('country', '?')} missing {', '.join(missing)}")
    if not isinstance(raw["root"], str) or not isinstance(raw["listing_path"], str):
        raise ConfigError(f"site {raw['country']}: root and listing_path must be strings")
    keywords = raw["keywords"]
    if isinstance(keywords, str) or not isinstance(keywords, list) or not all(isinstance(k, str) and k for k in keywords):
        raise ConfigError(f"site {raw['country']}: keywords must be a list of non-empty strings")
    return SiteConfig(
        country=str(raw["country"]).upper(),
        root=raw["root"].rstrip("/"),
        listing_path=raw["listing_path"],
        keywords=tuple(keywords),
        locale=raw.get("locale", "de-DE"),
        accept_language=raw.get("accept_language"),
        always_render=bool(raw.get("always_render", False)),
        enabled=bool(raw.get("enabled", True)),
    )


def parse_sites(entries: Iterable[Any]) -> Tuple[Union[SiteConfig, InvalidSite], ...]:
    """
    Parse every entry on its own, in config order.

    A bad entry (missing fields, wrong types, repeated country code) becomes an
    ``InvalidSite`` so the remaining countries still run.
    """
    sites: List[Union[SiteConfig, InvalidSite]] = []
    seen = set()
    for index, raw in enumerate(entries):
        label = _entry_label(raw, index)
        enabled = not (isinstance(raw, dict) and raw.get("enabled") is False)
        try:
            site = parse_site(raw)
        except ConfigError as e:
            logger.error("config: invalid site entry=%s error=%s", label, e)
            sites.append(InvalidSite(country=label, error=str(e), enabled=enabled))
            continue
        if site.country in seen:
            logger.error("config: duplicate country code=%s entry=%d", site.country, index)
            sites.append(InvalidSite(
                country=f"{site.country}#{index}",
                error=f"duplicate country code {site.country}",
                enabled=enabled,
            ))
            continue
        seen.add(site.country)
        sites.append(site)
    return tuple(sites)


def get_sites(
    countries: Optional[Iterable[str]] = None,
    path: Optional[str] = None,
    include_invalid: bool = False,
) -> Tuple[Union[SiteConfig, InvalidSite], ...]:
    """
    Return enabled sites, optionally restricted to the given country codes.

    Invalid entries are dropped unless ``include_invalid`` is set, in which case
    they stay in config order for the batch to report. Unknown codes in
    ``countries`` are ignored here; callers decide whether an empty result is
    an error.
    """
    sites = parse_sites(load_sites_config(path)["sites"])
    selected = []
    for s in sites:
        if not s.enabled:
            logger.info("config: site disabled country=%s", s.country)
            continue
        if isinstance(s, InvalidSite) and not include_invalid:
            continue
        selected.append(s)
    if countries:
        wanted = {c.strip().upper() for c in countries if c and c.strip()}
        selected = [s for s in selected if s.country in wanted]
    return tuple(selected)
