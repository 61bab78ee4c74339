# app.py
from __future__ import annotations
import asyncio
import hmac
from functools import lru_cache
from time import perf_counter
from typing import List

from flask import Flask, Response, jsonify, request

from promo_crawler import logger
from promo_crawler.config import InvalidSite, Settings, SiteConfig, get_sites
from promo_crawler.constants import SECRET_HEADER
from promo_crawler.core import run_all
from promo_crawler.report import to_text
from version import VERSION

app = Flask(__name__)

logger.info("startup version=%s", VERSION)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Resolved once per process; the rendering probe runs here."""
    settings = Settings.from_env()
    logger.info(
        "settings.resolved rendering=%s gated=%s concurrency=%d",
        settings.rendering,
        bool(settings.secret),
        settings.concurrency,
    )
    return settings


def _authorized(secret: str | None) -> bool:
    if not secret:
        return True
    header = request.headers.get(SECRET_HEADER)
    if not header:
        return False
    return hmac.compare_digest(header.encode("utf-8"), secret.encode("utf-8"))


def _wants_text() -> bool:
    if (request.args.get("format") or "").lower() in ("text", "txt"):
        return True
    return request.accept_mimetypes.best == "text/plain"


def _requested_countries() -> List[str]:
    out: List[str] = []
    for raw in request.args.getlist("country"):
        out.extend(c for c in raw.split(",") if c.strip())
    return out


@app.get("/")
def index():
    return Response("Promo checker alive", mimetype="text/plain")


@app.get("/health")
def health():
    return jsonify({"ok": True}), 200


@app.get("/version")
def version():
    return jsonify({"version": VERSION}), 200


@app.get("/countries")
def countries_debug():
    entries = get_sites(include_invalid=True)
    sites = [s for s in entries if isinstance(s, SiteConfig)]
    return jsonify({
        "total_sites": len(sites),
        "sites": [
            {
                "country": s.country,
                "listing_url": s.listing_url,
                "keywords": list(s.keywords),
                "always_render": s.always_render,
            } for s in sites
        ],
        "invalid": [
            {"country": s.country, "error": s.error}
            for s in entries if isinstance(s, InvalidSite)
        ],
    }), 200


@app.route("/check", methods=["GET", "POST"])
@app.route("/check-hofer", methods=["GET", "POST"])
def check():
    """
    Run one full check synchronously and return the report.

    - Rejected with 401 before any network activity when SCRAPER_SECRET is set
      and the x-scraper-secret header does not match.
    - ?country=AT (repeatable or comma separated) restricts the run.
    - ?format=text or Accept: text/plain returns the flattened text report.
    """
    settings = get_settings()
    if not _authorized(settings.secret):
        logger.warning("check.unauthorized remote=%s", request.remote_addr)
        return jsonify({"error": "unauthorized"}), 401

    wanted = _requested_countries()
    try:
        sites = get_sites(countries=wanted or None, include_invalid=True)
        if wanted and not sites:
            logger.error("check.error countries=%s error=not_found", ",".join(wanted))
            return jsonify({"status": "error", "error": f"No configured site for {','.join(wanted)}"}), 404

        start = perf_counter()
        logger.info("check.enter countries=%d", len(sites))
        report = asyncio.run(run_all(sites, settings))
        logger.info("check.completed countries=%d duration_sec=%.2f", len(sites), perf_counter() - start)

        if _wants_text():
            return Response(to_text(report), mimetype="text/plain")
        return jsonify(report.as_dict()), 200

    except Exception as e:
        logger.exception("check.failed error=%s", str(e))
        return jsonify({"status": "error", "error": str(e)}), 500


# ---- Diagnostics Endpoints ----

@app.route("/__version", methods=["GET"])
def __version():
    return jsonify({"version": VERSION})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8080)
