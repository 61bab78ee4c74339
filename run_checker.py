#!/usr/bin/env python3
"""
Standalone script to run one promotion check and print the report.
Used for scheduled runs outside the web service.

Usage:
    python run_checker.py                  # All configured countries, JSON report
    python run_checker.py --country=AT     # Single country
    python run_checker.py --text           # Flattened text report
"""
from __future__ import annotations
import argparse
import asyncio
import sys

from promo_crawler import logger
from promo_crawler.config import Settings, get_sites
from promo_crawler.core import run_all
from promo_crawler.report import to_json, to_text


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Check promotion pages and print item counts")
    parser.add_argument("--country", action="append", default=[], help="Country code (repeatable)")
    parser.add_argument("--text", action="store_true", help="Print the text report instead of JSON")
    parser.add_argument("--config", default=None, help="Path to sites.json")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        sites = get_sites(countries=args.country or None, path=args.config, include_invalid=True)
        if not sites:
            logger.warning("No enabled sites found")
            return 0

        # probe the browser before entering the event loop
        settings = Settings.from_env()
        logger.info("checker.start countries=%d", len(sites))
        report = asyncio.run(run_all(sites, settings))

        print(to_text(report) if args.text else to_json(report))

        errors = sum(1 for s in report.countries.values() if s.error)
        logger.info("checker.complete countries=%d errors=%d", len(sites), errors)
        return 1 if errors else 0

    except Exception as e:
        logger.exception("checker.failed error=%s", str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
