# promo_crawler/report.py
from __future__ import annotations
import json
from typing import List

from .models import UNKNOWN, BatchReport, CountrySummary


def country_lines(summary: CountrySummary) -> List[str]:
    lines = [summary.country, f"datePlpsFound: {summary.date_pages_found}"]
    if summary.error:
        lines.append(f"error: {summary.error}")
    for page in summary.pages:
        count = page.count if page.count is not None else UNKNOWN
        lines.append(f"{page.url} - Product found {count}")
    return lines


def to_text(report: BatchReport) -> str:
    """One block per country separated by a blank line."""
    blocks = ["\n".join(country_lines(s)) for s in report.countries.values()]
    return "\n\n".join(blocks) + "\n"


def to_json(report: BatchReport, indent: int = 2) -> str:
    return json.dumps(report.as_dict(), ensure_ascii=False, indent=indent)
