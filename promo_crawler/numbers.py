# promo_crawler/numbers.py
from __future__ import annotations
import re
from typing import Optional

# NBSP, narrow NBSP, thin space, figure space
_SPACE_CHARS = re.compile("[\u00a0\u202f\u2009\u2007]")
# separator between digits followed by exactly three digits -> thousands separator
_THOUSANDS_SEP = re.compile(r"(?<=\d)[., ](?=\d{3}(?!\d))")
_NON_NUMERIC = re.compile(r"[^\d-]")


def normalize_number(token: str) -> Optional[int]:
    """
    Turn a localized numeric token into an int.

    "1.234", "1,234", "1 234" and "1 234" all give 1234. Returns None when
    nothing digit-like is left. Negative values are returned as-is; callers
    reject them.
    """
    if not token:
        return None
    s = _SPACE_CHARS.sub(" ", token)
    s = _THOUSANDS_SEP.sub("", s)
    s = _NON_NUMERIC.sub("", s)
    if not any(ch.isdigit() for ch in s):
        return None
    try:
        return int(s)
    except ValueError:
        # e.g. "12-3" after stripping
        return None
