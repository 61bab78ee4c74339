# promo_crawler/constants.py
import os

USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36",
)
VIEWPORT = {"width": 1280, "height": 900}
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

SECRET_HEADER = "x-scraper-secret"

DEFAULT_FETCH_TIMEOUT_SEC = 20.0
DEFAULT_PLAUSIBILITY_MAX = 5000
DEFAULT_KEYWORD_GAP = 40
DEFAULT_SLICE_CHARS = 2000
KEYWORD_WAIT_MS = 8000
SETTLE_WAIT_MS = 700
SNIPPET_RADIUS = 120

# /d.08-12-2025.html
DATE_PAGE_PATTERN = r"/d\.\d{2}-\d{2}-\d{4}\.html"
