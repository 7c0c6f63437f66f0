"""
tools/fetch.py — Fetch the watched page and return clean text content.

THE CORE CONCEPT: One page, fetched every few seconds
  The poll loop calls fetch_page() on every tick. It has to be boring:
  bounded in time, never raising, and returning the same text for the
  same page. Anything odd (timeout, 5xx, empty body) becomes
  FetchResult(success=False) and the cycle is simply skipped.

TWO-TIER FETCHING STRATEGY:

  Tier 1 — Managed reader (r.jina.ai/{url})
    The reader renders the page in a headless browser and returns text.
    We pass our junk selectors as X-Remove-Selector so navigation, sidebars
    and footers never reach us. One HTTP GET:
      GET https://r.jina.ai/https://sd41blogs.ca/...
    A reader API key is optional; without it the free tier is rate-limited.
    Disabled with use_reader=False.

  Tier 2 — Direct fetch + local extraction
    If the reader fails (429, timeout, empty body) we fetch the HTML
    ourselves with httpx and run tools/extract.py over it: junk selectors
    removed, first main-content container kept.

  Both tiers turn CRLF and lone CR into LF, then pass their text through
  normalize(), so either tier produces the canonical form the change
  detector compares.

FAILURE CONTRACT:
  fetch_page()      — never raises; success=False + error on every failure
  fetch_or_raise()  — raises FetchError; used by the HTTP endpoint, which
                      maps it to a structured error response

USAGE:
  from tools.fetch import fetch_page

  result = fetch_page()               # settings.target_url
  if result.success:
      print(result.content[:500])
      print(f"Source: {result.source}")   # "reader" or "direct"
  else:
      print(f"Failed: {result.error}")
"""

import httpx
from dataclasses import dataclass, field
from datetime import datetime, timezone

from config import settings
from tools.extract import JUNK_SELECTORS, extract_main_content
from tools.normalize import normalize


READER_PREFIX = "https://r.jina.ai/"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "Chrome/120.0.0.0 Safari/537.36"
)


class FetchError(Exception):
    """The watched page could not be fetched (network, non-2xx, timeout, empty)."""


# ── Result type ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FetchResult:
    """
    The outcome of fetching the watched page once.

    success=False means every enabled tier failed.
    In that case, content is empty and error explains why.

    source tells you which tier succeeded:
      "reader" — managed reader handled it
      "direct" — httpx + local extraction handled it
      "failed" — nothing worked
    """
    url: str
    content: str           # normalized text — empty if failed
    success: bool
    source: str            # "reader", "direct", or "failed"
    error: str | None
    fetched_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        """The /api/assignments response body."""
        if self.success:
            return {"success": True, "content": self.content, "fetchedAt": self.fetched_at}
        return {"success": False, "error": self.error or "Failed to fetch page"}


# ── Main functions ─────────────────────────────────────────────────────────────

def fetch_page(url: str | None = None) -> FetchResult:
    """
    Fetch the watched page and return normalized text content.

    Tries the managed reader first (when enabled), falls back to a direct
    fetch. Never raises — returns FetchResult(success=False) on all failures.
    """
    url = url or settings.target_url

    if settings.use_reader:
        result = _fetch_via_reader(url)
        if result.success:
            return result

    return _fetch_direct(url)


def fetch_or_raise(url: str | None = None) -> FetchResult:
    """Like fetch_page(), but raises FetchError instead of returning a failure."""
    result = fetch_page(url)
    if not result.success:
        raise FetchError(result.error or "Failed to fetch page")
    return result


# ── Tier 1: managed reader ─────────────────────────────────────────────────────

def _fetch_via_reader(url: str) -> FetchResult:
    """
    Fetch via the managed reader (r.jina.ai/{url}).

    Rate limit on the free tier is low; a 429 falls through to the direct tier.
    """
    headers = {
        "Accept": "text/plain",
        "X-Return-Format": "text",
        "X-Remove-Selector": JUNK_SELECTORS,
    }
    if settings.reader_api_key:
        headers["Authorization"] = f"Bearer {settings.reader_api_key}"

    try:
        response = httpx.get(
            f"{READER_PREFIX}{url}",
            timeout=settings.fetch_timeout_seconds,
            headers=headers,
            follow_redirects=True,
        )

        if response.status_code == 429:
            return _failed(url, "Reader rate limit (429) — falling back to direct fetch")

        if response.status_code != 200:
            return _failed(url, f"Reader returned HTTP {response.status_code}")

        content = normalize(_unify_newlines(response.text))
        if not content:
            return _failed(url, "Reader returned no content")

        return FetchResult(url=url, content=content, success=True, source="reader", error=None)

    except httpx.TimeoutException:
        return _failed(url, f"Reader timeout after {settings.fetch_timeout_seconds}s")
    except Exception as e:
        return _failed(url, f"Reader error: {type(e).__name__}: {e}")


# ── Tier 2: direct fetch ───────────────────────────────────────────────────────

def _fetch_direct(url: str) -> FetchResult:
    """
    Fetch the raw HTML with httpx and extract the main content locally.

    Does NOT handle JavaScript-rendered content; the watched page is a
    server-rendered WordPress post, so that has not been needed.
    """
    try:
        response = httpx.get(
            url,
            timeout=settings.fetch_timeout_seconds,
            headers={"User-Agent": BROWSER_USER_AGENT},
            follow_redirects=True,
        )

        if response.status_code != 200:
            reason = getattr(response, "reason_phrase", "") or ""
            return _failed(url, f"HTTP {response.status_code}: {reason}".rstrip(": "))

        html = _unify_newlines(response.text)

    except httpx.TimeoutException:
        return _failed(url, f"Fetch timeout after {settings.fetch_timeout_seconds}s")
    except Exception as e:
        return _failed(url, f"Fetch error: {type(e).__name__}: {e}")

    content = extract_main_content(html, url)
    if not content:
        return _failed(url, "No content could be extracted from the page")

    return FetchResult(url=url, content=content, success=True, source="direct", error=None)


# ── Private helpers ────────────────────────────────────────────────────────────

def _failed(url: str, error: str) -> FetchResult:
    """Return a failed FetchResult. Never raises."""
    return FetchResult(url=url, content="", success=False, source="failed", error=error)


def _unify_newlines(text: str) -> str:
    """CRLF and lone CR become LF, so the blank-line rule in normalize() sees them."""
    return text.replace("\r\n", "\n").replace("\r", "\n")
