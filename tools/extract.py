"""
tools/extract.py — Extract the assignments text from raw HTML.

THE CORE CONCEPT: From a blog page to comparable text
  The watched page is a WordPress post. Around the actual assignment list
  sit the site navigation, a header, a footer, sidebar widgets, scripts and
  styles. Any of those can change (a new "recent posts" widget entry, a
  rotated banner) without the assignments changing. Feeding them into the
  change detector would fire a model call for nothing.

  So extraction is two steps:
    1. Remove junk elements by selector.
    2. Take the text of the first main-content container that exists.

THE SELECTORS:
  Junk:    nav, footer, header, script, style, .sidebar, #sidebar,
           .widget, .wp-block-navigation
  Content: .entry-content → .post-content → article → main
           WordPress themes put the post body in .entry-content; the rest
           are progressively more generic fallbacks.

  If no content container matches, trafilatura gets a turn at the original
  HTML (it strips boilerplate without knowing the theme), and only then do
  we fall back to the whole <body> text.

POST-EXTRACTION:
  The result always passes through normalize() so that the caller never
  sees theme indentation or runs of blank lines.

USAGE:
  from tools.extract import extract_main_content
  text = extract_main_content(html_string)
"""

import trafilatura
from bs4 import BeautifulSoup

from tools.normalize import normalize


JUNK_SELECTORS = (
    "nav, footer, header, script, style, "
    ".sidebar, #sidebar, .widget, .wp-block-navigation"
)

CONTENT_SELECTORS = (".entry-content", ".post-content", "article", "main")


# ── Main extraction function ───────────────────────────────────────────────────

def extract_main_content(html: str, url: str = "") -> str:
    """
    Extract the main content text from raw HTML.

    Returns normalized text, or "" if nothing could be extracted.
    Never raises.
    """
    if not html or not html.strip():
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(JUNK_SELECTORS):
        element.decompose()

    content = _first_matching_text(soup)
    if content:
        return normalize(content)

    content = _extract_with_trafilatura(html, url)
    if content:
        return normalize(content)

    body = soup.body or soup
    return normalize(body.get_text())


# ── Extraction implementations ─────────────────────────────────────────────────

def _first_matching_text(soup: BeautifulSoup) -> str:
    """Text of the first content container whose text is non-blank."""
    for selector in CONTENT_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = node.get_text()
        if text.strip():
            return text
    return ""


def _extract_with_trafilatura(html: str, url: str = "") -> str:
    """
    Theme-agnostic boilerplate removal.

    include_tables=True — assignment lists are often laid out as tables
    include_links=False — link targets add noise, link text is kept
    favor_recall=True   — a short post must not be dropped as "too little content"
    """
    try:
        result = trafilatura.extract(
            html,
            url=url or None,
            include_tables=True,
            include_links=False,
            include_images=False,
            output_format="txt",
            favor_recall=True,
        )
        return result or ""
    except Exception:
        return ""
