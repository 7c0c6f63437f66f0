"""
tools/normalize.py — Canonical whitespace form for extracted page text.

THE CORE CONCEPT:
  Change detection is plain string equality. Two fetches of an unchanged
  page must therefore produce byte-identical strings, even when the HTML
  around the text shifts its indentation, tabs or blank lines.

  normalize() is the canonical form. It is:
    - pure: same input, same output, no side effects
    - idempotent: normalize(normalize(x)) == normalize(x)
    - total: never raises, always returns a string (possibly empty)

ORDER MATTERS:
  1. tabs → one space
  2. runs of 2+ spaces → one space
  3. runs of 3+ newlines → exactly two newlines
  4. trim leading/trailing whitespace

  Tabs become spaces first so that "\\t  \\t" collapses in step 2.
  Trimming comes last so that no collapse can re-expose edge whitespace.

USAGE:
  from tools.normalize import normalize
  normalize("Math\\t\\tWorksheet   due\\n\\n\\n\\nFriday  ")
  # "Math Worksheet due\\n\\nFriday"
"""

import re

_MULTI_SPACE = re.compile(r" {2,}")
_MULTI_NEWLINE = re.compile(r"\n{3,}")


def normalize(raw_text: str | None) -> str:
    """Return the canonical whitespace form of raw_text."""
    if not raw_text:
        return ""

    text = raw_text.replace("\t", " ")
    text = _MULTI_SPACE.sub(" ", text)
    text = _MULTI_NEWLINE.sub("\n\n", text)
    return text.strip()
