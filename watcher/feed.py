"""
watcher/feed.py — Presentation helpers over the summary feed.

The dashboard shows history as a list of update cards with a row of
subject tabs above it. These helpers are plain functions so they can be
tested without Streamlit:

  SUBJECT_FILTERS        → the tab row: (id, label)
  subject_slug(name)     → "Art/ADST" → "art-adst"
  filter_records(...)    → records mentioning the selected subject
  format_relative_time() → "just now", "4m ago", "2h ago", "3d ago"

Subject matching is by slug containment: a record matches the "math" tab
when any of its subjects slugifies to something containing "math"
("Math", "Math 8", "Applied Math"). The model names subjects freely, so
an exact match would miss most of them.

USAGE:
  from watcher.feed import filter_records, format_relative_time

  for record in filter_records(history.snapshot(), "science"):
      print(format_relative_time(record.timestamp), record.summary)
"""

import re
from datetime import datetime, timezone

from watcher.state import SummaryRecord


ALL = "all"

SUBJECT_FILTERS: list[tuple[str, str]] = [
    (ALL, "All"),
    ("language-arts", "Language Arts"),
    ("math", "Math"),
    ("science", "Science"),
    ("social-studies", "Social Studies"),
    ("art-adst", "Art/ADST"),
    ("phe", "Physical and Health Education"),
    ("career", "Career"),
    ("music", "Music"),
    ("other", "Other"),
]

_SLUG_SEPARATORS = re.compile(r"[\s/]")


def subject_slug(name: str) -> str:
    """Lower-case, with every whitespace character and "/" turned into "-"."""
    return _SLUG_SEPARATORS.sub("-", (name or "").lower())


def filter_records(records: list[SummaryRecord], filter_id: str) -> list[SummaryRecord]:
    """Records with at least one subject matching filter_id. "all" keeps everything."""
    if not filter_id or filter_id == ALL:
        return list(records)
    return [
        r for r in records
        if any(filter_id in subject_slug(s.name) for s in r.subjects)
    ]


def format_relative_time(moment: datetime, now: datetime | None = None) -> str:
    """Coarse "time ago" label for stat cards and update cards."""
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = (now - moment).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{int(seconds // 60)}m ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)}h ago"
    return f"{int(seconds // 86400)}d ago"
