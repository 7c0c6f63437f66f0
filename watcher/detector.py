"""
watcher/detector.py — Decide whether the page changed since the last poll.

Three answers, nothing else:

  FirstRun  — there is no previous content (the process just started)
  NoChange  — previous == current, exact string equality
  Changed   — anything else; carries both strings for the summarizer

Equality is deliberately coarse. Any byte difference triggers a model call,
including whitespace the normalizer failed to collapse. Keeping false
positives rare is the normalizer's job, not the detector's.

USAGE:
  from watcher.detector import detect, Changed

  result = detect(slot.value, normalized)
  if isinstance(result, Changed):
      summarizer.summarize(result.previous, result.current)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FirstRun:
    current: str


@dataclass(frozen=True)
class NoChange:
    current: str


@dataclass(frozen=True)
class Changed:
    previous: str
    current: str


Detection = FirstRun | NoChange | Changed


def detect(previous: str | None, current: str) -> Detection:
    """Compare the previous normalized content with the current one."""
    if previous is None:
        return FirstRun(current=current)
    if previous == current:
        return NoChange(current=current)
    return Changed(previous=previous, current=current)
