"""
watcher/state.py — Data types shared by the poll loop and its readers.

Design principles:
  - Dataclasses, not dicts — typos become AttributeError, not silent new keys
  - Summary records are frozen: once a summary is in history nobody edits it
  - The "previous content" slot is an explicit object with one owner (the
    poll loop), not a module-level variable

Key types:

  SubjectChange / SummaryRecord:
    What the model reported for one detected change. SummaryRecord is also
    used for the synthetic "monitoring started" entry written on the first
    successful fetch. to_dict() produces the camelCase shape the dashboard
    and the HTTP API speak.

  ContentSlot:
    The last normalized page content seen. None until the first successful
    fetch. Overwritten at the end of every successful cycle, whether or not
    the page changed.

  CycleOutcome / CycleResult:
    What one poll cycle did. FAILED means the fetch failed and nothing else
    ran. skipped=True means the tick arrived while another cycle was still
    running and did no work at all.

  PollerStatus:
    A read-only snapshot for the dashboard: when we last checked, when the
    page last produced a visible update, whether a model call is in flight.

USAGE:
  from watcher.state import SummaryRecord, SubjectChange, ContentSlot

  record = SummaryRecord(
      has_changes=True,
      summary="Math homework added",
      subjects=[SubjectChange(name="Math", changes=["New worksheet due Friday"])],
  )
  record.to_dict()["hasChanges"]   # True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


MONITORING_STARTED = "Monitoring started. You'll see updates here when the page changes."
UNPARSEABLE_SUMMARY = "Unable to parse changes"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Summary records ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SubjectChange:
    """One subject and the changes the model listed for it, in order."""
    name: str
    changes: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "changes", tuple(self.changes))

    def to_dict(self) -> dict:
        return {"name": self.name, "changes": list(self.changes)}


@dataclass(frozen=True)
class SummaryRecord:
    """
    One entry in the update history.

    has_changes=False records are either the monitoring-started entry or a
    degraded result (model output could not be parsed). Only has_changes=True
    records from the summarizer reach history during normal polling.
    """
    has_changes: bool
    summary: str
    subjects: tuple[SubjectChange, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # Accept lists from callers; store tuples so the record stays immutable.
        object.__setattr__(self, "subjects", tuple(self.subjects))

    @classmethod
    def monitoring_started(cls) -> SummaryRecord:
        """The synthetic record written on the first successful fetch."""
        return cls(has_changes=False, summary=MONITORING_STARTED, subjects=())

    @classmethod
    def unparseable(cls) -> SummaryRecord:
        """The degraded record used when model output has no usable JSON."""
        return cls(has_changes=False, summary=UNPARSEABLE_SUMMARY, subjects=())

    @property
    def subject_names(self) -> list[str]:
        return [s.name for s in self.subjects]

    def to_dict(self) -> dict:
        return {
            "hasChanges": self.has_changes,
            "summary": self.summary,
            "subjects": [s.to_dict() for s in self.subjects],
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SummaryRecord:
        """Rebuild a record from to_dict() output (used by the dashboard)."""
        raw_ts = data.get("timestamp")
        timestamp = datetime.fromisoformat(raw_ts) if raw_ts else _utcnow()
        subjects = tuple(
            SubjectChange(name=s.get("name", ""), changes=tuple(s.get("changes", [])))
            for s in data.get("subjects", [])
        )
        return cls(
            has_changes=bool(data.get("hasChanges", False)),
            summary=data.get("summary", ""),
            subjects=subjects,
            timestamp=timestamp,
        )


# ── Previous-content slot ──────────────────────────────────────────────────────

@dataclass
class ContentSlot:
    """
    The last normalized content seen by the poll loop.

    Owned by exactly one poller. Only run_cycle() writes to it, and only
    after a successful fetch.
    """
    value: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.value is None

    def replace(self, content: str) -> None:
        self.value = content


# ── Cycle outcomes ─────────────────────────────────────────────────────────────

class CycleOutcome(str, Enum):
    """
    What one poll cycle observed.

    FIRST_RUN → first successful fetch; monitoring-started record written
    NO_CHANGE → content identical to the previous fetch
    CHANGED   → content differed; the summarizer was asked
    FAILED    → the fetch failed; slot and history untouched
    """
    FIRST_RUN = "first_run"
    NO_CHANGE = "no_change"
    CHANGED   = "changed"
    FAILED    = "failed"


@dataclass
class CycleResult:
    """
    The outcome of one poll cycle.

    recorded is the SummaryRecord added to history this cycle, if any.
    error is set for a failed fetch or a failed summarizer call.
    """
    outcome: CycleOutcome | None
    recorded: SummaryRecord | None = None
    error: str | None = None
    skipped: bool = False
    content_chars: int = 0
    started_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def skipped_tick(cls) -> CycleResult:
        return cls(outcome=None, skipped=True)

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value if self.outcome else None,
            "skipped": self.skipped,
            "recorded": self.recorded.to_dict() if self.recorded else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class PollerStatus:
    """Snapshot of the poll loop for the presentation layer."""
    running: bool
    analyzing: bool
    cycles: int
    failures: int
    last_checked: datetime | None
    last_updated: datetime | None

    def to_dict(self) -> dict:
        return {
            "running": self.running,
            "analyzing": self.analyzing,
            "cycles": self.cycles,
            "failures": self.failures,
            "lastChecked": self.last_checked.isoformat() if self.last_checked else None,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }
