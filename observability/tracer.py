"""
observability/tracer.py — Span-based tracing for one poll cycle.

THE CORE CONCEPT:
  Every meaningful step of a cycle is a Span: a named unit of work with a
  start time, end time, status, and metadata dict.

  A Trace collects all spans for one cycle and saves them to disk as JSON.
  This gives you a permanent record of what the watcher actually did:
    - How long the page fetch took and which tier served it
    - What the detector decided
    - What the model said, and how long it took to say it
    - Whether anything reached history

WHAT GETS TRACED:
  - fetch      → source tier, content chars, error
  - detect     → first_run / no_change / changed
  - summarize  → has_changes, n_subjects (only when the page changed)
  - record     → history length after the write
  - cycle      → overall: outcome, recorded?, duration

WHICH CYCLES ARE SAVED:
  At a 5s cadence almost every cycle is "no change". Saving those would fill
  the disk with identical files, so they are only saved when
  trace_noop_cycles is on. First runs and changes always are. A failure is
  saved when it follows a non-failed cycle, so a long outage leaves one file.
  The directory is capped at max_trace_files; the oldest files go first.

USAGE:
  tracer = Tracer(target_url="https://...")

  with tracer.span("fetch") as span:
      result = fetch_page()
      span.metadata["source"] = result.source

  tracer.finish(cycle_result)
  path = tracer.save()
"""

import json
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path

from config import settings


# ── Span ──────────────────────────────────────────────────────────────────────

@dataclass
class Span:
    """
    One named step in the cycle.

    status is "success" or "error".
    metadata holds step-specific data (source, outcome, has_changes, etc.).
    """
    name: str
    step: int
    started_at: float       # time.monotonic() — for duration math
    ended_at: float = 0.0
    duration_ms: float = 0.0
    status: str = "success"
    metadata: dict = field(default_factory=dict)
    error: str = ""

    def finish(self, status: str = "success", error: str = "") -> None:
        self.ended_at = time.monotonic()
        self.duration_ms = round((self.ended_at - self.started_at) * 1000, 2)
        self.status = status
        self.error = error


# ── Trace ─────────────────────────────────────────────────────────────────────

@dataclass
class Trace:
    """
    Complete record of one poll cycle: all spans + summary fields.

    Saved to logs/traces/{run_id}.json after the cycle completes.
    """
    run_id: str
    target_url: str
    started_at: str         # ISO timestamp
    completed_at: str = ""
    spans: list[Span] = field(default_factory=list)

    # Summary fields (filled by finish())
    outcome: str = "running"
    recorded: bool = False
    has_changes: bool = False
    n_subjects: int = 0
    content_chars: int = 0
    error: str = ""
    total_duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


# ── Tracer ────────────────────────────────────────────────────────────────────

class Tracer:
    """
    Collects spans for one cycle and saves the trace to disk.

    Context manager interface:
        with tracer.span("fetch") as span:
            span.metadata["source"] = "direct"
        # span is automatically finished when the with-block exits

    On error inside the with-block: span status is set to "error"
    and the exception is re-raised — the tracer never swallows errors.
    """

    def __init__(self, target_url: str, run_id: str | None = None) -> None:
        self._run_id = run_id or uuid.uuid4().hex[:12]
        self._started = time.monotonic()
        self._trace = Trace(
            run_id=self._run_id,
            target_url=target_url,
            started_at=datetime.now(timezone.utc).isoformat(),
        )
        self._step_counter = 0

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def trace(self) -> Trace:
        return self._trace

    @contextmanager
    def span(self, name: str):
        """
        Context manager that creates, times, and closes a span.

        On exception: span is marked "error", exception is re-raised.
        """
        self._step_counter += 1
        s = Span(name=name, step=self._step_counter, started_at=time.monotonic())
        self._trace.spans.append(s)
        try:
            yield s
            s.finish(status="success")
        except Exception as exc:
            s.finish(status="error", error=f"{type(exc).__name__}: {exc}")
            raise

    def finish(self, result) -> None:
        """
        Populate summary fields from the cycle's CycleResult.
        Call this after all spans are done.
        """
        elapsed = time.monotonic() - self._started
        self._trace.completed_at = datetime.now(timezone.utc).isoformat()
        self._trace.total_duration_ms = round(elapsed * 1000, 2)
        self._trace.outcome = result.outcome.value if result.outcome else "skipped"
        self._trace.recorded = result.recorded is not None
        self._trace.content_chars = result.content_chars
        self._trace.error = result.error or ""
        if result.recorded is not None:
            self._trace.has_changes = result.recorded.has_changes
            self._trace.n_subjects = len(result.recorded.subjects)

    def should_save(self, previous_outcome=None) -> bool:
        """
        No-change cycles are only worth a file when trace_noop_cycles is on.

        A failure is saved when it starts a failure streak. Later failures in
        the same streak repeat it and are not saved.
        """
        outcome = self._trace.outcome
        if outcome == "no_change":
            return settings.trace_noop_cycles
        if outcome == "failed":
            return _outcome_value(previous_outcome) != "failed"
        return outcome != "skipped"

    def save(self, log_dir: Path | None = None) -> Path:
        """
        Write the trace to {log_dir}/traces/{run_id}.json.
        Returns the path written. Creates the directory if needed.
        Oldest files beyond settings.max_trace_files are deleted.
        """
        if log_dir is None:
            log_dir = default_trace_dir()
        log_dir.mkdir(parents=True, exist_ok=True)

        path = log_dir / f"{self._run_id}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self._trace.to_dict(), f, indent=2, default=str)

        prune_traces(log_dir, keep=settings.max_trace_files)
        return path


def prune_traces(log_dir: Path, keep: int) -> int:
    """Delete all but the `keep` most recently modified trace files. Returns the number deleted."""
    files = sorted(log_dir.glob("*.json"), key=lambda p: p.stat().st_mtime_ns)
    stale = files[:-keep] if keep > 0 else files
    for path in stale:
        path.unlink(missing_ok=True)
    return len(stale)


def _outcome_value(outcome) -> str | None:
    """Accept a CycleOutcome or its string value."""
    return getattr(outcome, "value", outcome)


def default_trace_dir() -> Path:
    """logs/traces under settings.log_dir, relative to the project root."""
    log_dir = Path(settings.log_dir)
    if not log_dir.is_absolute():
        log_dir = Path(__file__).parent.parent / log_dir
    return log_dir / "traces"
