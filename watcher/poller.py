"""
watcher/poller.py — The poll loop: fetch → normalize → detect → summarize → record.

THE CYCLE (run_cycle):

  1. Fetch the page.
       failure → log it, touch nothing, outcome=FAILED.
                 No backoff, no in-cycle retry: the next tick is the retry.
  2. Normalize the fetched text.
  3. Detect against the previous-content slot:
       FirstRun  → write the "monitoring started" record. No model call.
       NoChange  → nothing.
       Changed   → ask the summarizer. Record only hasChanges=true.
                   hasChanges=false (the model saw nothing meaningful) and
                   SummarizeError both leave history alone.
  4. Overwrite the slot with the new content — in every success branch,
     including a failed summarizer call. Otherwise the same diff would be
     re-summarized on every tick until the model recovered.

SINGLE-FLIGHT (Poller.tick):
  The scheduler fires every poll_interval_seconds whether or not the last
  cycle finished. A summarizer call can easily take longer than 5s.
  Two cycles running at once would race on the slot and on history, so
  tick() takes a non-blocking lock: if a cycle is in flight, the tick is
  skipped and reported as skipped=True. The APScheduler job is also
  registered with max_instances=1 and coalesce=True, so a backlog of missed
  ticks collapses into one.

  The manual "Check now" path goes through the same tick(), so it obeys the
  same rule.

OWNERSHIP:
  The ContentSlot and the History belong to one Poller. run_cycle() is the
  only writer, and it only runs under the poller's lock. Readers get
  History.snapshot() copies and PollerStatus snapshots.

USAGE:
  from watcher.poller import Poller

  poller = Poller()
  poller.start()                      # background ticks every 5s
  ...
  for record in poller.history.snapshot():
      print(record.summary)
  poller.stop()

  # Or drive it by hand (tests, CLI):
  result = poller.tick()
  print(result.outcome)
"""

import threading
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings
from llm.client import LLMClient
from observability.tracer import Tracer
from tools.fetch import FetchResult, fetch_page
from tools.normalize import normalize
from watcher.detector import Changed, FirstRun, NoChange, detect
from watcher.history import History
from watcher.state import ContentSlot, CycleOutcome, CycleResult, PollerStatus, SummaryRecord
from watcher.summarizer import SummarizeError, Summarizer


POLL_JOB_ID = "poll_assignments"

_OUTCOMES = {
    FirstRun: CycleOutcome.FIRST_RUN,
    NoChange: CycleOutcome.NO_CHANGE,
    Changed: CycleOutcome.CHANGED,
}


# ── The cycle ─────────────────────────────────────────────────────────────────

def run_cycle(
    slot: ContentSlot,
    history: History,
    fetch: Callable[[], FetchResult],
    summarizer: Summarizer,
    tracer: Tracer | None = None,
    on_analyzing: Callable[[bool], None] | None = None,
) -> CycleResult:
    """
    Run one fetch → normalize → detect → (summarize) → (record) pass.

    Args:
        slot:         The previous-content cell. Written only after a successful fetch.
        history:      Where qualifying records go.
        fetch:        Zero-argument page fetcher. May return success=False or raise.
        summarizer:   Used only when the content changed.
        tracer:       Optional span collector for this cycle.
        on_analyzing: Called with True/False around the summarizer call.

    Never raises for fetch or summarizer failures — they become the result.
    """
    tracer = tracer or Tracer(target_url=settings.target_url)
    result = CycleResult(outcome=None)

    # ── Fetch ─────────────────────────────────────────────────────────────────
    try:
        with tracer.span("fetch") as span:
            fetched = fetch()
            span.metadata["source"] = fetched.source
            span.metadata["success"] = fetched.success
            if fetched.error:
                span.metadata["error"] = fetched.error
    except Exception as e:
        return _fetch_failed(result, f"{type(e).__name__}: {e}")

    if not fetched.success:
        return _fetch_failed(result, fetched.error or "Failed to fetch page")

    content = normalize(fetched.content)
    result.content_chars = len(content)

    # ── Detect ────────────────────────────────────────────────────────────────
    with tracer.span("detect") as span:
        detection = detect(slot.value, content)
        result.outcome = _OUTCOMES[type(detection)]
        span.metadata["outcome"] = result.outcome.value
        span.metadata["content_chars"] = len(content)

    try:
        if isinstance(detection, FirstRun):
            _record(tracer, history, result, SummaryRecord.monitoring_started())
            _log("Monitoring started")

        elif isinstance(detection, Changed):
            _log(f"Change detected ({len(detection.previous)} → {len(detection.current)} chars) — summarizing")
            summary = _summarize(tracer, summarizer, detection, result, on_analyzing)
            if summary is not None and summary.has_changes:
                _record(tracer, history, result, summary)
                _log(f"Update recorded: {summary.summary[:80]}")
            elif summary is not None:
                _log(f"Model reported no meaningful change: {summary.summary[:80]}")

    finally:
        slot.replace(content)

    return result


def _summarize(
    tracer: Tracer,
    summarizer: Summarizer,
    detection: Changed,
    result: CycleResult,
    on_analyzing: Callable[[bool], None] | None,
) -> SummaryRecord | None:
    """Run the summarizer inside a span. Returns None on SummarizeError."""
    if on_analyzing:
        on_analyzing(True)
    try:
        with tracer.span("summarize") as span:
            summary = summarizer.summarize(detection.previous, detection.current)
            span.metadata["has_changes"] = summary.has_changes
            span.metadata["n_subjects"] = len(summary.subjects)
        return summary
    except SummarizeError as e:
        result.error = str(e)
        _log(f"Summarize failed: {e}")
        return None
    finally:
        if on_analyzing:
            on_analyzing(False)


def _record(tracer: Tracer, history: History, result: CycleResult, record: SummaryRecord) -> None:
    with tracer.span("record") as span:
        history.record(record)
        result.recorded = record
        span.metadata["history_len"] = len(history)


def _fetch_failed(result: CycleResult, error: str) -> CycleResult:
    result.outcome = CycleOutcome.FAILED
    result.error = error
    _log(f"Fetch failed: {error}")
    return result


# ── Poller ────────────────────────────────────────────────────────────────────

class Poller:
    """
    Owns the slot and the history, and runs run_cycle() on a fixed interval.

    At most one cycle executes at a time; see tick().
    """

    def __init__(
        self,
        fetch: Callable[[], FetchResult] | None = None,
        summarizer: Summarizer | None = None,
        history: History | None = None,
        interval_seconds: float | None = None,
        save_traces: bool = True,
    ) -> None:
        self._fetch = fetch or fetch_page
        self._summarizer = summarizer
        self._history = history if history is not None else History()
        self._interval = interval_seconds or settings.poll_interval_seconds
        self._save_traces = save_traces

        self._slot = ContentSlot()
        self._cycle_lock = threading.Lock()
        self._status_lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None

        self._analyzing = False
        self._cycles = 0
        self._failures = 0
        self._last_checked: datetime | None = None
        self._last_updated: datetime | None = None
        self._last_outcome: CycleOutcome | None = None

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def history(self) -> History:
        return self._history

    @property
    def current_content(self) -> str | None:
        """The last normalized content seen (None before the first successful fetch)."""
        return self._slot.value

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def status(self) -> PollerStatus:
        with self._status_lock:
            return PollerStatus(
                running=self.is_running,
                analyzing=self._analyzing,
                cycles=self._cycles,
                failures=self._failures,
                last_checked=self._last_checked,
                last_updated=self._last_updated,
            )

    # ── Cycle ─────────────────────────────────────────────────────────────────

    def tick(self) -> CycleResult:
        """
        Run one cycle unless one is already in flight.

        Returns CycleResult(skipped=True) when the previous cycle has not
        finished. Never raises.
        """
        if not self._cycle_lock.acquire(blocking=False):
            _log("Previous cycle still running — skipping tick")
            return CycleResult.skipped_tick()

        try:
            tracer = Tracer(target_url=settings.target_url)
            try:
                result = run_cycle(
                    self._slot,
                    self._history,
                    self._fetch,
                    self._get_summarizer(),
                    tracer=tracer,
                    on_analyzing=self._set_analyzing,
                )
            except Exception as e:
                _log(f"Unexpected error in poll cycle: {type(e).__name__}: {e}")
                result = CycleResult(outcome=CycleOutcome.FAILED, error=f"{type(e).__name__}: {e}")

            previous_outcome = self._last_outcome
            self._last_outcome = result.outcome
            self._update_status(result)
            tracer.finish(result)
            if self._save_traces and tracer.should_save(previous_outcome):
                tracer.save()
            return result
        finally:
            self._cycle_lock.release()

    # ── Scheduling ────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start background ticks. The first tick fires immediately."""
        if self.is_running:
            return

        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self._interval),
            id=POLL_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        _log(f"Polling {settings.target_url} every {self._interval:g}s")

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            _log("Polling stopped")
        self._scheduler = None

    # ── Private ───────────────────────────────────────────────────────────────

    def _get_summarizer(self) -> Summarizer:
        if self._summarizer is None:
            self._summarizer = Summarizer(client=LLMClient())
        return self._summarizer

    def _set_analyzing(self, value: bool) -> None:
        with self._status_lock:
            self._analyzing = value

    def _update_status(self, result: CycleResult) -> None:
        now = datetime.now(timezone.utc)
        with self._status_lock:
            self._cycles += 1
            if result.outcome == CycleOutcome.FAILED:
                self._failures += 1
                return
            self._last_checked = now
            if result.recorded is not None and result.recorded.has_changes:
                self._last_updated = result.recorded.timestamp


def _log(message: str) -> None:
    print(f"[homework-watch] {message}")
