"""
observability/dashboard.py — Metrics over saved cycle trace files.

THE CORE CONCEPT:
  Every interesting poll cycle saves a trace JSON to logs/traces/. The
  dashboard loads those files and computes aggregate metrics: how often the
  fetch fails, how long the model takes, how often a byte change turns out
  to be a real update.

  This answers the questions you can't answer from a single cycle:
    - "Is the page fetch flaky, or was that one timeout a fluke?"
    - "What's the p95 latency of a summarize call?"
    - "How many detected changes did the model dismiss as noise?"

FUNCTIONS:
  load_traces(n)              → last N trace dicts from disk
  summary_stats(traces)       → counts per outcome + failure rate
  change_stats(traces)        → changed cycles split into recorded / dismissed / errored
  latency_stats(traces)       → per-step p50/p90/p95 duration_ms
  span_failure_rates(traces)  → which step names fail most
  slow_cycles(traces, ms)     → cycles that exceeded a duration threshold
  recent_cycles(traces, n)    → last N cycles, newest first

USAGE:
  from observability.dashboard import load_traces, summary_stats, latency_stats

  traces = load_traces(n=50)
  print(summary_stats(traces))
  print(latency_stats(traces))
"""

import json
import statistics
from pathlib import Path

from observability.tracer import default_trace_dir


OUTCOMES = ("first_run", "no_change", "changed", "failed")


# ── Loader ────────────────────────────────────────────────────────────────────

def load_traces(n: int = 50, log_dir: Path | None = None) -> list[dict]:
    """
    Load the last N trace JSON files from logs/traces/.

    Returns a list of raw dicts (as saved by Tracer.save()).
    Files are sorted by modification time — most recent last.
    Returns [] if the directory doesn't exist or is empty.
    """
    if log_dir is None:
        log_dir = default_trace_dir()

    if not log_dir.exists():
        return []

    files = sorted(log_dir.glob("*.json"), key=lambda p: p.stat().st_mtime)
    recent = files[-n:] if len(files) > n else files

    traces = []
    for path in recent:
        try:
            with open(path, encoding="utf-8") as f:
                traces.append(json.load(f))
        except (json.JSONDecodeError, OSError):
            pass  # skip corrupt files

    return traces


# ── Metrics ───────────────────────────────────────────────────────────────────

def summary_stats(traces: list[dict]) -> dict:
    """
    High-level counts across all traces.

    Returns:
        total, one count per outcome, recorded (cycles that wrote history),
        failure_rate (0.0–1.0), avg_content_chars over successful fetches
    """
    if not traces:
        return {}

    total = len(traces)
    outcomes = [t.get("outcome", "unknown") for t in traces]
    counts = {o: outcomes.count(o) for o in OUTCOMES}
    recorded = sum(1 for t in traces if t.get("recorded"))

    chars = [t.get("content_chars", 0) for t in traces if t.get("outcome") != "failed"]

    return {
        "total": total,
        **counts,
        "recorded": recorded,
        "failure_rate": round(counts["failed"] / total, 3),
        "avg_content_chars": round(statistics.mean(chars), 1) if chars else 0,
    }


def change_stats(traces: list[dict]) -> dict:
    """
    What happened to detected changes.

    recorded  — the model reported a real change; it reached history
    dismissed — the model said nothing meaningful changed
    errored   — the summarize call failed
    """
    changed = [t for t in traces if t.get("outcome") == "changed"]
    if not changed:
        return {}

    errored = sum(1 for t in changed if t.get("error"))
    recorded = sum(1 for t in changed if t.get("recorded"))
    dismissed = len(changed) - errored - recorded
    subjects = [t.get("n_subjects", 0) for t in changed if t.get("recorded")]

    return {
        "changed": len(changed),
        "recorded": recorded,
        "dismissed": dismissed,
        "errored": errored,
        "avg_subjects": round(statistics.mean(subjects), 2) if subjects else 0,
    }


def latency_stats(traces: list[dict]) -> dict:
    """
    Per-step latency percentiles (p50, p90, p95) in milliseconds.

    Collects all spans of each name across all traces, then computes
    percentiles. Also includes overall cycle duration percentiles.

    Returns:
        {
          "cycle":     {"p50": ..., "p90": ..., "p95": ...},
          "fetch":     {"p50": ..., "p90": ..., "p95": ...},
          "detect":    {...},
          "summarize": {...},
          "record":    {...},
        }
    """
    if not traces:
        return {}

    cycle_durations = [t.get("total_duration_ms", 0) for t in traces if t.get("total_duration_ms")]

    span_durations: dict[str, list[float]] = {}
    for trace in traces:
        for span in trace.get("spans", []):
            name = span.get("name", "unknown")
            ms = span.get("duration_ms", 0)
            span_durations.setdefault(name, []).append(ms)

    result = {}
    if cycle_durations:
        result["cycle"] = _percentiles(cycle_durations)
    for name, durations in span_durations.items():
        result[name] = _percentiles(durations)

    return result


def span_failure_rates(traces: list[dict]) -> dict:
    """
    Which step names have the highest error rate.

    Returns {span_name: {"total": N, "errors": M, "error_rate": 0.0–1.0}}
    sorted by error_rate descending.
    """
    if not traces:
        return {}

    counts: dict[str, dict] = {}
    for trace in traces:
        for span in trace.get("spans", []):
            name = span.get("name", "unknown")
            if name not in counts:
                counts[name] = {"total": 0, "errors": 0}
            counts[name]["total"] += 1
            if span.get("status") == "error":
                counts[name]["errors"] += 1

    result = {}
    for name, c in counts.items():
        result[name] = {
            "total": c["total"],
            "errors": c["errors"],
            "error_rate": round(c["errors"] / c["total"], 3) if c["total"] else 0.0,
        }

    return dict(sorted(result.items(), key=lambda x: x[1]["error_rate"], reverse=True))


def slow_cycles(traces: list[dict], threshold_ms: float = 20_000) -> list[dict]:
    """
    Return traces where total_duration_ms exceeded the threshold.

    Each returned item has: run_id, outcome, duration_ms, started_at.
    Slowest first.
    """
    slow = []
    for t in traces:
        duration = t.get("total_duration_ms", 0)
        if duration >= threshold_ms:
            slow.append({
                "run_id": t.get("run_id", ""),
                "outcome": t.get("outcome", "unknown"),
                "duration_ms": duration,
                "started_at": t.get("started_at", ""),
            })
    return sorted(slow, key=lambda x: x["duration_ms"], reverse=True)


def recent_cycles(traces: list[dict], n: int = 10) -> list[dict]:
    """Summary of the last N cycles, most recent first."""
    recent = traces[-n:] if len(traces) > n else traces
    result = []
    for t in reversed(recent):
        result.append({
            "run_id": t.get("run_id", ""),
            "outcome": t.get("outcome", "unknown"),
            "recorded": bool(t.get("recorded")),
            "has_changes": bool(t.get("has_changes")),
            "n_subjects": t.get("n_subjects", 0),
            "duration_ms": t.get("total_duration_ms", 0),
            "error": t.get("error", ""),
            "started_at": t.get("started_at", ""),
        })
    return result


# ── Private helpers ───────────────────────────────────────────────────────────

def _percentiles(values: list[float]) -> dict:
    """Compute p50, p90, p95 from a list of numeric values."""
    if not values:
        return {"p50": 0, "p90": 0, "p95": 0}
    s = sorted(values)
    return {
        "p50": round(_pct(s, 50), 2),
        "p90": round(_pct(s, 90), 2),
        "p95": round(_pct(s, 95), 2),
    }


def _pct(sorted_values: list[float], p: float) -> float:
    """Linear interpolation percentile."""
    n = len(sorted_values)
    if n == 1:
        return sorted_values[0]
    idx = (p / 100) * (n - 1)
    lo = int(idx)
    hi = min(lo + 1, n - 1)
    frac = idx - lo
    return sorted_values[lo] + frac * (sorted_values[hi] - sorted_values[lo])
