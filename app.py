"""
app.py — Streamlit dashboard for homework-watch.

Two tabs:
  Updates — live feed: stat cards, subject tabs, update cards, "Check now"
  Cycles  — aggregate metrics over saved poll-cycle traces

The dashboard never fetches the page or calls the model itself. It reads
the summary feed from the API (GET /api/history) and asks the API to run
a cycle (POST /api/check). Start the API first:

  uv run uvicorn api:app --port 8000
  uv run streamlit run app.py
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from datetime import datetime

import httpx
import pandas as pd
import streamlit as st

from config import settings
from observability.dashboard import (
    load_traces,
    summary_stats,
    change_stats,
    latency_stats,
    span_failure_rates,
    recent_cycles,
    slow_cycles,
)
from watcher.feed import SUBJECT_FILTERS, filter_records, format_relative_time
from watcher.state import SummaryRecord

REFRESH_SECONDS = max(2.0, settings.poll_interval_seconds)

# ── Page config ───────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Homework Updates",
    layout="wide",
    page_icon="📚",
)

# ── Sidebar ───────────────────────────────────────────────────────────────────

with st.sidebar:
    st.title("📚 Homework Updates")
    st.caption("Monitor the weekly assignments page for changes")
    st.divider()

    st.subheader("Configuration")
    st.caption(f"**Page:** {settings.target_url}")
    st.caption(f"**Model:** {settings.llm_model}")
    st.caption(f"**Poll interval:** {settings.poll_interval_seconds:g}s")
    st.caption(f"**History cap:** {settings.history_cap}")
    st.caption(f"**API:** {settings.api_base_url}")

# ── Helpers ───────────────────────────────────────────────────────────────────

def _get_feed() -> dict | None:
    """GET /api/history. None if the API is unreachable."""
    try:
        response = httpx.get(f"{settings.api_base_url}/api/history", timeout=5.0)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError:
        return None


def _check_now() -> dict | None:
    try:
        response = httpx.post(
            f"{settings.api_base_url}/api/check",
            timeout=settings.fetch_timeout_seconds + settings.llm_timeout_seconds,
        )
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError:
        return None


def _relative(iso: str | None) -> str:
    if not iso:
        return "--"
    return format_relative_time(datetime.fromisoformat(iso))


def _render_update(record: SummaryRecord, is_latest: bool) -> None:
    with st.container(border=True):
        head, when = st.columns([4, 1])
        title = "Latest update" if is_latest else "Update"
        if not record.has_changes:
            title = "Status"
        head.markdown(f"**{title}**")
        when.caption(format_relative_time(record.timestamp))

        st.write(record.summary)
        for subject in record.subjects:
            st.markdown(f"**{subject.name}**")
            for change in subject.changes:
                st.markdown(f"- {change}")


# ── Tabs ──────────────────────────────────────────────────────────────────────

tab_updates, tab_cycles = st.tabs(["Updates", "Cycles"])

# ══════════════════════════════════════════════════════════════════════════════
# TAB 1 — UPDATES
# ══════════════════════════════════════════════════════════════════════════════

with tab_updates:
    if st.button("Check Now", type="primary"):
        with st.spinner("Checking the page..."):
            outcome = _check_now()
        if outcome is None:
            st.error("Could not reach the API.")
        elif outcome.get("skipped"):
            st.info("A check is already running.")
        elif outcome.get("outcome") == "failed":
            st.warning(f"Check failed — {outcome.get('error', 'unknown error')}")

    @st.fragment(run_every=REFRESH_SECONDS)
    def live_feed() -> None:
        feed = _get_feed()
        if feed is None:
            st.error(f"API unreachable at {settings.api_base_url}. Is uvicorn running?")
            return

        records = [SummaryRecord.from_dict(u) for u in feed.get("updates", [])]

        # ── Stat cards ────────────────────────────────────────────────────────
        col1, col2, col3, col4 = st.columns(4)
        col1.metric("Total Updates", feed.get("totalUpdates", 0))
        col2.metric("Last Updated", _relative(feed.get("lastUpdated")))
        col3.metric("Last Checked", _relative(feed.get("lastChecked")))
        col4.metric("Status", "Live" if feed.get("running") else "Paused")

        if feed.get("analyzing"):
            st.toast("Analyzing changes...")

        st.divider()
        st.subheader("Recent Updates")

        # ── Subject tabs ──────────────────────────────────────────────────────
        labels = [label for _, label in SUBJECT_FILTERS]
        choice = st.radio(
            "Subject",
            labels,
            horizontal=True,
            label_visibility="collapsed",
            key="subject_filter",
        )
        filter_id = dict((label, fid) for fid, label in SUBJECT_FILTERS)[choice]
        shown = filter_records(records, filter_id)

        # ── Update cards ──────────────────────────────────────────────────────
        if not shown:
            if filter_id == "all":
                st.info("No updates yet. The system is monitoring for changes.")
            else:
                st.info("No homework updates for this subject.")
        else:
            for i, record in enumerate(shown):
                _render_update(record, is_latest=(i == 0))

    live_feed()

# ══════════════════════════════════════════════════════════════════════════════
# TAB 2 — CYCLES
# ══════════════════════════════════════════════════════════════════════════════

with tab_cycles:
    st.header("Poll cycles")

    n_traces = st.number_input("Load last N cycles", min_value=1, max_value=1000, value=50)

    @st.cache_data(ttl=30)
    def get_traces(n: int):
        return load_traces(n=n)

    traces = get_traces(n_traces)

    if not traces:
        st.info("No trace files found. Traces are saved for first runs, changes and failures.")
    else:
        # ── Summary metrics ───────────────────────────────────────────────────
        stats = summary_stats(traces)

        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Traced cycles", stats.get("total", 0))
        c2.metric("Changes", stats.get("changed", 0))
        c3.metric("Recorded", stats.get("recorded", 0))
        c4.metric("Failure rate", f"{stats.get('failure_rate', 0) * 100:.0f}%")

        changes = change_stats(traces)
        if changes:
            st.divider()
            st.subheader("Detected changes")
            d1, d2, d3, d4 = st.columns(4)
            d1.metric("Recorded", changes.get("recorded", 0))
            d2.metric("Dismissed by model", changes.get("dismissed", 0))
            d3.metric("Summarize errors", changes.get("errored", 0))
            d4.metric("Avg subjects", f"{changes.get('avg_subjects', 0):.1f}")

        st.divider()

        # ── Latency percentiles ───────────────────────────────────────────────
        st.subheader("Latency (ms)")
        lat = latency_stats(traces)
        if lat:
            lat_rows = [
                {"Step": step, "p50 ms": p["p50"], "p90 ms": p["p90"], "p95 ms": p["p95"]}
                for step, p in lat.items()
            ]
            st.dataframe(pd.DataFrame(lat_rows).set_index("Step"), use_container_width=True)

        # ── Failure rates ─────────────────────────────────────────────────────
        failures = span_failure_rates(traces)
        if failures:
            st.subheader("Step failure rates")
            rows = [
                {"Step": name, "Total": v["total"], "Errors": v["errors"], "Error rate": f"{v['error_rate']*100:.1f}%"}
                for name, v in failures.items()
            ]
            st.dataframe(pd.DataFrame(rows).set_index("Step"), use_container_width=True)

        # ── Slow cycles ───────────────────────────────────────────────────────
        threshold_ms = settings.slow_cycle_threshold_seconds * 1000
        slow = slow_cycles(traces, threshold_ms=threshold_ms)
        if slow:
            st.subheader(f"Slow cycles (>{settings.slow_cycle_threshold_seconds:g}s) — {len(slow)} found")
            for r in slow:
                st.warning(f"`{r['run_id']}` — {r['duration_ms'] / 1000:.1f}s — {r['outcome']} — {r['started_at']}")

        st.divider()

        # ── Recent cycles table ───────────────────────────────────────────────
        st.subheader("Recent cycles")
        rows = recent_cycles(traces, n=20)
        if rows:
            df = pd.DataFrame(rows)
            df["duration_s"] = (df["duration_ms"] / 1000).round(2)
            df = df[["run_id", "outcome", "recorded", "has_changes", "n_subjects", "duration_s", "error", "started_at"]]
            st.dataframe(df, use_container_width=True)
