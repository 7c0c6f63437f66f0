"""
watch.py — Run the poll loop in the terminal, without the API or dashboard.

WHAT THIS DOES:
  Drives Poller.tick() on the configured interval from the foreground and
  prints every record that reaches history. Useful for checking a new
  model, endpoint or target URL before deploying the service.

HOW TO USE:

  One cycle (prints "monitoring started" on success):
    uv run python watch.py --once

  Ten cycles, 30 seconds apart:
    uv run python watch.py --cycles 10 --interval 30

  Forever, default interval, dump the history as JSON on Ctrl-C:
    uv run python watch.py --output history.json

OUTPUT:
  [homework-watch] Monitoring started
  ── 2026-10-17 09:00:05 ─ Monitoring started. You'll see updates here when the page changes.
  [homework-watch] Change detected (1832 → 1907 chars) — summarizing
  ── 2026-10-17 09:14:35 ─ Math homework added
       Math
         • New worksheet due Friday
"""

import argparse
import json
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from config import settings
from watcher.poller import Poller
from watcher.state import CycleOutcome, SummaryRecord


def print_record(record: SummaryRecord) -> None:
    stamp = record.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    print(f"── {stamp} ─ {record.summary}")
    for subject in record.subjects:
        print(f"     {subject.name}")
        for change in subject.changes:
            print(f"       • {change}")


def run(cycles: int | None, interval: float, save_traces: bool) -> Poller:
    """Tick `cycles` times (forever if None), sleeping `interval` between ticks."""
    poller = Poller(save_traces=save_traces)
    done = 0
    try:
        while cycles is None or done < cycles:
            result = poller.tick()
            done += 1
            if result.recorded is not None:
                print_record(result.recorded)
            elif result.outcome == CycleOutcome.FAILED:
                print(f"   check failed: {result.error}")
            if cycles is None or done < cycles:
                time.sleep(interval)
    except KeyboardInterrupt:
        print()
    return poller


# ── CLI ───────────────────────────────────────────────────────────────────────

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch the assignments page and print summarized changes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle and exit",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        help="Run this many cycles and exit (default: run until Ctrl-C)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.poll_interval_seconds,
        help=f"Seconds between cycles (default: {settings.poll_interval_seconds:g})",
    )
    parser.add_argument(
        "--output",
        help="Save the final history to this JSON file",
    )
    parser.add_argument(
        "--no-traces",
        action="store_true",
        help="Do not write cycle traces to logs/traces/",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.cycles is not None and args.cycles < 1:
        print(f"Error: --cycles must be at least 1, got {args.cycles}")
        sys.exit(1)
    if args.interval <= 0:
        print(f"Error: --interval must be positive, got {args.interval}")
        sys.exit(1)

    cycles = 1 if args.once else args.cycles
    poller = run(cycles, args.interval, save_traces=not args.no_traces)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps([r.to_dict() for r in poller.history.snapshot()], indent=2))
        print(f"History saved to {output_path}")


if __name__ == "__main__":
    main()
