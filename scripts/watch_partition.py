#!/usr/bin/env python3
"""Live console view of one partition's estimates and signals.

Connects with the ``TURNOUT_*`` environment configuration, then prints
every merged estimate, every classified observation and every push
channel status change until interrupted or ``--duration`` elapses.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyturnout import PrecinctDirectory, TurnoutConfig, TurnoutEngine, TurnoutError  # noqa: E402
from pyturnout.classify.signals import format_shift, signal_label  # noqa: E402
from pyturnout.models.signal import ClassifiedSignal  # noqa: E402
from pyturnout.state.events import RecordUpdate  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--partition", help="Partition (election type); defaults to TURNOUT_PARTITION")
    parser.add_argument("--geojson", type=Path, help="Precinct FeatureCollection used for names and baselines")
    parser.add_argument("--duration", type=float, default=0.0, help="Stop after N seconds (0 = run until Ctrl-C)")
    parser.add_argument("--json", action="store_true", help="Print merged records as JSON")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args()


def _print_update(update: RecordUpdate, *, as_json: bool) -> None:
    if as_json:
        print(update.record.model_dump_json())
        return
    record = update.record
    mark = "*" if update.changed else " "
    mean = record.displayed_mean()
    mean_text = "n/a" if mean is None else f"{mean:.3f}"
    print(
        f"[watch] {mark} {record.key:<12} source={update.source:<7} mean={mean_text} "
        f"n_eff={record.effective_count:g} visible={record.visible}",
    )


def _print_signal(signal_: ClassifiedSignal) -> None:
    ts_text = signal_.timestamp.strftime("%H:%M:%S")
    print(
        f"[watch] signal {ts_text} {signal_.label} ({signal_.entity_key}): "
        f"{signal_label(signal_.direction)} impact={signal_.impact} shift={format_shift(signal_.estimated_shift)}",
    )


async def _run(args: argparse.Namespace) -> int:
    config = TurnoutConfig.from_env()
    directory = PrecinctDirectory.from_geojson(args.geojson) if args.geojson else None
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    engine = TurnoutEngine(
        config,
        directory=directory,
        on_update=lambda update: _print_update(update, as_json=args.json),
        on_signal=_print_signal,
        on_status=lambda connected: print(f"[watch] push channel connected={connected}"),
    )
    started_at = time.monotonic()
    try:
        await engine.start(args.partition)
        print(f"[watch] partition={engine.partition} records={len(engine.get_snapshot())}")
        timeout = args.duration if args.duration > 0 else None
        try:
            await asyncio.wait_for(stop.wait(), timeout)
        except TimeoutError:
            print(f"[watch] Reached --duration={args.duration}s, stopping.")
    finally:
        await engine.close()

    print("[watch] Summary")
    print(f"[watch]   runtime_s       : {time.monotonic() - started_at:.1f}")
    print(f"[watch]   records         : {len(engine.get_snapshot())}")
    print(f"[watch]   reporting       : {engine.reporting_count()}")
    print(f"[watch]   high_divergence : {engine.high_divergence_count()}")
    print(f"[watch]   signals         : {engine.signal_count()}")
    if args.json:
        print(json.dumps([s.model_dump(mode="json") for s in engine.get_log()], indent=2))
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except TurnoutError as exc:
        print(f"[watch] Failed: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
