#!/usr/bin/env python3
"""
Hi-Fi Jitter Meter -- streaming network quality from the terminal.

Usage::

    python jittermeter.py                        # whole catalog, rich dashboard
    python jittermeter.py --service tidal        # one service
    python jittermeter.py -S qobuz -S spotify    # several services
    python jittermeter.py --simple               # plain text
    python jittermeter.py --json                 # JSON to stdout
    python jittermeter.py --samples 100 --interval 50
    python jittermeter.py --all                  # ignore configured services
    python jittermeter.py --list-services
    python jittermeter.py --samples 100 -S qobuz --save-defaults
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Dict, List

from meter.catalog import STREAMING_SERVICES, Target, get_target
from meter.config import config_path, load_config, save_config
from meter.constants import (
    MAX_CONCURRENT,
    MAX_INTERVAL_MS,
    MAX_SAMPLE_COUNT,
    MAX_TIMEOUT_MS,
    MAX_WARMUP_COUNT,
    MIN_SAMPLE_COUNT,
    MIN_TIMEOUT_MS,
)
from meter.engine import CancelToken, MeasurementConfig, ProgressEvent, measure_all
from meter.guidance import generate_guidance
from meter.logging_setup import configure_logging
from meter.quality import classify
from meter.stats import format_latency, format_percent
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_all_results,
    print_guidance,
    print_header,
    print_result,
    print_services,
)

logger = logging.getLogger("jittermeter")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(
    sample_count: int,
    warmup_count: int,
    interval_ms: float,
    timeout_ms: float,
    concurrent: int = 1,
) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_SAMPLE_COUNT <= sample_count <= MAX_SAMPLE_COUNT:
        raise ValueError(f"Sample count must be between {MIN_SAMPLE_COUNT} and {MAX_SAMPLE_COUNT}")
    if not 0 <= warmup_count <= MAX_WARMUP_COUNT:
        raise ValueError(f"Warm-up count must be between 0 and {MAX_WARMUP_COUNT}")
    if not 0 <= interval_ms <= MAX_INTERVAL_MS:
        raise ValueError(f"Interval must be between 0 and {MAX_INTERVAL_MS:.0f} ms")
    if not MIN_TIMEOUT_MS <= timeout_ms <= MAX_TIMEOUT_MS:
        raise ValueError(f"Timeout must be between {MIN_TIMEOUT_MS:.0f} and {MAX_TIMEOUT_MS:.0f} ms")
    if not 1 <= concurrent <= MAX_CONCURRENT:
        raise ValueError(f"Concurrency must be between 1 and {MAX_CONCURRENT}")


def _resolve_targets(ids: List[str]) -> List[Target]:
    """Map service ids to catalog entries; empty means the whole catalog."""
    if not ids:
        return list(STREAMING_SERVICES)
    return [get_target(i) for i in ids]


def _install_interrupt(cancel: CancelToken) -> None:
    """First Ctrl-C stops measuring and keeps partial results."""
    loop = asyncio.get_running_loop()

    def _on_sigint() -> None:
        logger.warning("Stopping -- press Ctrl-C again to abort")
        cancel.cancel()
        loop.remove_signal_handler(signal.SIGINT)

    try:
        loop.add_signal_handler(signal.SIGINT, _on_sigint)
    except (NotImplementedError, RuntimeError):
        logger.debug("SIGINT handler unavailable; Ctrl-C aborts immediately")


def _remove_interrupt() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError):
        pass


# ---------------------------------------------------------------------------
# Core runner
# ---------------------------------------------------------------------------

async def run_measurement(
    targets: List[Target],
    config: MeasurementConfig,
    *,
    json_output: bool = False,
    simple: bool = False,
    show_guidance: bool = True,
    concurrent: int = 1,
) -> List[dict]:
    """Measure *targets* and return JSON-serialisable result dicts."""

    show_ui = not json_output and not simple

    if show_ui:
        print_header()
        console.print(
            f"[dim]{len(targets)} service(s), {config.sample_count} samples each, "
            f"{config.warmup_count} warm-up, {config.interval_ms:.0f} ms interval[/dim]\n"
        )

    cancel = CancelToken()
    _install_interrupt(cancel)

    rtts: Dict[str, List[float]] = {t.id: [] for t in targets}
    progress = ProgressDisplay() if show_ui else None

    def _on_progress(target: Target, event: ProgressEvent) -> None:
        rtts[target.id].append(event.rtt_ms)
        if progress is not None:
            progress.update(target, event)

    if progress is not None:
        progress.start()
    try:
        results = await measure_all(
            targets,
            config,
            on_progress=_on_progress,
            concurrent=concurrent,
            cancel=cancel,
        )
    finally:
        _remove_interrupt()
        if progress is not None:
            progress.stop()

    output: List[dict] = []
    for target, stats in results:
        report = generate_guidance(stats, target)
        tier = classify(stats.avg_jitter)

        if show_ui:
            print_result(target, stats, rtts[target.id])
            if show_guidance:
                print_guidance(report)
        elif simple:
            print(
                f"{target.name}: jitter {format_latency(stats.avg_jitter)} "
                f"(max {format_latency(stats.max_jitter)}), "
                f"RTT {format_latency(stats.avg_rtt)}, "
                f"loss {format_percent(stats.packet_loss)}, "
                f"MOS {stats.mos:.1f} [{tier.label}]"
            )

        entry = {
            "service": target.to_dict(),
            "stats": stats.to_dict(),
            "quality": tier.to_dict(),
            "record": stats.to_history_entry(target),
        }
        if show_guidance:
            entry["guidance"] = report.to_dict()
        output.append(entry)

    if show_ui and len(results) > 1:
        console.print()
        print_all_results(results)

    if json_output:
        print(json.dumps(output, indent=2, ensure_ascii=False))

    return output


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _build_config(args: argparse.Namespace) -> MeasurementConfig:
    return MeasurementConfig.from_mapping(
        {
            "sample_count": args.samples,
            "warmup_count": args.warmup,
            "interval_ms": args.interval,
            "timeout_ms": args.timeout,
        }
    )


def main() -> None:
    cfg = load_config()

    parser = argparse.ArgumentParser(
        description="Hi-Fi Jitter Meter -- streaming network quality for lossless audio",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--no-guidance", action="store_true", help="Skip the improvement guide")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")
    parser.add_argument("--log-file", default=cfg["log_file"] or None, metavar="PATH", help="Also log to a rotating file")

    # Service selection
    parser.add_argument("--service", "-S", action="append", default=None, metavar="ID", help="Service to measure (repeatable, default: all)")
    parser.add_argument("--all", "-a", action="store_true", help="Measure the whole catalog, ignoring configured services")
    parser.add_argument("--list-services", action="store_true", help="List available services and exit")

    # Measurement parameters
    parser.add_argument("--samples", type=int, default=cfg["sample_count"], metavar="N", help="Measured probes per service (default: %(default)s)")
    parser.add_argument("--warmup", type=int, default=cfg["warmup_count"], metavar="N", help="Discarded warm-up probes (default: %(default)s)")
    parser.add_argument("--interval", type=float, default=cfg["interval_ms"], metavar="MS", help="Delay between probes in ms (default: %(default)s)")
    parser.add_argument("--timeout", type=float, default=cfg["timeout_ms"], metavar="MS", help="Per-probe timeout in ms (default: %(default)s)")
    parser.add_argument("--concurrent", type=int, default=1, metavar="N", help="Measure N services at once (default: 1)")

    # Config file
    parser.add_argument("--save-defaults", action="store_true", help="Store the measurement flags and services as defaults, then exit")
    parser.add_argument("--config-path", action="store_true", help="Print the config file location and exit")

    args = parser.parse_args()

    try:
        configure_logging("DEBUG" if args.verbose else cfg["log_level"], log_file=args.log_file)
    except OSError as exc:
        console.print(f"[red]Error: cannot open log file: {exc}[/red]")
        sys.exit(1)

    if args.config_path:
        print(config_path())
        return

    if args.list_services:
        print_services(STREAMING_SERVICES)
        return

    if args.all:
        service_ids: List[str] = []
    else:
        service_ids = args.service or cfg["services"]

    try:
        _validate(
            sample_count=args.samples,
            warmup_count=args.warmup,
            interval_ms=args.interval,
            timeout_ms=args.timeout,
            concurrent=args.concurrent,
        )
        targets = _resolve_targets(service_ids)
        config = _build_config(args)

        if args.save_defaults:
            path = save_config(
                {
                    "sample_count": config.sample_count,
                    "warmup_count": config.warmup_count,
                    "interval_ms": config.interval_ms,
                    "timeout_ms": config.timeout_ms,
                    "services": [t.id for t in targets] if service_ids else [],
                }
            )
            console.print(f"[green]Defaults saved to {path}[/green]")
            return
    except (ValueError, KeyError, OSError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    try:
        asyncio.run(
            run_measurement(
                targets,
                config,
                json_output=args.json,
                simple=args.simple,
                show_guidance=not args.no_guidance,
                concurrent=args.concurrent,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Measurement aborted by user[/yellow]")
        sys.exit(1)
    except Exception as exc:
        logger.debug("Measurement failed", exc_info=True)
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
