"""
Rich-based terminal dashboard for jitter results.

All formatting helpers live in ``meter.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from meter.catalog import Target
from meter.engine import ProgressEvent
from meter.guidance import GuidanceReport
from meter.quality import QUALITY_TIERS, classify
from meter.stats import StatsRecord, format_latency, format_percent

console = Console()

_SEVERITY_STYLE = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
}


# ---------------------------------------------------------------------------
# Histogram helper
# ---------------------------------------------------------------------------

_BARS = "▁▂▃▄▅▆▇█"


def create_histogram(values: List[float]) -> str:
    """Return a single-line Unicode bar-chart."""
    if not values:
        return "No data"

    lo, hi = min(values), max(values)
    span = hi - lo if hi > lo else 1.0
    return "".join(
        _BARS[min(int((v - lo) / span * (len(_BARS) - 1)), len(_BARS) - 1)]
        for v in values
    )


def quality_badge(avg_jitter: float, packet_loss: float = 0.0) -> str:
    # Nothing came back, so the zero jitter means nothing
    tier = QUALITY_TIERS[-1] if packet_loss >= 1 else classify(avg_jitter)
    return f"[bold {tier.color}]{tier.label}[/bold {tier.color}]"


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Hi-Fi Jitter Meter[/bold cyan]\n"
            "[dim]Streaming network quality for lossless audio[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_services(targets: Sequence[Target]) -> None:
    table = Table(title="Streaming Services", box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Service", style="bold")
    table.add_column("Tier")
    table.add_column("Bitrate")
    table.add_column("Probe")

    for t in targets:
        table.add_row(t.id, t.name, t.tier, t.bitrate, t.strategy.value)

    console.print(table)


def _loss_cell(packet_loss: float) -> str:
    text = format_percent(packet_loss)
    return f"[red]{text}[/red]" if packet_loss > 0 else text


def print_result(target: Target, stats: StatsRecord, rtts: List[float]) -> None:
    """Print one service's statistics and an RTT sparkline."""
    table = Table(
        title=f"{target.name} -- {quality_badge(stats.avg_jitter, stats.packet_loss)}",
        box=box.ROUNDED,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Avg jitter", format_latency(stats.avg_jitter))
    table.add_row("Max jitter", format_latency(stats.max_jitter))
    table.add_row("Avg RTT", format_latency(stats.avg_rtt))
    table.add_row("Std dev", format_latency(stats.std_dev_rtt))
    table.add_row("Packet loss", _loss_cell(stats.packet_loss))
    table.add_row("MOS", f"{stats.mos:.1f}")
    table.add_row("Samples", str(stats.samples))
    console.print(table)

    if rtts:
        console.print(
            Panel(
                f"[cyan]{create_histogram(rtts)}[/cyan]\n"
                f"[dim]Min: {min(rtts):.1f} ms  Max: {max(rtts):.1f} ms[/dim]",
                title="RTT Over Time",
            )
        )


def print_all_results(results: Sequence[Tuple[Target, StatsRecord]]) -> None:
    """Comparison table, in the order given (best first)."""
    table = Table(title="All Services", box=box.ROUNDED)
    table.add_column("Service", style="bold")
    table.add_column("Avg jitter", justify="right")
    table.add_column("Max jitter", justify="right")
    table.add_column("Quality")
    table.add_column("Avg RTT", justify="right")
    table.add_column("Loss", justify="right")

    for target, stats in results:
        table.add_row(
            target.name,
            format_latency(stats.avg_jitter),
            format_latency(stats.max_jitter),
            quality_badge(stats.avg_jitter, stats.packet_loss),
            format_latency(stats.avg_rtt),
            _loss_cell(stats.packet_loss),
        )

    console.print(table)


def print_guidance(report: GuidanceReport) -> None:
    lines: List[str] = []

    if report.warnings:
        lines.append("[bold]Warnings[/bold]")
        for w in report.warnings:
            style = _SEVERITY_STYLE.get(w.severity, "white")
            lines.append(f"  [{style}]{w.severity.upper()}[/{style}] {w.message}")
        lines.append("")

    if report.immediate_actions:
        lines.append("[bold]Immediate actions[/bold]")
        for a in report.immediate_actions:
            style = _SEVERITY_STYLE.get(a.priority, "white")
            lines.append(f"  [{style}]{a.priority.upper()}[/{style}] {a.action}")
            lines.append(f"    [dim]{a.rationale}[/dim]")
            if a.tip:
                lines.append(f"    Tip: {a.tip}")
            if a.effect:
                lines.append(f"    Effect: {a.effect}")
        lines.append("")

    net = report.network
    lines.append("[bold]Network[/bold]")
    lines.append(f"  Status: [bold]{net.status}[/bold]")
    lines.append(f"  Connection: {net.recommendation}")
    lines.append(f"  Wi-Fi: {net.wifi_tip}")
    lines.append(f"  Advanced: {net.bufferbloat}")
    lines.append("")

    sys_ = report.system
    lines.append("[bold]System & audio[/bold]")
    lines.append(f"  Environment: {sys_.os}")
    lines.append(f"  Audio buffer: [bold]{sys_.buffer_ms} ms[/bold]")
    lines.append(f"  Driver: {sys_.driver}")
    lines.append(f"  Bit depth: {sys_.bit_depth}")
    for opt in sys_.optimizations:
        lines.append(f"  - {opt}")
    lines.append("")

    lines.append("[bold]Player software[/bold]")
    for rec in report.software:
        lines.append(f"  {rec.name}: {rec.reason}")

    console.print(Panel("\n".join(lines), title="Improvement Guide", border_style="cyan"))


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """Manages ``rich`` progress bars, one per service being measured."""

    def __init__(self) -> None:
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            TextColumn("[bold cyan]{task.fields[jitter]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._tasks: Dict[str, TaskID] = {}

    def start(self) -> None:
        self.progress.start()

    def update(self, target: Target, event: ProgressEvent) -> None:
        task_id = self._tasks.get(target.id)
        if task_id is None:
            task_id = self.progress.add_task(target.name, total=event.total, jitter="")
            self._tasks[target.id] = task_id
        self.progress.update(
            task_id,
            completed=event.index,
            jitter=f"rtt {event.rtt_ms:.1f} ms  jitter {event.jitter_ms:.2f} ms",
        )

    def stop(self) -> None:
        self.progress.stop()
        self._tasks.clear()
