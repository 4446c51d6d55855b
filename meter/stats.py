"""
Jitter and round-trip statistics.

Pure functions and lightweight dataclasses -- no I/O, no side effects.
Everything here is deterministic and easy to unit-test.

Two jitter measures coexist:

* the *smoothed* jitter, an RFC 3550 style running estimate updated after
  every raw sample (timed-out attempts included).  It only feeds the MOS
  estimate.
* the *consecutive-difference* jitter (mean and max of ``|s[i] - s[i-1]|``
  over samples that arrived in time).  Classification and guidance use it.
"""
from __future__ import annotations

import statistics
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .constants import (
    MOS_BASE,
    MOS_JITTER_PENALTY,
    MOS_LOSS_PENALTY,
    MOS_MAX,
    MOS_MIN,
    SMOOTHING_DIVISOR,
)


# ---------------------------------------------------------------------------
# Result record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatsRecord:
    """Aggregated result of one measurement run."""

    avg_rtt: float = 0.0
    avg_jitter: float = 0.0
    max_jitter: float = 0.0
    std_dev_rtt: float = 0.0
    packet_loss: float = 1.0
    mos: float = MOS_MIN
    samples: int = 0

    @classmethod
    def worst_case(cls, samples: int = 0) -> StatsRecord:
        """Record for a run where nothing arrived in time."""
        return cls(samples=samples)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "avg_rtt": round(self.avg_rtt, 3),
            "avg_jitter": round(self.avg_jitter, 3),
            "max_jitter": round(self.max_jitter, 3),
            "std_dev_rtt": round(self.std_dev_rtt, 3),
            "packet_loss": round(self.packet_loss, 4),
            "mos": round(self.mos, 2),
            "samples": self.samples,
        }

    def to_history_entry(self, target, timestamp: Optional[str] = None) -> Dict[str, Any]:  # noqa: ANN001 (Target)
        """Flat record in the shape the history store expects."""
        return {
            "timestamp": timestamp or datetime.now(timezone.utc).isoformat(),
            "targetId": target.id,
            "targetName": target.name,
            "avgRtt": self.avg_rtt,
            "avgJitter": self.avg_jitter,
            "maxJitter": self.max_jitter,
            "stdDevRtt": self.std_dev_rtt,
            "packetLossRatio": self.packet_loss,
            "mosEstimate": self.mos,
        }


# ---------------------------------------------------------------------------
# Pure helper functions
# ---------------------------------------------------------------------------

def smooth_jitter(previous: float, diff: float, divisor: float = SMOOTHING_DIVISOR) -> float:
    """One RFC 3550 jitter update: ``J += (|D| - J) / divisor``."""
    return previous + (abs(diff) - previous) / divisor


def consecutive_diffs(samples: Sequence[float]) -> List[float]:
    return [abs(samples[i] - samples[i - 1]) for i in range(1, len(samples))]


def calculate_jitter(samples: Sequence[float]) -> float:
    """Mean absolute difference between consecutive samples."""
    if len(samples) < 2:
        return 0.0
    return float(statistics.mean(consecutive_diffs(samples)))


def calculate_max_jitter(samples: Sequence[float]) -> float:
    if len(samples) < 2:
        return 0.0
    return float(max(consecutive_diffs(samples)))


def calculate_std_dev(samples: Sequence[float]) -> float:
    """Population standard deviation (divides by n, not n - 1)."""
    if not samples:
        return 0.0
    return float(statistics.pstdev(samples))


def estimate_mos(jitter_ms: float, packet_loss: float) -> float:
    """MOS-like 1..5 score from smoothed jitter and loss ratio."""
    mos = MOS_BASE - jitter_ms * MOS_JITTER_PENALTY - packet_loss * MOS_LOSS_PENALTY
    return max(MOS_MIN, min(MOS_MAX, mos))


def calculate_stats(
    samples: Sequence[float],
    timeout_ms: float,
    smoothed_jitter: float = 0.0,
) -> StatsRecord:
    """
    Reduce raw RTT samples to a :class:`StatsRecord`.

    Samples at or above *timeout_ms* count as lost: they are excluded from
    the latency figures but included in the loss ratio.
    """
    valid = [s for s in samples if s < timeout_ms]
    if not valid:
        return StatsRecord.worst_case(samples=len(samples))

    packet_loss = (len(samples) - len(valid)) / len(samples)
    return StatsRecord(
        avg_rtt=float(statistics.mean(valid)),
        avg_jitter=calculate_jitter(valid),
        max_jitter=calculate_max_jitter(valid),
        std_dev_rtt=calculate_std_dev(valid),
        packet_loss=packet_loss,
        mos=estimate_mos(smoothed_jitter, packet_loss),
        samples=len(samples),
    )


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def format_latency(latency_ms: float) -> str:
    """Human-readable latency string."""
    if latency_ms >= 1000:
        return f"{latency_ms / 1000:.2f} s"
    return f"{latency_ms:.1f} ms"


def format_percent(ratio: float) -> str:
    return f"{ratio * 100:.1f}%"
