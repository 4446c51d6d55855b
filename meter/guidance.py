"""
Remediation guidance.

Turns a :class:`StatsRecord` plus the measured :class:`Target` into a
:class:`GuidanceReport`.  Warnings and immediate actions come from an
ordered rule table; each rule is a predicate paired with the item it adds,
and no rule looks at what another rule produced.  The remaining sections
are simple threshold lookups.

Everything here is pure: same inputs, same report.
"""
from __future__ import annotations

import enum
import math
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional, Tuple, Union

from .catalog import Target
from .stats import StatsRecord


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GuidanceWarning:
    severity: str
    message: str


@dataclass(frozen=True)
class Action:
    priority: str
    action: str
    rationale: str
    tip: Optional[str] = None
    effect: Optional[str] = None


@dataclass(frozen=True)
class NetworkGuidance:
    status: str
    recommendation: str
    wifi_tip: str
    bufferbloat: str


@dataclass(frozen=True)
class SystemGuidance:
    os: str
    driver: str
    buffer_ms: int
    bit_depth: str
    optimizations: Tuple[str, ...]
    cpu_load: float


@dataclass(frozen=True)
class SoftwareRecommendation:
    name: str
    reason: str


@dataclass(frozen=True)
class GuidanceReport:
    warnings: Tuple[GuidanceWarning, ...]
    immediate_actions: Tuple[Action, ...]
    network: NetworkGuidance
    system: SystemGuidance
    software: Tuple[SoftwareRecommendation, ...]

    def to_dict(self) -> dict:
        system = asdict(self.system)
        system["optimizations"] = list(self.system.optimizations)
        return {
            "warnings": [asdict(w) for w in self.warnings],
            "immediate_actions": [asdict(a) for a in self.immediate_actions],
            "network": asdict(self.network),
            "system": system,
            "software": [asdict(s) for s in self.software],
        }


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

class RuleKind(enum.Enum):
    ACTION = "action"
    WARNING = "warning"


@dataclass(frozen=True)
class Rule:
    kind: RuleKind
    applies: Callable[[StatsRecord, Target], bool]
    item: Union[Action, GuidanceWarning]


# Services whose CDNs sit abroad for most users; resolver choice matters.
DNS_SENSITIVE_SERVICES = ("TIDAL", "Spotify")

PACKET_LOSS_WARN_RATIO = 0.02


def _uses_dns_sensitive_cdn(target: Target) -> bool:
    return any(name in target.name for name in DNS_SENSITIVE_SERVICES)


RULES: Tuple[Rule, ...] = (
    Rule(
        RuleKind.ACTION,
        lambda s, t: s.max_jitter > 1000,
        Action(
            priority="critical",
            action="Switch from Wi-Fi to a wired connection",
            rationale="Jitter this extreme is characteristic of wireless links.",
            effect="Can cut jitter by 50% or more",
        ),
    ),
    Rule(
        RuleKind.ACTION,
        lambda s, t: s.max_jitter > 500,
        Action(
            priority="high",
            action="Enable router QoS",
            rationale="Audio packets need priority over bulk traffic.",
            tip="Turn on audio/streaming prioritisation in the router settings",
        ),
    ),
    Rule(
        RuleKind.ACTION,
        lambda s, t: _uses_dns_sensitive_cdn(t),
        Action(
            priority="medium",
            action="Optimise DNS",
            rationale="Faster resolution of the service's overseas CDN hosts.",
            tip="Cloudflare DNS (1.1.1.1) is recommended",
        ),
    ),
    Rule(
        RuleKind.WARNING,
        lambda s, t: s.max_jitter > 2000,
        GuidanceWarning(
            severity="critical",
            message="Lossless streaming is effectively impossible at this jitter level.",
        ),
    ),
    Rule(
        RuleKind.WARNING,
        lambda s, t: s.packet_loss > PACKET_LOSS_WARN_RATIO,
        GuidanceWarning(
            severity="high",
            message="Packet loss detected. Audible drop-outs are likely.",
        ),
    ),
    Rule(
        RuleKind.WARNING,
        lambda s, t: s.avg_jitter > 150 and t.is_hi_res,
        GuidanceWarning(
            severity="medium",
            message="Risk of buffer underruns during hi-res playback.",
        ),
    ),
)


# ---------------------------------------------------------------------------
# Section builders
# ---------------------------------------------------------------------------

SYSTEM_OPTIMIZATIONS = (
    "Power management: always use the high-performance plan",
    "Disable USB selective suspend",
    "Pause background apps and automatic updates",
)


def estimate_cpu_load(max_jitter: float, packet_loss: float) -> float:
    """Rough load score; above 10 the host should run a real-time setup."""
    load = 5.0
    if max_jitter > 100:
        load += 0.5
    if max_jitter > 500:
        load += 1.0
    if max_jitter > 2000:
        load += 2.0
    load += packet_loss * 100 * 2
    return load


def recommended_buffer_ms(max_jitter: float) -> int:
    """``max(max_jitter * 1.5, 50)`` rounded half-up."""
    return int(math.floor(max(max_jitter * 1.5, 50.0) + 0.5))


def network_guidance(stats: StatsRecord) -> NetworkGuidance:
    if stats.avg_jitter < 50:
        status = "excellent"
    elif stats.avg_jitter < 150:
        status = "good"
    else:
        status = "needs improvement"

    return NetworkGuidance(
        status=status,
        recommendation=(
            "Wired Ethernet connection" if stats.max_jitter > 200 else "Use the 5 GHz Wi-Fi band"
        ),
        wifi_tip=(
            "5 GHz required; pin the channel manually"
            if stats.avg_rtt > 100
            else "Current band is fine"
        ),
        bufferbloat="Enable SQM (fq_codel) on the router to tame bufferbloat",
    )


def system_guidance(stats: StatsRecord) -> SystemGuidance:
    cpu_load = estimate_cpu_load(stats.max_jitter, stats.packet_loss)
    return SystemGuidance(
        os=(
            "Linux with a real-time kernel"
            if cpu_load > 10
            else "Windows/macOS in high-performance mode"
        ),
        driver="ASIO or CoreAudio (dedicated driver)",
        buffer_ms=recommended_buffer_ms(stats.max_jitter),
        bit_depth="Fixed at 24-bit or higher",
        optimizations=SYSTEM_OPTIMIZATIONS,
        cpu_load=cpu_load,
    )


def software_recommendations(stats: StatsRecord) -> Tuple[SoftwareRecommendation, ...]:
    if stats.avg_jitter > 300:
        return (
            SoftwareRecommendation("Roon", "Strong network buffering and isolated playback"),
            SoftwareRecommendation("Audirvana", "Memory playback minimises the effect of jitter"),
        )
    if stats.avg_jitter > 100:
        return (SoftwareRecommendation("foobar2000 (WASAPI)", "Lightweight, low-latency audio path"),)
    return (SoftwareRecommendation("Official app", "Performs well enough on this connection"),)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def generate_guidance(stats: StatsRecord, target: Target) -> GuidanceReport:
    """Build the full remediation report for one measurement."""
    actions: List[Action] = []
    warnings: List[GuidanceWarning] = []

    for rule in RULES:
        if not rule.applies(stats, target):
            continue
        if rule.kind is RuleKind.ACTION:
            actions.append(rule.item)
        else:
            warnings.append(rule.item)

    return GuidanceReport(
        warnings=tuple(warnings),
        immediate_actions=tuple(actions),
        network=network_guidance(stats),
        system=system_guidance(stats),
        software=software_recommendations(stats),
    )
