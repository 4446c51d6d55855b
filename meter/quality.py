"""
Quality tier classification.

Maps an average jitter value onto an ordered set of bands.  Bands are
scanned in ascending order and the first one whose (exclusive) upper bound
is above the value wins; the last band is an unbounded catch-all.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class QualityTier:
    label: str
    severity_rank: int
    upper_bound: float
    color: str

    def to_dict(self) -> dict:
        return {"label": self.label, "severityRank": self.severity_rank}


# ---------------------------------------------------------------------------
# Bands
# ---------------------------------------------------------------------------

QUALITY_TIERS: Tuple[QualityTier, ...] = (
    QualityTier("excellent", 0, 5.0, "green"),
    QualityTier("good", 1, 15.0, "yellow"),
    QualityTier("fair", 2, 30.0, "dark_orange"),
    QualityTier("poor", 3, math.inf, "red"),
)


def classify(avg_jitter_ms: float) -> QualityTier:
    """Return the :class:`QualityTier` for *avg_jitter_ms*."""
    for tier in QUALITY_TIERS:
        if avg_jitter_ms < tier.upper_bound:
            return tier

    # NaN compares false against every bound
    return QUALITY_TIERS[-1]
