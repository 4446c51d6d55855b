"""
Streaming service catalog.

Static list of measurement targets.  Each entry names the endpoints to
probe, the probe strategy to use, and the descriptive metadata (tier and
bitrate labels) the guidance engine keys some of its rules on.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

class ProbeStrategy(enum.Enum):
    """How a round trip is timed against a target."""

    OPAQUE_HEAD = "head-ping"
    IMAGE_LOAD = "image-ping"


@dataclass(frozen=True)
class Target:
    """A single streaming service to measure."""

    id: str
    name: str
    tier: str
    bitrate: str
    strategy: ProbeStrategy
    endpoints: Tuple[str, ...]
    cors: bool = False

    def __post_init__(self) -> None:
        if not self.endpoints:
            raise ValueError(f"Target {self.id!r} needs at least one endpoint")

    # -- Constructors -------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> Target:
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            tier=data.get("tier", ""),
            bitrate=data.get("bitrate", ""),
            strategy=ProbeStrategy(data.get("testMethod", ProbeStrategy.IMAGE_LOAD.value)),
            endpoints=tuple(data.get("endpoints", ())),
            cors=bool(data.get("cors", False)),
        )

    # -- Derived values -----------------------------------------------------

    @property
    def probe_url(self) -> str:
        """Primary endpoint; the only one the prober hits."""
        return self.endpoints[0]

    @property
    def is_hi_res(self) -> bool:
        return "24bit" in self.bitrate

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tier": self.tier,
            "bitrate": self.bitrate,
            "endpoints": list(self.endpoints),
            "cors": self.cors,
            "testMethod": self.strategy.value,
        }


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_SERVICES: List[dict] = [
    {
        "id": "tidal",
        "name": "TIDAL",
        "tier": "Master/MQA",
        "bitrate": "24bit/96kHz+",
        "endpoints": ["https://resources.tidal.com/images", "https://audio.tidal.com"],
        "cors": False,
        "testMethod": "image-ping",
    },
    {
        "id": "qobuz",
        "name": "Qobuz",
        "tier": "Studio Premier",
        "bitrate": "24bit/192kHz",
        "endpoints": ["https://static.qobuz.com", "https://streaming.qobuz.com"],
        "cors": False,
        "testMethod": "image-ping",
    },
    {
        "id": "apple-music",
        "name": "Apple Music",
        "tier": "Lossless/Hi-Res",
        "bitrate": "24bit/192kHz",
        "endpoints": ["https://audio-ssl.itunes.apple.com", "https://mvod.itunes.apple.com"],
        "cors": False,
        "testMethod": "image-ping",
    },
    {
        "id": "spotify",
        "name": "Spotify",
        "tier": "Very High (320kbps)",
        "bitrate": "16bit/44.1kHz (Ogg)",
        "endpoints": ["https://audio-fa.scdn.co", "https://i.scdn.co"],
        "cors": True,
        "testMethod": "head-ping",
    },
    {
        "id": "amazon-music",
        "name": "Amazon Music HD",
        "tier": "HD/Ultra HD",
        "bitrate": "24bit/192kHz",
        "endpoints": ["https://music.amazon.com", "https://m.media-amazon.com"],
        "cors": False,
        "testMethod": "image-ping",
    },
    {
        "id": "youtube-music",
        "name": "YouTube Music",
        "tier": "High (256kbps AAC)",
        "bitrate": "16bit/44.1kHz",
        "endpoints": ["https://music.youtube.com", "https://yt3.ggpht.com"],
        "cors": False,
        "testMethod": "image-ping",
    },
]

STREAMING_SERVICES: Tuple[Target, ...] = tuple(Target.from_dict(s) for s in _SERVICES)


def get_target(target_id: str) -> Target:
    """Look up a catalog entry by id.  Raises ``KeyError`` if unknown."""
    for target in STREAMING_SERVICES:
        if target.id == target_id:
            return target
    raise KeyError(f"Unknown service: {target_id}")


def target_ids() -> List[str]:
    return [t.id for t in STREAMING_SERVICES]
