"""
Jitter measurement engine.

A run goes ``IDLE -> WARMUP -> SAMPLING -> COMPLETED``, strictly one probe
at a time::

    1. Warm-up: ``warmup_count`` probes, results thrown away (primes DNS
       and the connection pool).
    2. Sampling: probe, record the RTT, update the smoothed jitter, emit a
       progress event, wait ``interval_ms``.  Repeat ``sample_count`` times.
    3. Reduce the samples to a ``StatsRecord``.

The run itself is a lazy async sequence of :class:`ProgressEvent` objects.
Whoever iterates it drives the measurement; ``run.stats`` is filled in once
iteration stops, whether it ran to the end or was cancelled.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Callable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from .catalog import Target
from .constants import (
    DEFAULT_INTERVAL_MS,
    DEFAULT_SAMPLE_COUNT,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_WARMUP_COUNT,
    MAX_CONCURRENT,
    SMOOTHING_DIVISOR,
)
from .prober import Prober
from .stats import StatsRecord, calculate_stats, smooth_jitter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, float, int, int], None]


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MeasurementConfig:
    """Per-run tunables.  Times are in milliseconds."""

    sample_count: int = DEFAULT_SAMPLE_COUNT
    warmup_count: int = DEFAULT_WARMUP_COUNT
    interval_ms: float = DEFAULT_INTERVAL_MS
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    smoothing_divisor: float = SMOOTHING_DIVISOR

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MeasurementConfig:
        """Build from a config dict; unknown keys are ignored."""
        return cls(
            sample_count=int(data.get("sample_count", DEFAULT_SAMPLE_COUNT)),
            warmup_count=int(data.get("warmup_count", DEFAULT_WARMUP_COUNT)),
            interval_ms=float(data.get("interval_ms", DEFAULT_INTERVAL_MS)),
            timeout_ms=float(data.get("timeout_ms", DEFAULT_TIMEOUT_MS)),
            smoothing_divisor=float(data.get("smoothing_divisor", SMOOTHING_DIVISOR)),
        )

    def validate(self) -> None:
        """Raise ``ValueError`` if a precondition is violated."""
        if self.sample_count <= 0:
            raise ValueError("sample_count must be greater than 0")
        if self.warmup_count < 0:
            raise ValueError("warmup_count must not be negative")
        if self.interval_ms < 0:
            raise ValueError("interval_ms must not be negative")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be greater than 0")
        if self.smoothing_divisor <= 0:
            raise ValueError("smoothing_divisor must be greater than 0")


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class CancelToken:
    """Cooperative stop signal shared between a run and its owner."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep up to *seconds*.  Returns True if woken by cancellation."""
        if self._event.is_set() or seconds <= 0:
            return self._event.is_set()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True


# ---------------------------------------------------------------------------
# Run state
# ---------------------------------------------------------------------------

class RunState(enum.Enum):
    IDLE = "idle"
    WARMUP = "warmup"
    SAMPLING = "sampling"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted after every measured sample."""

    rtt_ms: float
    jitter_ms: float
    index: int
    total: int


@dataclass
class ProbeSession:
    """Mutable state of one run; never shared between runs."""

    cancel: CancelToken
    samples: List[float] = field(default_factory=list)
    jitter: float = 0.0

    def record(self, rtt_ms: float, divisor: float = SMOOTHING_DIVISOR) -> None:
        if self.samples:
            self.jitter = smooth_jitter(self.jitter, rtt_ms - self.samples[-1], divisor)
        self.samples.append(rtt_ms)


class MeasurementRun:
    """
    One measurement of one target.

    Iterate it (``async for event in run``) to drive the probes.  The
    sequence can be consumed once; later iterations yield nothing.
    """

    def __init__(
        self,
        target: Target,
        config: MeasurementConfig,
        prober,  # noqa: ANN001 (anything with ``async probe(target) -> float``)
        cancel: Optional[CancelToken] = None,
    ) -> None:
        config.validate()
        self.target = target
        self.config = config
        self.prober = prober
        self.cancel = cancel or CancelToken()
        self.state = RunState.IDLE
        self.stats: Optional[StatsRecord] = None
        self._events: Optional[AsyncIterator[ProgressEvent]] = None

    def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        if self._events is None:
            self._events = self._run()
        return self._events

    async def collect(self) -> StatsRecord:
        """Drive the run to completion and return its stats."""
        async for _ in self:
            pass
        return self.result

    @property
    def result(self) -> StatsRecord:
        """Stats of a finished run; ``RuntimeError`` before that."""
        if self.stats is None:
            raise RuntimeError(f"{self.target.id}: run has not finished")
        return self.stats

    # -- Internals ----------------------------------------------------------

    async def _run(self) -> AsyncIterator[ProgressEvent]:
        cfg = self.config
        session = ProbeSession(cancel=self.cancel)
        logger.info(
            "Measuring %s (%d warm-up, %d samples, %.0f ms interval)",
            self.target.id, cfg.warmup_count, cfg.sample_count, cfg.interval_ms,
        )

        try:
            self.state = RunState.WARMUP
            for _ in range(cfg.warmup_count):
                if session.cancel.cancelled:
                    break
                await self.prober.probe(self.target)

            self.state = RunState.SAMPLING
            for i in range(cfg.sample_count):
                if session.cancel.cancelled:
                    break

                rtt = await self.prober.probe(self.target)
                session.record(rtt, cfg.smoothing_divisor)

                yield ProgressEvent(
                    rtt_ms=rtt,
                    jitter_ms=session.jitter,
                    index=i + 1,
                    total=cfg.sample_count,
                )

                if i < cfg.sample_count - 1 and await session.cancel.sleep(cfg.interval_ms / 1000):
                    break
        finally:
            if session.cancel.cancelled:
                logger.info(
                    "%s: cancelled after %d/%d samples",
                    self.target.id, len(session.samples), cfg.sample_count,
                )
            self.stats = calculate_stats(session.samples, cfg.timeout_ms, session.jitter)
            self.state = RunState.COMPLETED
            logger.debug("%s: %s", self.target.id, self.stats)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

async def measure(
    target: Target,
    config: MeasurementConfig,
    on_progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancelToken] = None,
    prober=None,  # noqa: ANN001
) -> StatsRecord:
    """
    Measure *target* and return its :class:`StatsRecord`.

    *on_progress* is called with ``(rtt_ms, jitter_ms, index, total)`` after
    every measured sample.  A :class:`Prober` is opened for the call when
    *prober* is not given.
    """
    config.validate()

    if prober is None:
        async with Prober(timeout_ms=config.timeout_ms) as owned:
            return await measure(target, config, on_progress, cancel, owned)

    run = MeasurementRun(target, config, prober, cancel)
    async for event in run:
        if on_progress is not None:
            on_progress(event.rtt_ms, event.jitter_ms, event.index, event.total)

    return run.result


async def measure_all(
    targets: Sequence[Target],
    config: MeasurementConfig,
    on_progress: Optional[Callable[[Target, ProgressEvent], None]] = None,
    on_result: Optional[Callable[[Target, StatsRecord], None]] = None,
    concurrent: int = 1,
    cancel: Optional[CancelToken] = None,
    prober=None,  # noqa: ANN001
) -> List[Tuple[Target, StatsRecord]]:
    """
    Measure several targets and return ``(target, stats)`` pairs, best first.

    Targets run one after another by default.  With *concurrent* > 1 several
    runs overlap, each still probing sequentially.  Once *cancel* fires, the
    run in progress returns its partial result and targets not yet started
    are skipped.
    """
    config.validate()
    concurrent = max(1, min(concurrent, MAX_CONCURRENT))
    cancel = cancel or CancelToken()

    if prober is None:
        async with Prober(timeout_ms=config.timeout_ms) as owned:
            return await measure_all(
                targets, config, on_progress, on_result, concurrent, cancel, owned
            )

    async def _one(target: Target) -> Optional[Tuple[Target, StatsRecord]]:
        if cancel.cancelled:
            return None
        run = MeasurementRun(target, config, prober, cancel)
        async for event in run:
            if on_progress is not None:
                on_progress(target, event)
        stats = run.result
        if on_result is not None:
            on_result(target, stats)
        return target, stats

    if concurrent == 1:
        outcomes = [await _one(t) for t in targets]
    else:
        sem = asyncio.Semaphore(concurrent)

        async def _guarded(target: Target) -> Optional[Tuple[Target, StatsRecord]]:
            async with sem:
                return await _one(target)

        outcomes = await asyncio.gather(*[_guarded(t) for t in targets])

    results = [o for o in outcomes if o is not None]
    # Runs where nothing arrived go last even though their jitter reads 0.
    results.sort(key=lambda r: (r[1].packet_loss >= 1.0, r[1].avg_jitter))
    return results
