"""
Round-trip prober.

Times a single request against a streaming service endpoint.  All HTTP work
goes through one ``aiohttp.ClientSession`` managed via the async context
manager protocol (``async with Prober() as prober: ...``), so warm-up probes
leave DNS and pooled connections primed for the measured ones.

Two strategies:

* ``OPAQUE_HEAD`` -- a bare ``HEAD``.  Nothing about the response is read;
  any status or error means the round trip finished.
* ``IMAGE_LOAD`` -- ``GET <endpoint>/favicon.ico?t=<ms>``.  The body is
  drained but never validated, so a 404 page or an undecodable icon still
  counts as a completed round trip.

Failures are never raised.  Every attempt is timed, and an attempt that
hits the deadline reports at least ``timeout_ms`` so it is counted as lost.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

import aiohttp

from .catalog import ProbeStrategy, Target
from .constants import COMMON_HEADERS, DEFAULT_TIMEOUT_MS, IMAGE_PING_PATH

logger = logging.getLogger(__name__)


def image_ping_url(endpoint: str, token: Optional[int] = None) -> str:
    """Cache-busting icon URL for *endpoint*."""
    if token is None:
        token = int(time.time() * 1000)
    base = endpoint[:-1] if endpoint.endswith("/") else endpoint
    return f"{base}/{IMAGE_PING_PATH}?t={token}"


class Prober:
    """Issue timed round trips against :class:`Target` endpoints."""

    def __init__(self, timeout_ms: float = DEFAULT_TIMEOUT_MS) -> None:
        self.timeout_ms = timeout_ms
        self._session: Optional[aiohttp.ClientSession] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> Prober:
        self._session = aiohttp.ClientSession(headers=COMMON_HEADERS)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    # -- Internal helpers ---------------------------------------------------

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "Prober must be used as an async context manager "
                "(async with Prober() as prober: ...)"
            )
        return self._session

    @staticmethod
    async def _head(session: aiohttp.ClientSession, url: str) -> None:
        async with session.head(url, allow_redirects=False):
            pass

    @staticmethod
    async def _load_image(session: aiohttp.ClientSession, url: str) -> None:
        async with session.get(url) as resp:
            await resp.read()

    # -- Public methods -----------------------------------------------------

    async def probe(self, target: Target) -> float:
        """Return the round-trip time to *target* in milliseconds."""
        session = self._ensure_session()

        if target.strategy is ProbeStrategy.OPAQUE_HEAD:
            request = self._head(session, target.probe_url)
        else:
            request = self._load_image(session, image_ping_url(target.probe_url))

        start = time.perf_counter()
        try:
            await asyncio.wait_for(request, timeout=self.timeout_ms / 1000)
        except asyncio.TimeoutError:
            elapsed = (time.perf_counter() - start) * 1000
            logger.debug("%s: probe timed out after %.1f ms", target.id, elapsed)
            return max(elapsed, self.timeout_ms)
        except (aiohttp.ClientError, OSError) as exc:
            # Still a round trip; only the timing matters.
            logger.debug("%s: probe error %s", target.id, exc)

        return (time.perf_counter() - start) * 1000
