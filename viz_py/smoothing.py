"""Sliding time-window averaging of actuator rate samples."""

from __future__ import annotations

import logging
from collections import deque

from .core.types import TelemetrySample

logger = logging.getLogger(__name__)


class TelemetrySmoother:
    """
    Mean of all samples no older than ``window_sec`` relative to the newest
    reference time.

    Samples must arrive in non-decreasing timestamp order; an older timestamp
    is clamped to the newest one seen so the queue stays ordered and eviction
    only ever pops from the front.
    """

    def __init__(self, window_sec: float = 1.0) -> None:
        if window_sec <= 0.0:
            raise ValueError(f"window_sec must be positive, got {window_sec}")
        self.window_sec = float(window_sec)
        self._samples: deque[TelemetrySample] = deque()
        self._sum = 0.0
        self._rate = 0.0
        self._latest_t: float | None = None

    def __len__(self) -> int:
        return len(self._samples)

    def add_sample(self, rate: float, timestamp: float) -> float:
        t = float(timestamp)
        if self._latest_t is not None and t < self._latest_t:
            logger.debug("Out-of-order sample at t=%.3f (latest %.3f), clamping", t, self._latest_t)
            t = self._latest_t
        self._latest_t = t
        self._samples.append(TelemetrySample(timestamp=t, rate=float(rate)))
        self._sum += float(rate)
        self._evict(t)
        return self._rate

    def purge(self, now: float) -> float:
        """Drop samples that aged out by ``now`` without adding one."""
        self._evict(float(now))
        return self._rate

    def current_rate(self) -> float:
        return self._rate

    def reset(self) -> None:
        self._samples.clear()
        self._sum = 0.0
        self._rate = 0.0
        self._latest_t = None

    def _evict(self, now: float) -> None:
        while self._samples and now - self._samples[0].timestamp > self.window_sec:
            self._sum -= self._samples.popleft().rate
        if self._samples:
            self._rate = self._sum / len(self._samples)
        else:
            self._sum = 0.0
            self._rate = 0.0
