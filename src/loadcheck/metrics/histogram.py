"""Bounded-memory latency histogram backed by ``hdrh``.

Values go in and come out in milliseconds; the HDR histogram underneath
stores integer microseconds between 1 us and 60 s at three significant
digits, so a run of any length costs a fixed amount of memory.
"""

from __future__ import annotations

from hdrh.histogram import HdrHistogram  # type: ignore[import-untyped]

_LOWEST_US = 1
_HIGHEST_US = 60_000_000
_SIGNIFICANT_DIGITS = 3


class LatencyHistogram:
    """Latency histogram for cumulative run statistics.

    Latencies outside the trackable range are clamped to it rather than
    dropped, so ``count`` always equals the number of ``record`` calls.
    """

    def __init__(self) -> None:
        self._histogram = HdrHistogram(_LOWEST_US, _HIGHEST_US, _SIGNIFICANT_DIGITS)

    def record(self, latency_ms: float) -> None:
        """Record one latency in milliseconds."""
        value_us = max(_LOWEST_US, min(int(latency_ms * 1000), _HIGHEST_US))
        self._histogram.record_value(value_us)

    @property
    def count(self) -> int:
        """Number of recorded values."""
        return int(self._histogram.total_count)

    def percentile(self, percentile: float) -> float:
        """Latency at *percentile* (0-100) in ms, 0.0 when empty."""
        if not self.count:
            return 0.0
        return self._histogram.get_value_at_percentile(percentile) / 1000.0

    def min(self) -> float:
        """Smallest recorded latency in ms, 0.0 when empty."""
        if not self.count:
            return 0.0
        return self._histogram.get_min_value() / 1000.0

    def max(self) -> float:
        """Largest recorded latency in ms, 0.0 when empty."""
        if not self.count:
            return 0.0
        return self._histogram.get_max_value() / 1000.0

    def mean(self) -> float:
        """Mean recorded latency in ms, 0.0 when empty."""
        if not self.count:
            return 0.0
        return float(self._histogram.get_mean_value()) / 1000.0

    def merge(self, other: LatencyHistogram) -> None:
        """Add every value recorded in *other* to this histogram."""
        self._histogram.add(other._histogram)

    def reset(self) -> None:
        """Forget all recorded values."""
        self._histogram.reset()
