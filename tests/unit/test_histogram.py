"""Tests for the hdrh-backed LatencyHistogram."""

from __future__ import annotations

import pytest

from loadcheck.metrics.histogram import LatencyHistogram


class TestLatencyHistogram:
    def test_empty(self):
        hist = LatencyHistogram()
        assert hist.count == 0
        assert hist.percentile(99.0) == 0.0
        assert hist.min() == 0.0
        assert hist.max() == 0.0
        assert hist.mean() == 0.0

    def test_records_in_milliseconds(self):
        hist = LatencyHistogram()
        for value in range(1, 101):
            hist.record(float(value))
        assert hist.count == 100
        assert hist.min() == pytest.approx(1.0, rel=0.01)
        assert hist.max() == pytest.approx(100.0, rel=0.01)
        assert hist.percentile(50.0) == pytest.approx(50.0, rel=0.01)
        assert hist.percentile(99.0) == pytest.approx(99.0, rel=0.01)
        assert hist.mean() == pytest.approx(50.5, rel=0.01)

    def test_out_of_range_values_are_clamped(self):
        hist = LatencyHistogram()
        hist.record(0.0)
        hist.record(120_000.0)
        assert hist.count == 2
        assert hist.max() == pytest.approx(60_000.0, rel=0.01)

    def test_merge(self):
        first = LatencyHistogram()
        second = LatencyHistogram()
        first.record(10.0)
        second.record(20.0)
        second.record(30.0)
        first.merge(second)
        assert first.count == 3
        assert second.count == 2

    def test_reset(self):
        hist = LatencyHistogram()
        hist.record(5.0)
        hist.reset()
        assert hist.count == 0
