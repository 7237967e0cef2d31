"""In-memory aggregation sink for request metrics and iteration results."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from loadcheck._internal.logging import get_logger
from loadcheck.metrics.histogram import LatencyHistogram
from loadcheck.metrics.models import CheckMetrics, EndpointMetrics, MetricSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable

    from loadcheck.dsl.http_client import RequestMetric
    from loadcheck.metrics.models import IterationResult

logger = get_logger("metrics.collector")

_OVERALL_PERCENTILES = (50.0, 75.0, 90.0, 95.0, 99.0, 99.9)
_ENDPOINT_PERCENTILES = (50.0, 90.0, 95.0, 99.0)


def _is_error(metric: RequestMetric) -> bool:
    return metric.error is not None or metric.status_code >= 400


def _error_type(error: str) -> str:
    # "ClientConnectorError: Cannot connect..." -> "ClientConnectorError"
    return error.split(":", 1)[0].strip()


def _latency_stats(latencies: list[float], percentiles: tuple[float, ...]) -> list[float]:
    """Return ``[min, max, avg, *percentiles]`` in ms, all zero when empty."""
    if not latencies:
        return [0.0] * (3 + len(percentiles))
    arr = np.asarray(latencies, dtype=np.float64)
    values = np.percentile(arr, percentiles)
    return [float(arr.min()), float(arr.max()), float(arr.mean())] + [float(v) for v in values]


@dataclass
class _EndpointTotals:
    count: int = 0
    errors: int = 0
    histogram: LatencyHistogram = field(default_factory=LatencyHistogram)


@dataclass
class _Totals:
    """Cumulative counters; only ever added to."""

    requests: int = 0
    errors: int = 0
    errors_by_status: dict[int, int] = field(default_factory=lambda: defaultdict(int))
    errors_by_type: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    endpoints: dict[str, _EndpointTotals] = field(default_factory=dict)
    iterations: int = 0
    failed_iterations: int = 0
    transport_errors: int = 0
    script_errors: int = 0
    checks: dict[str, CheckMetrics] = field(default_factory=dict)


class MetricCollector:
    """Collects request metrics and iteration results from virtual users.

    ``record`` is passed to ``HttpClient`` as its metric callback and
    ``record_iteration`` is called by the virtual-user loop. Both only
    append to a deque, which is safe from any task or thread.

    ``flush`` drains the deques into a per-interval ``MetricSnapshot``
    (exact percentiles via numpy) and folds the drained data into running
    totals. ``get_cumulative_snapshot`` reports those totals, with latency
    percentiles from HDR histograms.
    """

    def __init__(self) -> None:
        self._requests: deque[RequestMetric] = deque()
        self._iterations: deque[IterationResult] = deque()
        self._totals = _Totals()
        self._last_flush_time = time.monotonic()

    @property
    def pending_count(self) -> int:
        """Number of recorded items not yet flushed."""
        return len(self._requests) + len(self._iterations)

    def record(self, metric: RequestMetric) -> None:
        """Record one request metric."""
        self._requests.append(metric)

    def record_iteration(self, result: IterationResult) -> None:
        """Record one completed iteration and its check outcomes."""
        self._iterations.append(result)

    def flush(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Drain pending data and summarize it as one interval.

        Args:
            elapsed_seconds: Seconds since the run started.
            active_users: Virtual users running right now.

        Returns:
            Snapshot covering everything recorded since the previous flush.
        """
        requests = _drain(self._requests)
        iterations = _drain(self._iterations)
        self._add_to_totals(requests, iterations)

        now = time.monotonic()
        interval = max(now - self._last_flush_time, 0.001)
        self._last_flush_time = now

        return self._build_interval_snapshot(
            requests, iterations, elapsed_seconds, active_users, interval
        )

    def get_cumulative_snapshot(self, elapsed_seconds: float, active_users: int) -> MetricSnapshot:
        """Summarize everything flushed so far. Does not drain pending data.

        Args:
            elapsed_seconds: Run length used for the rates.
            active_users: Virtual users running right now.

        Returns:
            Snapshot over the whole run.
        """
        totals = self._totals
        interval = max(elapsed_seconds, 0.001)

        overall = LatencyHistogram()
        endpoints: dict[str, EndpointMetrics] = {}
        for name, ep in totals.endpoints.items():
            overall.merge(ep.histogram)
            endpoints[name] = EndpointMetrics(
                name=name,
                request_count=ep.count,
                error_count=ep.errors,
                error_rate=ep.errors / ep.count if ep.count else 0.0,
                requests_per_second=ep.count / interval,
                latency_min=ep.histogram.min(),
                latency_max=ep.histogram.max(),
                latency_avg=ep.histogram.mean(),
                latency_p50=ep.histogram.percentile(50.0),
                latency_p90=ep.histogram.percentile(90.0),
                latency_p95=ep.histogram.percentile(95.0),
                latency_p99=ep.histogram.percentile(99.0),
            )

        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=totals.requests,
            requests_per_second=totals.requests / interval,
            latency_min=overall.min(),
            latency_max=overall.max(),
            latency_avg=overall.mean(),
            latency_p50=overall.percentile(50.0),
            latency_p75=overall.percentile(75.0),
            latency_p90=overall.percentile(90.0),
            latency_p95=overall.percentile(95.0),
            latency_p99=overall.percentile(99.0),
            latency_p999=overall.percentile(99.9),
            total_errors=totals.errors,
            error_rate=totals.errors / totals.requests if totals.requests else 0.0,
            errors_by_status=dict(totals.errors_by_status),
            errors_by_type=dict(totals.errors_by_type),
            endpoints=endpoints,
            iterations=totals.iterations,
            iterations_per_second=totals.iterations / interval,
            failed_iterations=totals.failed_iterations,
            transport_errors=totals.transport_errors,
            script_errors=totals.script_errors,
            checks={
                name: CheckMetrics(name=name, passes=c.passes, fails=c.fails)
                for name, c in totals.checks.items()
            },
        )

    def _add_to_totals(
        self,
        requests: list[RequestMetric],
        iterations: list[IterationResult],
    ) -> None:
        totals = self._totals
        for metric in requests:
            totals.requests += 1
            ep = totals.endpoints.get(metric.name)
            if ep is None:
                ep = totals.endpoints[metric.name] = _EndpointTotals()
            ep.count += 1
            ep.histogram.record(metric.latency_ms)
            if _is_error(metric):
                totals.errors += 1
                ep.errors += 1
                if metric.status_code >= 400:
                    totals.errors_by_status[metric.status_code] += 1
                if metric.error is not None:
                    totals.errors_by_type[_error_type(metric.error)] += 1

        for result in iterations:
            totals.iterations += 1
            if not result.passed:
                totals.failed_iterations += 1
            if result.error_kind == "transport":
                totals.transport_errors += 1
            elif result.error_kind == "script":
                totals.script_errors += 1
        _count_checks(totals.checks, iterations)

    def _build_interval_snapshot(
        self,
        requests: list[RequestMetric],
        iterations: list[IterationResult],
        elapsed_seconds: float,
        active_users: int,
        interval: float,
    ) -> MetricSnapshot:
        by_endpoint: dict[str, list[RequestMetric]] = defaultdict(list)
        errors_by_status: dict[int, int] = defaultdict(int)
        errors_by_type: dict[str, int] = defaultdict(int)
        total_errors = 0

        for metric in requests:
            by_endpoint[metric.name].append(metric)
            if _is_error(metric):
                total_errors += 1
                if metric.status_code >= 400:
                    errors_by_status[metric.status_code] += 1
                if metric.error is not None:
                    errors_by_type[_error_type(metric.error)] += 1

        lat_min, lat_max, lat_avg, p50, p75, p90, p95, p99, p999 = _latency_stats(
            [m.latency_ms for m in requests], _OVERALL_PERCENTILES
        )

        endpoints: dict[str, EndpointMetrics] = {}
        for name, ep_metrics in by_endpoint.items():
            ep_count = len(ep_metrics)
            ep_errors = sum(1 for m in ep_metrics if _is_error(m))
            ep_min, ep_max, ep_avg, ep_p50, ep_p90, ep_p95, ep_p99 = _latency_stats(
                [m.latency_ms for m in ep_metrics], _ENDPOINT_PERCENTILES
            )
            endpoints[name] = EndpointMetrics(
                name=name,
                request_count=ep_count,
                error_count=ep_errors,
                error_rate=ep_errors / ep_count,
                requests_per_second=ep_count / interval,
                latency_min=ep_min,
                latency_max=ep_max,
                latency_avg=ep_avg,
                latency_p50=ep_p50,
                latency_p90=ep_p90,
                latency_p95=ep_p95,
                latency_p99=ep_p99,
            )

        checks: dict[str, CheckMetrics] = {}
        _count_checks(checks, iterations)

        total_requests = len(requests)
        return MetricSnapshot(
            timestamp=time.monotonic(),
            elapsed_seconds=elapsed_seconds,
            active_users=active_users,
            total_requests=total_requests,
            requests_per_second=total_requests / interval,
            latency_min=lat_min,
            latency_max=lat_max,
            latency_avg=lat_avg,
            latency_p50=p50,
            latency_p75=p75,
            latency_p90=p90,
            latency_p95=p95,
            latency_p99=p99,
            latency_p999=p999,
            total_errors=total_errors,
            error_rate=total_errors / total_requests if total_requests else 0.0,
            errors_by_status=dict(errors_by_status),
            errors_by_type=dict(errors_by_type),
            endpoints=endpoints,
            iterations=len(iterations),
            iterations_per_second=len(iterations) / interval,
            failed_iterations=sum(1 for r in iterations if not r.passed),
            transport_errors=sum(1 for r in iterations if r.error_kind == "transport"),
            script_errors=sum(1 for r in iterations if r.error_kind == "script"),
            checks=checks,
        )


def _drain(buffer: deque) -> list:  # type: ignore[type-arg]
    drained = []
    while buffer:
        drained.append(buffer.popleft())
    return drained


def _count_checks(checks: dict[str, CheckMetrics], iterations: Iterable[IterationResult]) -> None:
    for result in iterations:
        for outcome in result.checks:
            metrics = checks.get(outcome.name)
            if metrics is None:
                metrics = checks[outcome.name] = CheckMetrics(name=outcome.name)
            if outcome.passed:
                metrics.passes += 1
            else:
                metrics.fails += 1
