"""Result and aggregation dataclasses for loadcheck."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

# NOTE: RequestMetric lives in dsl/http_client.py. Re-exported here so
# consumers can import every metric type from one place.
from loadcheck.dsl.http_client import RequestMetric

if TYPE_CHECKING:
    from loadcheck._internal.config import ScenarioConfig

__all__ = [
    "CheckMetrics",
    "CheckOutcome",
    "EndpointMetrics",
    "ErrorKind",
    "IterationResult",
    "MetricSnapshot",
    "RequestMetric",
    "RunResult",
]

ErrorKind = Literal["transport", "script"]


@dataclass(frozen=True)
class CheckOutcome:
    """Result of evaluating one named check against one response."""

    name: str
    passed: bool


@dataclass(frozen=True)
class IterationResult:
    """Outcome of one completed iteration of one virtual user.

    Attributes:
        vu_id: Virtual user that ran the iteration.
        iteration: Zero-based iteration counter of that virtual user.
        started_at: Monotonic timestamp when the iteration started.
        duration_ms: Wall time of the iteration in milliseconds.
        checks: Check outcomes reported during the iteration, in order.
        error: Error message if the iteration raised, None otherwise.
        error_kind: ``"transport"`` for connection failures and timeouts,
            ``"script"`` for any other exception, None when no error.
    """

    vu_id: int
    iteration: int
    started_at: float
    duration_ms: float
    checks: tuple[CheckOutcome, ...] = ()
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def passed(self) -> bool:
        """True when the iteration raised nothing and every check passed."""
        return self.error is None and all(c.passed for c in self.checks)


@dataclass
class CheckMetrics:
    """Pass/fail counts for one named check.

    Attributes:
        name: Check name, e.g. ``"status was 200"``.
        passes: Number of passing evaluations.
        fails: Number of failing evaluations.
    """

    name: str
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        """Number of evaluations."""
        return self.passes + self.fails

    @property
    def pass_rate(self) -> float:
        """Fraction of evaluations that passed (0.0 when never evaluated)."""
        return self.passes / self.total if self.total else 0.0


@dataclass
class EndpointMetrics:
    """Aggregated metrics for a single endpoint (logical request name).

    Attributes:
        name: Logical endpoint name.
        request_count: Total number of requests to this endpoint.
        error_count: Number of failed requests (status >= 400 or error).
        error_rate: Fraction of requests that failed (0.0 to 1.0).
        requests_per_second: Requests per second to this endpoint.
        latency_min: Minimum response time in milliseconds.
        latency_max: Maximum response time in milliseconds.
        latency_avg: Mean response time in milliseconds.
        latency_p50: 50th percentile response time in milliseconds.
        latency_p90: 90th percentile response time in milliseconds.
        latency_p95: 95th percentile response time in milliseconds.
        latency_p99: 99th percentile response time in milliseconds.
    """

    name: str
    request_count: int = 0
    error_count: int = 0
    error_rate: float = 0.0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0


@dataclass
class MetricSnapshot:
    """Aggregated metrics for one tick, or for the whole run.

    Attributes:
        timestamp: Monotonic timestamp of the snapshot.
        elapsed_seconds: Seconds since the run started.
        active_users: Number of running virtual users.
        total_requests: Requests completed (successfully or not).
        requests_per_second: Request rate over the covered interval.
        latency_min: Minimum request latency (ms).
        latency_max: Maximum request latency (ms).
        latency_avg: Mean request latency (ms).
        latency_p50: 50th percentile latency (ms).
        latency_p75: 75th percentile latency (ms).
        latency_p90: 90th percentile latency (ms).
        latency_p95: 95th percentile latency (ms).
        latency_p99: 99th percentile latency (ms).
        latency_p999: 99.9th percentile latency (ms).
        total_errors: Requests with a transport error or status >= 400.
        error_rate: ``total_errors / total_requests``.
        errors_by_status: Error count per HTTP status code.
        errors_by_type: Error count per exception type name.
        endpoints: Per-endpoint metrics keyed by request name.
        iterations: Completed iterations.
        iterations_per_second: Iteration rate over the covered interval.
        failed_iterations: Iterations that raised or had a failing check.
        transport_errors: Iterations that ended with a transport error.
        script_errors: Iterations that raised any other exception.
        checks: Pass/fail counts keyed by check name.
    """

    timestamp: float
    elapsed_seconds: float
    active_users: int
    total_requests: int = 0
    requests_per_second: float = 0.0
    latency_min: float = 0.0
    latency_max: float = 0.0
    latency_avg: float = 0.0
    latency_p50: float = 0.0
    latency_p75: float = 0.0
    latency_p90: float = 0.0
    latency_p95: float = 0.0
    latency_p99: float = 0.0
    latency_p999: float = 0.0
    total_errors: int = 0
    error_rate: float = 0.0
    errors_by_status: dict[int, int] = field(default_factory=dict)
    errors_by_type: dict[str, int] = field(default_factory=dict)
    endpoints: dict[str, EndpointMetrics] = field(default_factory=dict)
    iterations: int = 0
    iterations_per_second: float = 0.0
    failed_iterations: int = 0
    transport_errors: int = 0
    script_errors: int = 0
    checks: dict[str, CheckMetrics] = field(default_factory=dict)

    @property
    def check_passes(self) -> int:
        """Passing check evaluations across all checks."""
        return sum(c.passes for c in self.checks.values())

    @property
    def check_fails(self) -> int:
        """Failing check evaluations across all checks."""
        return sum(c.fails for c in self.checks.values())

    @property
    def check_failure_rate(self) -> float:
        """Fraction of check evaluations that failed (0.0 when none ran)."""
        total = self.check_passes + self.check_fails
        return self.check_fails / total if total else 0.0


@dataclass
class RunResult:
    """Complete result of a run.

    Attributes:
        scenario_name: Name of the scenario that was executed.
        config: Configuration the run used.
        start_time: Monotonic time when the run started.
        end_time: Monotonic time when the last virtual user stopped.
        duration_seconds: Wall-clock duration including the drain.
        snapshots: Time-series of per-tick snapshots.
        final_summary: Cumulative snapshot over the whole run.
        interrupted_iterations: Iterations cancelled at the end of the
            graceful stop window; not counted in ``final_summary``.
    """

    scenario_name: str
    config: ScenarioConfig
    start_time: float
    end_time: float
    duration_seconds: float
    snapshots: list[MetricSnapshot] = field(default_factory=list)
    final_summary: MetricSnapshot | None = None
    interrupted_iterations: int = 0
