"""loadcheck: drive HTTP load with virtual users and check every response."""

from __future__ import annotations

from loadcheck._internal.config import ScenarioConfig, parse_duration
from loadcheck.dsl.builtin import http_get_scenario
from loadcheck.dsl.checks import check
from loadcheck.dsl.decorators import scenario
from loadcheck.dsl.http_client import HttpClient, RequestMetric, Response
from loadcheck.engine.runner import LoadTestRunner
from loadcheck.metrics.models import CheckOutcome, IterationResult, RunResult

__version__ = "0.1.0"

__all__ = [
    "CheckOutcome",
    "HttpClient",
    "IterationResult",
    "LoadTestRunner",
    "RequestMetric",
    "Response",
    "RunResult",
    "ScenarioConfig",
    "check",
    "http_get_scenario",
    "parse_duration",
    "scenario",
]
