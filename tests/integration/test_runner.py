"""Integration tests for the blocking LoadTestRunner."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from loadcheck._internal.config import ScenarioConfig
from loadcheck.dsl.builtin import http_get_scenario
from loadcheck.dsl.loader import load_scenario
from loadcheck.engine.runner import LoadTestRunner

if TYPE_CHECKING:
    from pathlib import Path

    from loadcheck.metrics.models import MetricSnapshot


@pytest.mark.timeout(30)
class TestLoadTestRunner:
    def test_run_builtin_scenario(self, sync_target_server: str):
        runner = LoadTestRunner(
            http_get_scenario(f"{sync_target_server}/"),
            ScenarioConfig(vus=2, duration=1.0, tick_interval=0.25),
        )

        result = runner.run()

        assert result.duration_seconds >= 1.0
        assert result.final_summary is not None
        assert result.final_summary.iterations > 0
        assert result.final_summary.check_fails == 0

    def test_run_scenario_file(self, scenario_file: Path):
        definition = load_scenario(scenario_file)
        config = definition.build_config(tick_interval=0.25)
        assert config.vus == 2

        result = LoadTestRunner(definition, config, use_uvloop=False).run()

        assert result.scenario_name == "File Scenario"
        assert result.final_summary.checks["status was 200"].passes > 0

    def test_on_snapshot_callback(self, sync_target_server: str):
        callbacks: list[MetricSnapshot] = []

        runner = LoadTestRunner(
            http_get_scenario(f"{sync_target_server}/"),
            ScenarioConfig(vus=1, duration=1.0, tick_interval=0.25),
            on_snapshot=callbacks.append,
        )
        result = runner.run()

        assert len(callbacks) >= 1
        assert callbacks == result.snapshots
        assert runner.store.get_latest() is callbacks[-1]
