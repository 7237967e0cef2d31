"""Integration tests for RunSession against a local target server."""

from __future__ import annotations

import asyncio
import time

import pytest

from loadcheck._internal.config import ScenarioConfig
from loadcheck._internal.errors import EngineError
from loadcheck.dsl.builtin import http_get_scenario
from loadcheck.dsl.checks import check
from loadcheck.dsl.scenario import ScenarioDefinition
from loadcheck.engine.session import RunSession, SessionState


def _config(**overrides) -> ScenarioConfig:
    values = {"vus": 2, "duration": 1.0, "graceful_stop": 1.0, "tick_interval": 0.25}
    values.update(overrides)
    return ScenarioConfig(**values)


@pytest.mark.timeout(30)
class TestRunSession:
    async def test_all_checks_pass_against_healthy_target(self, target_server: str):
        session = RunSession(
            http_get_scenario(f"{target_server}/"),
            _config(vus=3),
            handle_signals=False,
        )
        result = await session.run()

        summary = result.final_summary
        assert summary is not None
        assert summary.iterations > 0
        assert summary.failed_iterations == 0
        assert summary.transport_errors == 0
        check_metrics = summary.checks["status was 200"]
        assert check_metrics.fails == 0
        assert check_metrics.passes == summary.iterations
        assert check_metrics.pass_rate == 1.0
        assert summary.total_requests == summary.iterations
        assert session.state == SessionState.COMPLETED

    async def test_failed_checks_do_not_stop_the_run(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?status=500"),
            _config(),
            handle_signals=False,
        ).run()

        summary = result.final_summary
        assert summary.iterations > 1
        assert summary.checks["status was 200"].passes == 0
        assert summary.checks["status was 200"].fails == summary.iterations
        assert summary.check_failure_rate == 1.0
        assert summary.errors_by_status == {500: summary.total_requests}
        assert summary.transport_errors == 0

    async def test_unreachable_target_records_transport_errors(self, unreachable_url: str):
        result = await RunSession(
            http_get_scenario(unreachable_url),
            _config(vus=2, duration=0.5),
            handle_signals=False,
        ).run()

        summary = result.final_summary
        assert summary.iterations > 0
        assert summary.transport_errors == summary.iterations
        assert summary.failed_iterations == summary.iterations
        assert summary.checks == {}
        assert summary.total_requests == summary.iterations
        assert sum(summary.errors_by_type.values()) == summary.total_requests

    async def test_no_iteration_starts_after_duration(self, target_server: str):
        started: list[float] = []

        async def tracked(client) -> None:
            started.append(time.monotonic())
            res = await client.get(f"{target_server}/?delay=0.05")
            check(res, {"status was 200": lambda r: r.status_code == 200})

        begin = time.monotonic()
        result = await RunSession(
            ScenarioDefinition(name="tracked", func=tracked),
            _config(vus=4, duration=0.5),
            handle_signals=False,
        ).run()

        assert started
        # Small allowance for the time between taking `begin` and the run start.
        assert max(started) < begin + 0.5 + 0.05
        assert result.final_summary.iterations == len(started)
        assert result.interrupted_iterations == 0

    async def test_active_users_reported_in_snapshots(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=0.01"),
            _config(vus=5),
            handle_signals=False,
        ).run()

        tick_snapshots = [s for s in result.snapshots if s.active_users > 0]
        assert tick_snapshots
        assert max(s.active_users for s in tick_snapshots) == 5

    async def test_single_user_is_closed_loop(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=0.01"),
            _config(vus=1, duration=1.0),
            handle_signals=False,
        ).run()

        # One user waits for each response before sending the next request.
        summary = result.final_summary
        assert 20 <= summary.iterations <= 100
        assert summary.checks["status was 200"].passes == summary.iterations
        assert summary.checks["status was 200"].fails == 0

    async def test_ramp_up_starts_users_gradually(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=0.01"),
            _config(vus=4, duration=1.5, ramp_up=1.0),
            handle_signals=False,
        ).run()

        # Per-tick snapshots only; users may already be exiting at the deadline.
        counts = [s.active_users for s in result.snapshots if s.elapsed_seconds < 1.4]
        assert counts[0] < 4
        assert counts == sorted(counts)
        assert counts[-1] == 4

    async def test_ramp_ending_at_duration_starts_every_user(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=0.3"),
            _config(vus=4, duration=1.0, ramp_up=1.0),
            handle_signals=False,
        ).run()

        assert max(s.active_users for s in result.snapshots) == 4
        assert result.interrupted_iterations == 0

    async def test_iteration_past_grace_period_is_interrupted(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=2"),
            _config(vus=2, duration=0.3, graceful_stop=0.0),
            handle_signals=False,
        ).run()

        assert result.interrupted_iterations == 2
        assert result.final_summary.iterations == 0
        assert result.duration_seconds < 1.5

    async def test_in_flight_iteration_finishes_within_grace_period(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/?delay=0.4"),
            _config(vus=2, duration=0.3, graceful_stop=2.0),
            handle_signals=False,
        ).run()

        assert result.interrupted_iterations == 0
        assert result.final_summary.iterations == 2
        assert result.final_summary.checks["status was 200"].passes == 2

    async def test_script_errors_are_counted(self, target_server: str):
        async def broken(client) -> None:
            await client.get(f"{target_server}/")
            raise ValueError("bad script")

        result = await RunSession(
            ScenarioDefinition(name="broken", func=broken),
            _config(vus=1, duration=0.3),
            handle_signals=False,
        ).run()

        summary = result.final_summary
        assert summary.iterations > 0
        assert summary.script_errors == summary.iterations
        assert summary.transport_errors == 0

    async def test_stop_ends_run_early(self, target_server: str):
        session = RunSession(
            http_get_scenario(f"{target_server}/?delay=0.01"),
            _config(vus=2, duration=10.0),
            handle_signals=False,
        )

        async def _stop_soon() -> None:
            await asyncio.sleep(0.3)
            assert session.state == SessionState.RUNNING
            session.stop()

        stopper = asyncio.create_task(_stop_soon())
        result = await session.run()
        await stopper

        assert result.duration_seconds < 3.0
        assert result.final_summary.iterations > 0
        assert session.state == SessionState.COMPLETED

    async def test_session_runs_only_once(self, target_server: str):
        session = RunSession(
            http_get_scenario(f"{target_server}/"),
            _config(vus=1, duration=0.2),
            handle_signals=False,
        )
        await session.run()
        with pytest.raises(EngineError, match="only run once"):
            await session.run()

    async def test_snapshots_cover_all_iterations(self, target_server: str):
        result = await RunSession(
            http_get_scenario(f"{target_server}/"),
            _config(vus=2, duration=1.0),
            handle_signals=False,
        ).run()

        assert sum(s.iterations for s in result.snapshots) == result.final_summary.iterations
        assert result.scenario_name == f"GET {target_server}/"
