"""Blocking entry point: event loop setup, logging and one run session."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from loadcheck._internal.logging import get_logger, setup_logging
from loadcheck.engine.session import RunSession
from loadcheck.metrics.store import MetricStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadcheck._internal.config import ScenarioConfig
    from loadcheck.dsl.scenario import ScenarioDefinition
    from loadcheck.metrics.models import MetricSnapshot, RunResult

logger = get_logger("engine.runner")


def _install_uvloop() -> None:
    """Use uvloop's event loop policy where it is available.

    uvloop does not support Windows; there the default asyncio loop is kept.
    """
    if sys.platform == "win32":
        return

    try:
        import uvloop
    except ImportError:
        logger.debug("uvloop not available, using default asyncio event loop")
        return
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    logger.debug("uvloop installed as event loop policy")


class LoadTestRunner:
    """Runs a scenario to completion from synchronous code.

    Example::

        runner = LoadTestRunner(http_get_scenario(), ScenarioConfig(vus=10, duration=30))
        result = runner.run()

    Attributes:
        scenario: The scenario to execute.
        config: Run configuration.
        store: Snapshots of the run, filled while it progresses.
    """

    def __init__(
        self,
        scenario: ScenarioDefinition,
        config: ScenarioConfig,
        *,
        on_snapshot: Callable[[MetricSnapshot], None] | None = None,
        log_level: int = logging.INFO,
        json_logs: bool = False,
        use_uvloop: bool = True,
    ) -> None:
        """Initialize the runner.

        Args:
            scenario: The scenario to execute.
            config: Run configuration.
            on_snapshot: Called with every per-tick snapshot.
            log_level: Logging level.
            json_logs: Emit structured JSON logs.
            use_uvloop: Install uvloop before starting the event loop.
        """
        self.scenario = scenario
        self.config = config
        self.store = MetricStore()
        if on_snapshot is not None:
            self.store.subscribe(on_snapshot)
        self._log_level = log_level
        self._json_logs = json_logs
        self._use_uvloop = use_uvloop

    def run(self) -> RunResult:
        """Run the scenario and block until it has finished.

        Returns:
            RunResult with per-tick snapshots and the cumulative summary.

        Raises:
            EngineError: If the run fails.
        """
        setup_logging(level=self._log_level, json_format=self._json_logs)
        if self._use_uvloop:
            _install_uvloop()
        return asyncio.run(self._run())

    async def _run(self) -> RunResult:
        session = RunSession(self.scenario, self.config, store=self.store)
        return await session.run()
