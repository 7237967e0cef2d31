"""Run session: duration timer, virtual-user lifecycle and signal handling."""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys
import time
from enum import Enum, auto
from typing import TYPE_CHECKING

from loadcheck._internal.errors import EngineError
from loadcheck._internal.logging import get_logger
from loadcheck.engine.scheduler import Scheduler
from loadcheck.engine.virtual_user import VirtualUser, drain_users
from loadcheck.metrics.collector import MetricCollector
from loadcheck.metrics.models import RunResult
from loadcheck.metrics.store import MetricStore
from loadcheck.patterns.constant import ConstantPattern

if TYPE_CHECKING:
    from loadcheck._internal.config import ScenarioConfig
    from loadcheck.dsl.scenario import ScenarioDefinition
    from loadcheck.patterns.base import LoadPattern

logger = get_logger("engine.session")


class SessionState(Enum):
    """State machine for a run session."""

    CREATED = auto()
    RUNNING = auto()
    STOPPING = auto()
    COMPLETED = auto()
    FAILED = auto()


class RunSession:
    """Runs one scenario with one configuration in the current event loop.

    State machine: CREATED -> RUNNING -> STOPPING -> COMPLETED
                                                  -> FAILED (on error)

    RUNNING lasts until the configured duration has elapsed (or a stop is
    requested). STOPPING drains in-flight iterations for up to
    ``graceful_stop`` seconds and cancels the rest.

    Attributes:
        scenario: The scenario being executed.
        config: The run configuration.
        store: Per-tick snapshots, filled while the run progresses.
    """

    def __init__(
        self,
        scenario: ScenarioDefinition,
        config: ScenarioConfig,
        *,
        pattern: LoadPattern | None = None,
        store: MetricStore | None = None,
        handle_signals: bool = True,
    ) -> None:
        """Initialize a run session.

        Args:
            scenario: The scenario to execute.
            config: Run configuration.
            pattern: Concurrency curve. Defaults to ``config.vus`` users
                reached over ``config.ramp_up``.
            store: Snapshot store to fill. A new one is created if omitted.
            handle_signals: Turn SIGINT/SIGTERM into a graceful stop.
        """
        self.scenario = scenario
        self.config = config
        self.store = store if store is not None else MetricStore()
        self._pattern = pattern or ConstantPattern(users=config.vus, ramp_up=config.ramp_up)
        self._handle_signals = handle_signals

        self._state = SessionState.CREATED
        self._collector = MetricCollector()
        self._users: list[tuple[VirtualUser, asyncio.Task[None]]] = []
        self._stop_event = asyncio.Event()
        self._deadline = 0.0

    @property
    def state(self) -> SessionState:
        """Return the current session state."""
        return self._state

    @property
    def active_user_count(self) -> int:
        """Number of virtual users whose task is still running."""
        return sum(1 for _, task in self._users if not task.done())

    async def run(self) -> RunResult:
        """Execute the run and return its results.

        Returns:
            RunResult with per-tick snapshots and the cumulative summary.

        Raises:
            EngineError: If the session was already run, or the engine
                itself fails. Failures of the target are never raised.
        """
        if self._state != SessionState.CREATED:
            msg = f"RunSession can only run once (state: {self._state.name})"
            raise EngineError(msg)

        logger.info(
            "Starting run: scenario=%s, %s, pattern=%s, peak_vus=%d",
            self.scenario.name,
            self.config.describe(),
            self._pattern.describe(),
            self._pattern.peak_users,
        )

        if self._handle_signals:
            self._install_signal_handlers()

        start_time = time.monotonic()
        self._deadline = start_time + self.config.duration
        self._state = SessionState.RUNNING
        interrupted = 0

        try:
            scheduler = Scheduler(self._pattern, self.config.duration, self.config.tick_interval)
            for command in scheduler.iter_commands():
                if await self._sleep_until(start_time + command.elapsed_seconds):
                    break
                if command.elapsed_seconds > 0:
                    self._snapshot(start_time)
                if command.delta:
                    self._start_users(command.delta)

            if not await self._sleep_until(self._deadline):
                self._snapshot(start_time)

        except Exception as exc:
            self._state = SessionState.FAILED
            logger.exception("Run failed")
            raise EngineError("Run failed") from exc
        finally:
            if self._state != SessionState.FAILED:
                self._state = SessionState.STOPPING
            interrupted = await drain_users(
                self._users, self._stop_event, self.config.graceful_stop
            )
            if self._handle_signals:
                self._remove_signal_handlers()

        end_time = time.monotonic()
        total_duration = end_time - start_time

        # Iterations that finished during the drain.
        drained = self._collector.flush(elapsed_seconds=total_duration, active_users=0)
        if drained.iterations or drained.total_requests:
            self.store.append(drained)

        final_summary = self._collector.get_cumulative_snapshot(
            elapsed_seconds=total_duration,
            active_users=0,
        )

        self._state = SessionState.COMPLETED
        logger.info(
            "Run completed: duration=%.1fs, iterations=%d, failed=%d, "
            "checks=%d passed/%d failed, transport_errors=%d, interrupted=%d",
            total_duration,
            final_summary.iterations,
            final_summary.failed_iterations,
            final_summary.check_passes,
            final_summary.check_fails,
            final_summary.transport_errors,
            interrupted,
        )

        return RunResult(
            scenario_name=self.scenario.name,
            config=self.config,
            start_time=start_time,
            end_time=end_time,
            duration_seconds=total_duration,
            snapshots=self.store.get_all(),
            final_summary=final_summary,
            interrupted_iterations=interrupted,
        )

    def stop(self) -> None:
        """Request a graceful stop before the duration has elapsed."""
        if self._state == SessionState.RUNNING:
            logger.info("Graceful stop requested")
            self._stop_event.set()

    async def _sleep_until(self, target: float) -> bool:
        """Sleep until monotonic time *target*. Returns True if stopped early."""
        delay = target - time.monotonic()
        if delay > 0:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        return self._stop_event.is_set()

    def _snapshot(self, start_time: float) -> None:
        elapsed = time.monotonic() - start_time
        snapshot = self._collector.flush(
            elapsed_seconds=elapsed,
            active_users=self.active_user_count,
        )
        self.store.append(snapshot)
        logger.debug(
            "Tick %.1fs: vus=%d, iterations=%d, rps=%.1f, p95=%.1fms, failed=%d",
            elapsed,
            snapshot.active_users,
            snapshot.iterations,
            snapshot.requests_per_second,
            snapshot.latency_p95,
            snapshot.failed_iterations,
        )

    def _start_users(self, count: int) -> None:
        for _ in range(count):
            vu_id = len(self._users)
            user = VirtualUser(
                vu_id,
                self.scenario,
                self.config,
                self._collector,
                deadline=self._deadline,
                stop_event=self._stop_event,
            )
            task = asyncio.create_task(user.run(), name=f"virtual-user-{vu_id}")
            self._users.append((user, task))
        logger.debug("Started %d virtual users (%d total)", count, len(self._users))

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        def _signal_handler() -> None:
            logger.info("Signal received, stopping gracefully")
            self._stop_event.set()

        if sys.platform != "win32":
            loop.add_signal_handler(signal.SIGINT, _signal_handler)
            loop.add_signal_handler(signal.SIGTERM, _signal_handler)
        else:
            # Windows doesn't support add_signal_handler
            signal.signal(signal.SIGINT, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))
            signal.signal(signal.SIGTERM, lambda _s, _f: loop.call_soon_threadsafe(_signal_handler))

    def _remove_signal_handlers(self) -> None:
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        else:
            signal.signal(signal.SIGINT, signal.default_int_handler)
            signal.signal(signal.SIGTERM, signal.SIG_DFL)
