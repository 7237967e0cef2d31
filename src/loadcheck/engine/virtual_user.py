"""The virtual-user iteration loop and its shutdown helper."""

from __future__ import annotations

import asyncio
import random
import time
from typing import TYPE_CHECKING

import aiohttp

from loadcheck._internal.logging import get_logger
from loadcheck.dsl.checks import begin_iteration, end_iteration
from loadcheck.dsl.http_client import HttpClient
from loadcheck.metrics.models import IterationResult

if TYPE_CHECKING:
    from loadcheck._internal.config import ScenarioConfig
    from loadcheck.dsl.scenario import ScenarioDefinition
    from loadcheck.metrics.collector import MetricCollector
    from loadcheck.metrics.models import ErrorKind

logger = get_logger("engine.virtual_user")

# Connection-level failures. Anything else an iteration raises is a script error.
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (aiohttp.ClientError, TimeoutError)


class VirtualUser:
    """One simulated client running the scenario's iteration in a loop.

    The loop stops starting new iterations once *deadline* has passed or
    *stop_event* is set. An iteration already running when that happens
    is allowed to finish; if the task is cancelled meanwhile, the
    iteration is reported as interrupted and not recorded.

    Attributes:
        vu_id: Identifier of this virtual user.
        iterations: Number of completed iterations.
    """

    def __init__(
        self,
        vu_id: int,
        scenario: ScenarioDefinition,
        config: ScenarioConfig,
        collector: MetricCollector,
        *,
        deadline: float,
        stop_event: asyncio.Event,
    ) -> None:
        self.vu_id = vu_id
        self.iterations = 0
        self._scenario = scenario
        self._config = config
        self._collector = collector
        self._deadline = deadline
        self._stop_event = stop_event
        self._in_iteration = False

    @property
    def in_iteration(self) -> bool:
        """True while an iteration is executing."""
        return self._in_iteration

    def _should_continue(self) -> bool:
        return not self._stop_event.is_set() and time.monotonic() < self._deadline

    async def run(self) -> None:
        """Iterate until the deadline or the stop event."""
        async with HttpClient(
            base_url=self._scenario.base_url,
            headers=self._scenario.headers,
            metric_callback=self._collector.record,
            vu_id=self.vu_id,
            timeout=self._config.request_timeout,
        ) as client:
            while self._should_continue():
                result = await self.run_iteration(client)
                self._collector.record_iteration(result)
                self.iterations += 1
                await self._pause()

    async def run_iteration(self, client: HttpClient) -> IterationResult:
        """Run the iteration function once and describe what happened.

        Exceptions raised by the iteration are captured in the result;
        only cancellation propagates.
        """
        outcomes = begin_iteration()
        self._in_iteration = True
        started = time.monotonic()
        error: str | None = None
        error_kind: ErrorKind | None = None
        try:
            await self._scenario.func(client)
        except TRANSPORT_ERRORS as exc:
            error = f"{type(exc).__name__}: {exc}"
            error_kind = "transport"
            logger.debug("VU %d iteration %d: %s", self.vu_id, self.iterations, error)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            error_kind = "script"
            logger.debug(
                "VU %d iteration %d raised",
                self.vu_id,
                self.iterations,
                exc_info=True,
            )
        finally:
            end_iteration()
        self._in_iteration = False

        return IterationResult(
            vu_id=self.vu_id,
            iteration=self.iterations,
            started_at=started,
            duration_ms=(time.monotonic() - started) * 1000,
            checks=tuple(outcomes),
            error=error,
            error_kind=error_kind,
        )

    async def _pause(self) -> None:
        low, high = self._config.think_time
        if high <= 0:
            # No think time: still give other virtual users a turn.
            await asyncio.sleep(0)
            return
        await asyncio.sleep(random.uniform(low, high))  # noqa: S311


async def drain_users(
    users: list[tuple[VirtualUser, asyncio.Task[None]]],
    stop_event: asyncio.Event,
    graceful_stop: float,
) -> int:
    """Stop all virtual users, giving in-flight iterations time to finish.

    Sets *stop_event*, waits up to *graceful_stop* seconds, then cancels
    whatever is still running.

    Args:
        users: ``(virtual_user, task)`` pairs to stop.
        stop_event: Event the virtual users poll between iterations.
        graceful_stop: Seconds to wait before cancelling.

    Returns:
        Number of iterations that were cancelled mid-flight.
    """
    stop_event.set()
    interrupted = 0

    if users:
        tasks = [task for _, task in users]
        if graceful_stop > 0:
            _done, pending = await asyncio.wait(tasks, timeout=graceful_stop)
        else:
            pending = {t for t in tasks if not t.done()}

        interrupted = sum(1 for user, task in users if task in pending and user.in_iteration)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending, timeout=2.0)

        for user, task in users:
            if task.done() and not task.cancelled() and task.exception() is not None:
                logger.error(
                    "VU %d stopped with an error",
                    user.vu_id,
                    exc_info=task.exception(),
                )

    users.clear()
    logger.debug("All virtual users stopped (%d iterations interrupted)", interrupted)
    return interrupted
