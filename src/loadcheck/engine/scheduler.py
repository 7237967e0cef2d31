"""Turns a LoadPattern's timeline into scale commands for the run session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from loadcheck.patterns.base import LoadPattern


@dataclass(frozen=True)
class ScaleCommand:
    """Start virtual users until *target_vus* are running.

    Attributes:
        elapsed_seconds: Time offset from the run start.
        target_vus: Virtual users that should be running from now on.
        delta: Virtual users to start at this tick (>= 0).
    """

    elapsed_seconds: float
    target_vus: int
    delta: int


class Scheduler:
    """Converts a pattern's ``(elapsed, target)`` ticks into ScaleCommands.

    Virtual users are never stopped before the end of the run, so a target
    lower than an earlier one is held at the earlier value.

    Args:
        pattern: Concurrency curve to follow.
        duration_seconds: Run length in seconds.
        tick_interval: Seconds between ticks.
    """

    def __init__(
        self,
        pattern: LoadPattern,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> None:
        self._pattern = pattern
        self._duration_seconds = duration_seconds
        self._tick_interval = tick_interval

    def iter_commands(self) -> Iterator[ScaleCommand]:
        """Yield one ScaleCommand per tick, tracking the running count."""
        running = 0
        for elapsed, target in self._pattern.iter_concurrency(
            self._duration_seconds, self._tick_interval
        ):
            target = max(target, running)
            yield ScaleCommand(
                elapsed_seconds=elapsed,
                target_vus=target,
                delta=target - running,
            )
            running = target
