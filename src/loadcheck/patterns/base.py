"""Abstract base class for concurrency curves."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from loadcheck._internal.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterator


class LoadPattern(ABC):
    """How many virtual users should be running at each point of a run.

    Subclasses implement :meth:`iter_concurrency`. Ticks start at 0 and
    stop before *duration_seconds*: nothing is scheduled at or after the
    end of the run.
    """

    @abstractmethod
    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        """Yield ``(elapsed_seconds, target_vus)`` at each tick.

        Args:
            duration_seconds: Run length.
            tick_interval: Seconds between ticks.

        Yields:
            Time offset from the start and the number of virtual users
            that should be running from then on.
        """

    @abstractmethod
    def describe(self) -> str:
        """Return a short human-readable summary for logs."""

    @property
    @abstractmethod
    def peak_users(self) -> int:
        """Largest number of virtual users the pattern ever asks for."""


def _tick_offsets(duration_seconds: float, tick_interval: float) -> Iterator[float]:
    """Yield ``0, tick, 2*tick, ...`` strictly below *duration_seconds*.

    Offsets are computed by multiplication so they do not drift.

    Raises:
        ConfigError: If either argument is not strictly positive.
    """
    if duration_seconds <= 0:
        msg = f"duration_seconds must be positive, got {duration_seconds}"
        raise ConfigError(msg)
    if tick_interval <= 0:
        msg = f"tick_interval must be positive, got {tick_interval}"
        raise ConfigError(msg)
    index = 0
    while index * tick_interval < duration_seconds:
        yield index * tick_interval
        index += 1
