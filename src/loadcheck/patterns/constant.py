"""Constant virtual-user count, optionally reached by a linear ramp."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from loadcheck._internal.errors import ConfigError
from loadcheck.patterns.base import LoadPattern, _tick_offsets

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConstantPattern(LoadPattern):
    """Hold *users* virtual users for the whole run.

    With ``ramp_up > 0`` the count grows linearly from 1 to *users* over
    the first ``ramp_up`` seconds, then holds. Each tick asks for the
    count due by the following tick, so every user is running by the end
    of the ramp.

    Args:
        users: Number of concurrent virtual users. Must be >= 1.
        ramp_up: Seconds to reach *users*. Must be >= 0.

    Raises:
        ConfigError: If an argument is out of range.

    Example::

        pattern = ConstantPattern(users=10)
        for t, n in pattern.iter_concurrency(duration_seconds=30.0):
            assert n == 10
    """

    def __init__(self, users: int, ramp_up: float = 0.0) -> None:
        if users < 1:
            msg = f"users must be >= 1, got {users}"
            raise ConfigError(msg)
        if ramp_up < 0:
            msg = f"ramp_up must be non-negative, got {ramp_up}"
            raise ConfigError(msg)
        self._users = users
        self._ramp_up = ramp_up

    @property
    def peak_users(self) -> int:
        return self._users

    def users_at(self, elapsed: float) -> int:
        """Target virtual users at *elapsed* seconds into the run."""
        if self._ramp_up <= 0 or elapsed >= self._ramp_up:
            return self._users
        return max(1, min(self._users, math.ceil(self._users * elapsed / self._ramp_up)))

    def iter_concurrency(
        self,
        duration_seconds: float,
        tick_interval: float = 1.0,
    ) -> Iterator[tuple[float, int]]:
        for elapsed in _tick_offsets(duration_seconds, tick_interval):
            yield (elapsed, self.users_at(elapsed + tick_interval))

    def describe(self) -> str:
        if self._ramp_up:
            return f"Constant: {self._users} users (ramp-up {self._ramp_up:g}s)"
        return f"Constant: {self._users} users"
