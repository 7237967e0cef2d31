"""Run configuration: duration parsing, env settings and the frozen ScenarioConfig."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loadcheck._internal.errors import ConfigError

if TYPE_CHECKING:
    from loadcheck._internal.types import DurationLike, ThinkTime

DEFAULT_URL = "http://localhost:7878/"
DEFAULT_VUS = 10

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


def parse_duration(value: DurationLike) -> float:
    """Convert a duration to seconds.

    Numbers are taken as seconds. Strings may be a bare number or a
    sequence of ``<number><unit>`` parts with units ``ms``, ``s``, ``m``
    and ``h``: ``"30s"``, ``"1m30s"``, ``"500ms"``, ``"1.5h"``.

    Args:
        value: Seconds, or a duration string.

    Returns:
        The duration in seconds.

    Raises:
        ConfigError: If the value is not a finite, non-negative duration.
    """
    if isinstance(value, bool):
        msg = f"Invalid duration: {value!r}"
        raise ConfigError(msg)

    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_duration_string(text, value)

    if not math.isfinite(seconds) or seconds < 0:
        msg = f"Invalid duration: {value!r}"
        raise ConfigError(msg)
    return seconds


def _parse_duration_string(text: str, original: str) -> float:
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        msg = f"Invalid duration: {original!r} (expected e.g. '30s', '1m30s', '500ms')"
        raise ConfigError(msg)
    return total


def format_duration(seconds: float) -> str:
    """Render seconds the way ``parse_duration`` reads them, e.g. ``"1m30s"``."""
    if seconds < 1:
        return f"{seconds * 1000:g}ms"
    minutes, secs = divmod(seconds, 60)
    if minutes < 1:
        return f"{secs:g}s"
    if secs == 0:
        return f"{int(minutes)}m"
    return f"{int(minutes)}m{secs:g}s"


def parse_think_time(value: str) -> ThinkTime:
    """Parse ``"0.5"`` or ``"0.5,1.5"`` into a ``(min, max)`` pause range."""
    parts = [p.strip() for p in value.split(",")]
    if len(parts) not in (1, 2):
        msg = f"Invalid think time: {value!r} (expected 'MIN,MAX' or 'SECONDS')"
        raise ConfigError(msg)
    low = parse_duration(parts[0])
    high = parse_duration(parts[-1])
    return (low, high)


def validate_think_time(value: object) -> ThinkTime:
    """Check that *value* is a ``(min, max)`` pause range with ``0 <= min <= max``.

    Raises:
        ConfigError: If it is not.
    """
    msg = f"think_time must be a (min, max) pair with 0 <= min <= max, got: {value!r}"
    if not isinstance(value, tuple | list) or len(value) != 2:
        raise ConfigError(msg)
    low, high = value
    if not all(isinstance(v, int | float) and not isinstance(v, bool) for v in (low, high)):
        raise ConfigError(msg)
    if low < 0 or high < low:
        raise ConfigError(msg)
    return (float(low), float(high))


@dataclass(frozen=True)
class ScenarioConfig:
    """Parameters of a single run. Immutable once the run starts.

    Attributes:
        vus: Number of concurrent virtual users.
        duration: Run length in seconds. No iteration starts after it.
        think_time: Pause range ``(min, max)`` between iterations.
            ``(0, 0)`` means iterations follow each other immediately.
        ramp_up: Seconds over which virtual users are started linearly.
        graceful_stop: Seconds in-flight iterations get to finish once
            the duration has elapsed before they are cancelled.
        request_timeout: Total timeout of a single HTTP request.
        tick_interval: Seconds between metric snapshots.
    """

    vus: int
    duration: float
    think_time: ThinkTime = (0.0, 0.0)
    ramp_up: float = 0.0
    graceful_stop: float = 5.0
    request_timeout: float = 30.0
    tick_interval: float = 1.0

    def __post_init__(self) -> None:
        if isinstance(self.vus, bool) or not isinstance(self.vus, int) or self.vus < 1:
            msg = f"vus must be an integer >= 1, got: {self.vus!r}"
            raise ConfigError(msg)
        if self.duration <= 0:
            msg = f"duration must be positive, got: {self.duration}"
            raise ConfigError(msg)
        validate_think_time(self.think_time)
        if self.ramp_up < 0 or self.ramp_up > self.duration:
            msg = f"ramp_up must be between 0 and duration, got: {self.ramp_up}"
            raise ConfigError(msg)
        if self.graceful_stop < 0:
            msg = f"graceful_stop must be non-negative, got: {self.graceful_stop}"
            raise ConfigError(msg)
        if self.request_timeout <= 0:
            msg = f"request_timeout must be positive, got: {self.request_timeout}"
            raise ConfigError(msg)
        if self.tick_interval <= 0:
            msg = f"tick_interval must be positive, got: {self.tick_interval}"
            raise ConfigError(msg)

    def describe(self) -> str:
        """Short summary for logs and the CLI header."""
        text = f"{self.vus} VUs for {format_duration(self.duration)}"
        if self.ramp_up:
            text += f" (ramp-up {format_duration(self.ramp_up)})"
        return text


@dataclass(frozen=True)
class LoadCheckSettings:
    """Defaults read from the environment.

    Attributes:
        url: Target URL of the built-in GET scenario.
        vus: Default number of virtual users.
        duration: Default run length in seconds.
        request_timeout: Default request timeout in seconds.
        graceful_stop: Default graceful stop window in seconds.
    """

    url: str = DEFAULT_URL
    vus: int = DEFAULT_VUS
    duration: float = 30.0
    request_timeout: float = 30.0
    graceful_stop: float = 5.0


def load_settings() -> LoadCheckSettings:
    """Load defaults from environment variables.

    Environment variables:
        LOADCHECK_URL: Target URL (default: http://localhost:7878/).
        LOADCHECK_VUS: Virtual users (default: 10).
        LOADCHECK_DURATION: Run length, e.g. ``30s`` (default: 30s).
        LOADCHECK_TIMEOUT: Request timeout in seconds (default: 30).
        LOADCHECK_GRACEFUL_STOP: Graceful stop window (default: 5s).

    Returns:
        Populated LoadCheckSettings instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    vus_str = os.environ.get("LOADCHECK_VUS", str(DEFAULT_VUS))
    try:
        vus = int(vus_str)
    except ValueError:
        msg = f"LOADCHECK_VUS must be an integer, got: {vus_str!r}"
        raise ConfigError(msg) from None
    if vus < 1:
        msg = f"LOADCHECK_VUS must be >= 1, got: {vus}"
        raise ConfigError(msg)

    duration = parse_duration(os.environ.get("LOADCHECK_DURATION", "30s"))
    if duration <= 0:
        msg = f"LOADCHECK_DURATION must be positive, got: {duration}"
        raise ConfigError(msg)

    timeout_str = os.environ.get("LOADCHECK_TIMEOUT", "30.0")
    try:
        timeout = float(timeout_str)
    except ValueError:
        msg = f"LOADCHECK_TIMEOUT must be a number, got: {timeout_str!r}"
        raise ConfigError(msg) from None
    if timeout <= 0:
        msg = f"LOADCHECK_TIMEOUT must be positive, got: {timeout}"
        raise ConfigError(msg)

    graceful_stop = parse_duration(os.environ.get("LOADCHECK_GRACEFUL_STOP", "5s"))

    return LoadCheckSettings(
        url=os.environ.get("LOADCHECK_URL", DEFAULT_URL),
        vus=vus,
        duration=duration,
        request_timeout=timeout,
        graceful_stop=graceful_stop,
    )
