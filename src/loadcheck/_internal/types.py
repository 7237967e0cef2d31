"""Shared type aliases for loadcheck."""

from __future__ import annotations

# HTTP headers dictionary.
Headers = dict[str, str]

# Pause range between iterations (min_seconds, max_seconds).
ThinkTime = tuple[float, float]

# Anything accepted where a duration is expected: seconds or "1m30s".
DurationLike = float | int | str
