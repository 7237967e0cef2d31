"""Custom exception hierarchy for loadcheck."""

from __future__ import annotations


class LoadCheckError(Exception):
    """Base exception for all loadcheck errors.

    Catch this to handle any error raised by the driver itself. Failures
    of the system under test (transport errors, failed checks) are never
    raised; they are recorded as metrics.
    """


class ScenarioError(LoadCheckError):
    """Raised when a scenario definition is invalid.

    Examples:
        - The function decorated with @scenario is not a coroutine function.
        - Two scenarios are registered under the same name.
        - A scenario file cannot be loaded or defines no scenario.
    """


class ConfigError(LoadCheckError):
    """Raised when configuration is invalid or missing.

    Examples:
        - ``vus`` is lower than 1.
        - A duration string such as ``"30x"`` cannot be parsed.
        - An environment variable has an invalid value.
    """


class EngineError(LoadCheckError):
    """Raised when a run fails for reasons other than the target's behaviour."""
