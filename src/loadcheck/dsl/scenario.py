"""Scenario definition dataclass and the global scenario registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from loadcheck._internal.config import LoadCheckSettings, ScenarioConfig, parse_duration
from loadcheck._internal.errors import ScenarioError

if TYPE_CHECKING:
    from loadcheck._internal.types import DurationLike, Headers, ThinkTime
    from loadcheck.dsl.http_client import HttpClient


class IterationFunc(Protocol):
    """An iteration: ``async def iteration(client) -> None``.

    It must not rely on state from earlier iterations; every call starts
    from the client alone.
    """

    @property
    def __name__(self) -> str:
        """Function name."""
        ...

    async def __call__(self, client: HttpClient) -> None:
        """Run one iteration."""
        ...


@dataclass
class ScenarioDefinition:
    """Complete definition of a load test scenario.

    Created by the ``@scenario`` decorator or ``http_get_scenario``.
    Run options left as None fall back to the CLI, then the environment.

    Attributes:
        name: Human-readable name for this scenario.
        func: The iteration coroutine function.
        base_url: Prefix for relative request paths.
        headers: Headers applied to every request.
        vus: Preferred number of virtual users.
        duration: Preferred run length (seconds or ``"30s"``).
        think_time: Preferred pause range between iterations.
    """

    name: str
    func: IterationFunc
    base_url: str = ""
    headers: Headers = field(default_factory=dict)
    vus: int | None = None
    duration: float | str | None = None
    think_time: ThinkTime | None = None

    def build_config(
        self,
        settings: LoadCheckSettings | None = None,
        *,
        vus: int | None = None,
        duration: DurationLike | None = None,
        think_time: ThinkTime | None = None,
        ramp_up: DurationLike = 0.0,
        graceful_stop: DurationLike | None = None,
        request_timeout: float | None = None,
        tick_interval: float = 1.0,
    ) -> ScenarioConfig:
        """Resolve the run configuration for this scenario.

        Explicit arguments win over the scenario's own options, which win
        over *settings* (the environment).

        Raises:
            ConfigError: If the resolved configuration is invalid.
        """
        settings = settings or LoadCheckSettings()
        resolved_duration = duration if duration is not None else self.duration
        return ScenarioConfig(
            vus=_first(vus, self.vus, settings.vus),
            duration=(
                parse_duration(resolved_duration)
                if resolved_duration is not None
                else settings.duration
            ),
            think_time=_first(think_time, self.think_time, (0.0, 0.0)),
            ramp_up=parse_duration(ramp_up),
            graceful_stop=(
                parse_duration(graceful_stop)
                if graceful_stop is not None
                else settings.graceful_stop
            ),
            request_timeout=_first(request_timeout, settings.request_timeout),
            tick_interval=tick_interval,
        )


def _first(*values: Any) -> Any:
    return next(v for v in values if v is not None)


class ScenarioRegistry:
    """Registry of all discovered scenario definitions.

    Scenarios are registered automatically by the ``@scenario`` decorator.
    The registry is a module-level singleton.
    """

    def __init__(self) -> None:
        self._scenarios: dict[str, ScenarioDefinition] = {}

    def register(self, definition: ScenarioDefinition) -> None:
        """Register a scenario definition.

        Raises:
            ScenarioError: If a scenario with the same name is already
                registered.
        """
        if definition.name in self._scenarios:
            msg = f"Scenario {definition.name!r} is already registered"
            raise ScenarioError(msg)
        self._scenarios[definition.name] = definition

    def get(self, name: str) -> ScenarioDefinition | None:
        """Look up a scenario by name."""
        return self._scenarios.get(name)

    def get_all(self) -> list[ScenarioDefinition]:
        """Return all registered scenarios in registration order."""
        return list(self._scenarios.values())

    def clear(self) -> None:
        """Remove all registered scenarios. Primarily for testing."""
        self._scenarios.clear()

    def __len__(self) -> int:
        return len(self._scenarios)


# Global singleton registry.
registry = ScenarioRegistry()
