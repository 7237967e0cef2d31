"""The ``@scenario`` decorator."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING

from loadcheck._internal.config import parse_duration, validate_think_time
from loadcheck._internal.errors import ConfigError, ScenarioError
from loadcheck.dsl.scenario import IterationFunc, ScenarioDefinition, registry

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadcheck._internal.types import DurationLike, Headers, ThinkTime


def scenario(
    *,
    name: str,
    vus: int | None = None,
    duration: DurationLike | None = None,
    think_time: ThinkTime | None = None,
    base_url: str = "",
    headers: Headers | None = None,
) -> Callable[[IterationFunc], ScenarioDefinition]:
    """Declare an async function as the iteration of a scenario.

    The decorated function is called once per iteration with the virtual
    user's ``HttpClient``. The resulting ``ScenarioDefinition`` replaces the
    function in its module and is registered in the global registry, which
    is how ``load_scenario`` finds it.

    Example::

        @scenario(name="Home page", vus=10, duration="30s")
        async def home(client: HttpClient) -> None:
            res = await client.get("http://localhost:7878/")
            check(res, {"status was 200": lambda r: r.status_code == 200})

    Args:
        name: Human-readable name for this scenario.
        vus: Preferred number of virtual users.
        duration: Preferred run length, in seconds or as ``"30s"``.
        think_time: Pause range (min, max) in seconds between iterations.
        base_url: Prefix for relative request paths.
        headers: Headers applied to every request.

    Returns:
        A decorator that turns the function into a ScenarioDefinition.

    Raises:
        ScenarioError: If the options are invalid or the decorated object
            is not a coroutine function.
    """
    if vus is not None and vus < 1:
        msg = f"Scenario {name!r}: vus must be >= 1, got {vus}"
        raise ScenarioError(msg)
    try:
        if duration is not None:
            parse_duration(duration)
        if think_time is not None:
            think_time = validate_think_time(think_time)
    except ConfigError as exc:
        msg = f"Scenario {name!r}: {exc}"
        raise ScenarioError(msg) from exc

    def decorator(func: IterationFunc) -> ScenarioDefinition:
        if not inspect.iscoroutinefunction(func):
            msg = f"Scenario iteration {func.__name__} must be an async function"
            raise ScenarioError(msg)

        definition = ScenarioDefinition(
            name=name,
            func=func,
            base_url=base_url,
            headers=dict(headers or {}),
            vus=vus,
            duration=duration,
            think_time=think_time,
        )
        registry.register(definition)
        return definition

    return decorator
