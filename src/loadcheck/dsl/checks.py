"""Named boolean checks on responses."""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from loadcheck._internal.logging import get_logger
from loadcheck.metrics.models import CheckOutcome

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = get_logger("dsl.checks")

# Outcomes of the iteration running in the current task. Each virtual user
# task gets its own context, so concurrent users never share a list.
_current_outcomes: ContextVar[list[CheckOutcome] | None] = ContextVar(
    "loadcheck_check_outcomes", default=None
)


def check(value: Any, checks: Mapping[str, Callable[[Any], bool]]) -> bool:
    """Evaluate named predicates against *value*.

    Every predicate is evaluated, even after one fails. Inside a virtual
    user each evaluation is reported as a ``CheckOutcome`` for the current
    iteration; elsewhere the predicates are only evaluated. A predicate
    that raises counts as failed.

    Example::

        res = await client.get("http://localhost:7878/")
        check(res, {"status was 200": lambda r: r.status_code == 200})

    Args:
        value: The object under test, usually a ``Response``.
        checks: Mapping of check name to predicate.

    Returns:
        True if every predicate passed.
    """
    outcomes = _current_outcomes.get()
    all_passed = True
    for name, predicate in checks.items():
        try:
            passed = bool(predicate(value))
        except Exception:
            logger.debug("Check %r raised", name, exc_info=True)
            passed = False
        if outcomes is not None:
            outcomes.append(CheckOutcome(name=name, passed=passed))
        all_passed = all_passed and passed
    return all_passed


def begin_iteration() -> list[CheckOutcome]:
    """Start collecting check outcomes for the calling task.

    Returns:
        The list that ``check()`` calls in this task will append to.
    """
    outcomes: list[CheckOutcome] = []
    _current_outcomes.set(outcomes)
    return outcomes


def end_iteration() -> None:
    """Stop collecting check outcomes for the calling task."""
    _current_outcomes.set(None)
