"""The built-in scenario: GET one URL and check its status."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loadcheck._internal.config import DEFAULT_URL
from loadcheck.dsl.checks import check
from loadcheck.dsl.scenario import ScenarioDefinition

if TYPE_CHECKING:
    from loadcheck.dsl.http_client import HttpClient, Response


def http_get_scenario(
    url: str = DEFAULT_URL,
    *,
    expected_status: int = 200,
    name: str | None = None,
) -> ScenarioDefinition:
    """Build a scenario that GETs *url* and checks the status code.

    The check is named ``"status was <expected_status>"``. The definition
    is not added to the global registry.

    Args:
        url: Absolute URL to request.
        expected_status: Status code the check expects.
        name: Scenario name. Defaults to ``"GET <url>"``.

    Returns:
        A ScenarioDefinition with no preferred run options.
    """
    check_name = f"status was {expected_status}"

    def _status_matches(res: Response) -> bool:
        return res.status_code == expected_status

    async def get_and_check(client: HttpClient) -> None:
        res = await client.get(url)
        check(res, {check_name: _status_matches})

    return ScenarioDefinition(name=name or f"GET {url}", func=get_and_check)
