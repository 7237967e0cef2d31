"""Several checks per response, think time and a relative base URL.

Run with:

    loadcheck run examples/json_api.py --vus 25 --duration 1m --ramp-up 10s
"""

from __future__ import annotations

from loadcheck import HttpClient, Response, check, scenario


def _is_json(res: Response) -> bool:
    return res.headers.get("Content-Type", "").startswith("application/json")


@scenario(
    name="JSON API",
    base_url="http://localhost:8080",
    headers={"Accept": "application/json"},
    think_time=(0.5, 1.5),
)
async def browse_items(client: HttpClient) -> None:
    res = await client.get("/items", name="List Items")
    check(
        res,
        {
            "status was 200": lambda r: r.status_code == 200,
            "is json": _is_json,
            "under 500ms": lambda r: r.latency_ms < 500,
        },
    )
    if res.status_code != 200:
        return

    items = res.json()
    if items:
        item = await client.get(f"/items/{items[0]['id']}", name="Get Item")
        check(item, {"item status was 200": lambda r: r.status_code == 200})
