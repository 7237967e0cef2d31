"""GET the local benchmark endpoint with 10 virtual users for 30 seconds.

Start something on port 7878 (``loadcheck target`` will do), then run:

    loadcheck run examples/basic_get.py
"""

from __future__ import annotations

from loadcheck import HttpClient, check, scenario


@scenario(name="Local GET", vus=10, duration="30s")
async def get_root(client: HttpClient) -> None:
    res = await client.get("http://localhost:7878/")
    check(res, {"status was 200": lambda r: r.status_code == 200})
