"""A minimal HTTP server to point load tests at.

Every path answers with the configured status after the configured delay.
The ``status`` and ``delay`` query parameters override both per request,
e.g. ``GET /?status=500`` or ``GET /slow?delay=0.05``.
"""

from __future__ import annotations

import asyncio

from aiohttp import web

from loadcheck._internal.logging import get_logger

logger = get_logger("target")

_BODY = "<!DOCTYPE html>\n<html><body><h1>Hello!</h1></body></html>\n"

_STATUS_KEY = web.AppKey("status", int)
_DELAY_KEY = web.AppKey("delay", float)


async def _handle(request: web.Request) -> web.Response:
    try:
        status = int(request.query.get("status", request.app[_STATUS_KEY]))
        delay = float(request.query.get("delay", request.app[_DELAY_KEY]))
    except ValueError:
        return web.Response(status=400, text="status must be an integer and delay a number\n")
    if not 100 <= status <= 599:
        return web.Response(status=400, text=f"unsupported status: {status}\n")
    if delay > 0:
        await asyncio.sleep(delay)
    return web.Response(status=status, text=_BODY, content_type="text/html")


def create_target_app(status: int = 200, delay: float = 0.0) -> web.Application:
    """Build the target application.

    Args:
        status: Default response status.
        delay: Default seconds to wait before answering.

    Returns:
        An aiohttp application answering every path.
    """
    app = web.Application()
    app[_STATUS_KEY] = status
    app[_DELAY_KEY] = delay
    app.router.add_route("*", "/{tail:.*}", _handle)
    return app


def run_target(
    host: str = "127.0.0.1",
    port: int = 7878,
    *,
    status: int = 200,
    delay: float = 0.0,
) -> None:
    """Serve the target application until interrupted."""
    logger.info("Target listening on http://%s:%d/ (status=%d, delay=%gs)", host, port, status, delay)
    web.run_app(
        create_target_app(status=status, delay=delay),
        host=host,
        port=port,
        print=None,
        access_log=None,
    )
