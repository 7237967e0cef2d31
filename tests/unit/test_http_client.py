"""Tests for the instrumented HTTP client, Response and RequestMetric."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiohttp
import pytest
from aiohttp import web

from loadcheck.dsl.http_client import HttpClient, RequestMetric, Response

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture
async def header_echo_server() -> AsyncIterator[str]:
    """Server that returns the request headers as JSON, plus two Set-Cookie headers."""

    async def _echo(request: web.Request) -> web.Response:
        res = web.json_response(dict(request.headers))
        res.headers.add("set-cookie", "a=1")
        res.headers.add("set-cookie", "b=2")
        return res

    app = web.Application()
    app.router.add_get("/", _echo)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


class TestResponse:
    def test_text_and_json(self):
        res = Response(status_code=200, latency_ms=1.0, body=b'{"ok": true}')
        assert res.text() == '{"ok": true}'
        assert res.json() == {"ok": True}

    def test_text_replaces_invalid_bytes(self):
        res = Response(status_code=200, latency_ms=1.0, body=b"\xff")
        assert res.text() == "�"


class TestUrlFor:
    def test_relative_path_joined_to_base(self):
        client = HttpClient(base_url="http://localhost:7878/")
        assert client.url_for("/items") == "http://localhost:7878/items"
        assert client.url_for("items") == "http://localhost:7878/items"

    def test_absolute_url_kept(self):
        client = HttpClient(base_url="http://localhost:7878")
        assert client.url_for("http://other:1/x") == "http://other:1/x"

    def test_no_base_url(self):
        assert HttpClient().url_for("http://localhost:7878/") == "http://localhost:7878/"


class TestHttpClient:
    """Tests against the target server."""

    async def test_get_returns_read_response(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=target_server, metric_callback=metrics.append) as client:
            res = await client.get("/", name="Root")

        assert res.status_code == 200
        assert b"Hello" in res.body
        assert res.latency_ms > 0
        assert res.url == f"{target_server}/"
        assert len(metrics) == 1
        assert metrics[0].name == "Root"
        assert metrics[0].method == "GET"
        assert metrics[0].status_code == 200
        assert metrics[0].content_length == len(res.body)
        assert metrics[0].error is None

    async def test_error_status_is_not_raised(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=target_server, metric_callback=metrics.append) as client:
            res = await client.get("/?status=500")

        assert res.status_code == 500
        assert metrics[0].status_code == 500
        assert metrics[0].error is None

    async def test_post_request(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=target_server, metric_callback=metrics.append) as client:
            res = await client.post("/submit", data=b"payload")

        assert res.status_code == 200
        assert metrics[0].method == "POST"

    async def test_default_name_is_url(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(metric_callback=metrics.append) as client:
            await client.get(f"{target_server}/unnamed")

        assert metrics[0].name == f"{target_server}/unnamed"

    async def test_vu_id_in_metric(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=target_server, metric_callback=metrics.append, vu_id=7) as client:
            await client.get("/")

        assert metrics[0].vu_id == 7

    async def test_connection_failure_emits_metric_and_raises(self, unreachable_url: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(metric_callback=metrics.append, timeout=1.0) as client:
            with pytest.raises(aiohttp.ClientError):
                await client.get(unreachable_url, name="Fail")

        assert len(metrics) == 1
        assert metrics[0].status_code == 0
        assert metrics[0].error is not None
        assert "Connector" in metrics[0].error

    async def test_timeout_raises_timeout_error(self, target_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(base_url=target_server, metric_callback=metrics.append, timeout=0.05) as client:
            with pytest.raises(TimeoutError):
                await client.get("/?delay=1")

        assert metrics[0].status_code == 0
        assert metrics[0].error is not None

    async def test_context_manager_required(self):
        client = HttpClient(base_url="http://localhost")
        with pytest.raises(RuntimeError, match="async context manager"):
            await client.get("/test")


class TestHeaders:
    async def test_request_headers_merged_over_client_headers(self, header_echo_server: str):
        metrics: list[RequestMetric] = []

        async with HttpClient(
            base_url=header_echo_server,
            headers={"X-Client": "loadcheck", "X-Trace": "default"},
            metric_callback=metrics.append,
        ) as client:
            res = await client.get("/", headers={"X-Trace": "1"})

        sent = res.json()
        assert res.status_code == 200
        assert sent["X-Client"] == "loadcheck"
        assert sent["X-Trace"] == "1"
        assert client.headers["X-Trace"] == "default"
        assert metrics[0].error is None

    async def test_response_headers_are_case_insensitive(self, target_server: str):
        async with HttpClient() as client:
            res = await client.get(f"{target_server}/")

        assert res.headers.get("content-type", "").startswith("text/html")
        assert res.headers["Content-Type"] == res.headers["CONTENT-TYPE"]

    async def test_repeated_response_headers_are_kept(self, header_echo_server: str):
        async with HttpClient() as client:
            res = await client.get(f"{header_echo_server}/")

        assert res.headers.getall("Set-Cookie") == ["a=1", "b=2"]

    def test_default_response_headers_empty(self):
        res = Response(status_code=204, latency_ms=1.0)
        assert len(res.headers) == 0
        assert res.headers.get("content-type") is None
