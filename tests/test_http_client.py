import asyncio

import pytest
from curl_cffi import CurlError
from curl_cffi.const import CurlECode

from announcement_monitor.core.http_client import HttpClient
from announcement_monitor.core.models import HttpStatusError, NetworkError, ParseError
from announcement_monitor.core.proxy_manager import ExchangeProxyManager, ProxyRotator


class FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300


def _client(monkeypatch, responses, proxy_manager=None):
    calls = []
    client = HttpClient(proxy_manager, "Binance")

    async def fake_request(method, url, **kwargs):
        calls.append(kwargs)
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(client.session, "request", fake_request)
    return client, calls


def test_rate_limited_request_is_retried(monkeypatch):
    async def _run():
        client, calls = _client(monkeypatch, [FakeResponse(429, "slow down"), FakeResponse(200, '{"ok": true}')])
        try:
            return await client.request_json("GET", "https://example.com"), calls
        finally:
            await client.close()

    data, calls = asyncio.run(_run())
    assert data == {"ok": True}
    assert len(calls) == 2


def test_other_status_codes_fail_immediately(monkeypatch):
    async def _run():
        client, calls = _client(monkeypatch, [FakeResponse(404, "missing")])
        try:
            with pytest.raises(HttpStatusError) as exc:
                await client.request("GET", "https://example.com")
            return exc.value, calls
        finally:
            await client.close()

    error, calls = asyncio.run(_run())
    assert error.code == 404
    assert len(calls) == 1


def test_curl_errors_become_network_errors(monkeypatch):
    async def _run():
        client, _ = _client(monkeypatch, [
            CurlError("Operation timed out", CurlECode.OPERATION_TIMEDOUT),
            CurlError("Could not resolve host", CurlECode.COULDNT_RESOLVE_HOST),
        ])
        errors = []
        try:
            for _ in range(2):
                with pytest.raises(NetworkError) as exc:
                    await client.request("GET", "https://example.com")
                errors.append(exc.value)
        finally:
            await client.close()
        return errors

    timeout, resolve = asyncio.run(_run())
    assert timeout.kind == "timeout"
    assert resolve.kind == "network"


def test_invalid_json_is_a_parse_error(monkeypatch):
    async def _run():
        client, _ = _client(monkeypatch, [FakeResponse(200, "<html>challenge</html>")])
        try:
            with pytest.raises(ParseError):
                await client.request_json("GET", "https://example.com")
        finally:
            await client.close()

    asyncio.run(_run())


def test_proxies_rotate_per_request(monkeypatch):
    manager = ExchangeProxyManager()
    manager.register_exchange("Binance", ["http://p1:1", "http://p2:2"])

    async def _run():
        client, calls = _client(monkeypatch, [FakeResponse(200, "a"), FakeResponse(200, "b"), FakeResponse(200, "c")],
                                manager)
        try:
            for _ in range(3):
                await client.request("GET", "https://example.com")
        finally:
            await client.close()
        return calls

    calls = asyncio.run(_run())
    assert [c["proxies"]["https"] for c in calls] == ["http://p1:1", "http://p2:2", "http://p1:1"]


def test_rotator_round_robin():
    async def _run():
        rotator = ProxyRotator(["a", "b"])
        return [await rotator.next_proxy() for _ in range(3)], await ProxyRotator([]).next_proxy()

    order, empty = asyncio.run(_run())
    assert order == ["a", "b", "a"]
    assert empty is None
