"""Tests for HTTP HEAD reachability checks."""

import socket

import httpx
import pytest

from trust_assistant.config import Settings
from trust_assistant.network.http import (
    MSG_CONNECT_TIMEOUT,
    MSG_CONNECTION_REFUSED,
    MSG_DNS_FAILED,
    HttpChecker,
    classify_transport_error,
)


def _checker(handler, **settings_kwargs):
    return HttpChecker(Settings(**settings_kwargs), transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_head_200_is_accessible():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["user_agent"] = request.headers["user-agent"]
        return httpx.Response(200)

    result = await _checker(handler, user_agent="TrustAssistant/1.0").check_url("https://github.com")

    assert result.accessible
    assert result.status_code == 200
    assert result.error_message is None
    assert result.response_time_ms is not None
    assert seen == {"method": "HEAD", "user_agent": "TrustAssistant/1.0"}


@pytest.mark.asyncio
async def test_redirect_counts_as_accessible_without_following():
    calls = []

    def handler(request):
        calls.append(str(request.url))
        return httpx.Response(301, headers={"Location": "https://www.example.com/"})

    result = await _checker(handler).check_url("http://example.com")

    assert result.accessible
    assert result.status_code == 301
    assert calls == ["http://example.com"]


@pytest.mark.asyncio
async def test_404_is_not_accessible():
    result = await _checker(lambda request: httpx.Response(404)).check_url("http://localhost:3000/missing")

    assert not result.accessible
    assert result.status_code == 404
    assert result.error_message == "HTTP 404"
    assert result.to_dict()["statusCode"] == 404


@pytest.mark.asyncio
async def test_connection_refused():
    def handler(request):
        raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

    result = await _checker(handler).check_url("http://localhost:1")

    assert not result.accessible
    assert result.error_message == MSG_CONNECTION_REFUSED
    assert result.status_code is None


@pytest.mark.asyncio
async def test_dns_failure_from_cause():
    def handler(request):
        try:
            raise socket.gaierror(-2, "Name or service not known")
        except socket.gaierror as e:
            raise httpx.ConnectError("connection failed", request=request) from e

    result = await _checker(handler).check_url("https://no-such-host.invalid")

    assert result.error_message == MSG_DNS_FAILED


@pytest.mark.asyncio
async def test_timeout_has_no_response_time():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    result = await _checker(handler).check_url("https://10.255.255.1")

    assert not result.accessible
    assert result.error_message == MSG_CONNECT_TIMEOUT
    assert result.response_time_ms is None


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["ftp://example.com/file", "example.com", ""])
async def test_invalid_url(url):
    def handler(request):
        pytest.fail("no request expected")

    result = await _checker(handler).check_url(url)

    assert not result.accessible
    assert result.error_message.startswith("Invalid URL")


def test_classify_transport_error_errno():
    exc = httpx.ConnectError("connect failed")
    exc.__cause__ = ConnectionRefusedError(111, "Connection refused")

    assert classify_transport_error(exc) == MSG_CONNECTION_REFUSED
    assert classify_transport_error(httpx.ConnectError("")) == "Connection failed"
