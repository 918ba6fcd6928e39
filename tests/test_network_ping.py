"""Tests for ping reachability checks."""

import asyncio
import socket
from unittest.mock import AsyncMock, patch

import pytest

from trust_assistant.config import Settings
from trust_assistant.exceptions import CommandTimeoutError
from trust_assistant.network.base import (
    MSG_HOST_DOWN,
    MSG_NO_ROUTE,
    MSG_TIMEOUT,
    MSG_UNREACHABLE,
    PING_GRACE_SECONDS,
    parse_round_trip,
    resolve_address,
)
from trust_assistant.network.linux import LinuxPingChecker
from trust_assistant.network.macos import MacOSPingChecker
from trust_assistant.network.windows import WindowsPingChecker
from trust_assistant.process import CommandResult

LINUX_OK = """PING github.com (140.82.121.4) 56(84) bytes of data.
64 bytes from 140.82.121.4: icmp_seq=1 ttl=52 time=23.6 ms

--- github.com ping statistics ---
1 packets transmitted, 1 received, 0% packet loss, time 0ms
"""

WINDOWS_OK = """Pinging github.com [140.82.121.4] with 32 bytes of data:
Reply from 140.82.121.4: bytes=32 time<1ms TTL=52
"""

WINDOWS_HOST_UNREACHABLE = """Pinging 10.0.0.99 with 32 bytes of data:
Reply from 10.0.0.5: Destination host unreachable.
"""


@pytest.fixture
def resolved():
    with patch("trust_assistant.network.base.resolve_address", new=AsyncMock(return_value="140.82.121.4")) as mock:
        yield mock


def test_parse_round_trip():
    assert parse_round_trip(LINUX_OK) == 24
    assert parse_round_trip(WINDOWS_OK) == 1
    assert parse_round_trip("Zeit=12ms") is None


def test_ping_commands():
    settings = Settings(ping_timeout=5.0)

    assert WindowsPingChecker(settings).ping_command("github.com") == ["ping", "-n", "1", "-w", "5000", "github.com"]
    assert MacOSPingChecker(settings).ping_command("github.com") == ["ping", "-c", "1", "-W", "5000", "github.com"]
    assert LinuxPingChecker(settings).ping_command("github.com") == ["ping", "-c", "1", "-W", "5", "github.com"]
    assert LinuxPingChecker(Settings(ping_timeout=0.2)).ping_command("h")[4] == "1"


@pytest.mark.asyncio
async def test_dns_failure_skips_ping():
    checker = LinuxPingChecker(Settings())
    with patch(
        "trust_assistant.network.base.resolve_address",
        new=AsyncMock(side_effect=socket.gaierror(-2, "Name or service not known")),
    ), patch("trust_assistant.network.base.run_command", new=AsyncMock()) as run:
        result = await checker.check_domain("no-such-host.invalid")

    assert not result.accessible
    assert result.error_message.startswith("DNS resolution failed")
    assert result.ip is None
    assert result.response_time_ms is None
    run.assert_not_awaited()


@pytest.mark.asyncio
async def test_linux_success_uses_reported_rtt(resolved):
    checker = LinuxPingChecker(Settings(ping_timeout=5.0))
    with patch("trust_assistant.network.base.run_command", new=AsyncMock(return_value=CommandResult(0, LINUX_OK))) as run:
        result = await checker.check_domain("github.com")

    assert result.accessible
    assert result.ip == "140.82.121.4"
    assert result.response_time_ms == 24
    assert result.error_message is None
    assert run.await_args.kwargs["timeout"] == 5.0 + PING_GRACE_SECONDS


@pytest.mark.asyncio
async def test_success_without_rtt_falls_back_to_elapsed(resolved):
    checker = MacOSPingChecker(Settings())
    with patch("trust_assistant.network.base.run_command", new=AsyncMock(return_value=CommandResult(0, "PING ok"))):
        result = await checker.check_domain("github.com")

    assert result.accessible
    assert result.response_time_ms is not None
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_windows_unreachable_reply_is_not_success(resolved):
    checker = WindowsPingChecker(Settings())
    with patch(
        "trust_assistant.network.base.run_command",
        new=AsyncMock(return_value=CommandResult(0, WINDOWS_HOST_UNREACHABLE)),
    ):
        result = await checker.check_domain("10.0.0.99")

    assert not result.accessible
    assert result.error_message == MSG_HOST_DOWN


@pytest.mark.asyncio
async def test_windows_success(resolved):
    checker = WindowsPingChecker(Settings())
    with patch("trust_assistant.network.base.run_command", new=AsyncMock(return_value=CommandResult(0, WINDOWS_OK))):
        result = await checker.check_domain("github.com")

    assert result.accessible
    assert result.response_time_ms == 1


@pytest.mark.parametrize(
    "checker_cls,output,expected",
    [
        (LinuxPingChecker, "From 10.0.0.1 icmp_seq=1 Destination Host Unreachable", MSG_HOST_DOWN),
        (LinuxPingChecker, "connect: Network is unreachable", MSG_NO_ROUTE),
        (LinuxPingChecker, "1 packets transmitted, 0 received, 100% packet loss", MSG_TIMEOUT),
        (MacOSPingChecker, "ping: sendto: No route to host", MSG_NO_ROUTE),
        (MacOSPingChecker, "Request timeout for icmp_seq 0", MSG_TIMEOUT),
        (WindowsPingChecker, "Request timed out.", MSG_TIMEOUT),
        (LinuxPingChecker, "something unexpected", MSG_UNREACHABLE),
    ],
)
@pytest.mark.asyncio
async def test_failure_classification(resolved, checker_cls, output, expected):
    checker = checker_cls(Settings())
    with patch("trust_assistant.network.base.run_command", new=AsyncMock(return_value=CommandResult(1, output))):
        result = await checker.check_domain("example.com")

    assert not result.accessible
    assert result.error_message == expected
    assert result.ip == "140.82.121.4"


@pytest.mark.asyncio
async def test_ping_timeout_is_reported(resolved):
    checker = LinuxPingChecker(Settings())
    with patch(
        "trust_assistant.network.base.run_command",
        new=AsyncMock(side_effect=CommandTimeoutError("ping timed out after 7.0s", ["ping"])),
    ):
        result = await checker.check_domain("example.com")

    assert not result.accessible
    assert result.error_message.startswith("Network check failed")


@pytest.mark.asyncio
async def test_hanging_dns_is_bounded_by_ping_timeout():
    async def hang(domain):
        await asyncio.sleep(10)
        return "140.82.121.4"

    checker = LinuxPingChecker(Settings(ping_timeout=0.2))
    with patch("trust_assistant.network.base.resolve_address", new=hang), \
            patch("trust_assistant.network.base.run_command", new=AsyncMock()) as run:
        result = await asyncio.wait_for(checker.check_domain("slow-dns.example"), 5)

    assert not result.accessible
    assert result.error_message.startswith("DNS resolution failed")
    assert "0.2s" in result.error_message
    assert result.ip is None
    run.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_address_prefers_ipv4(monkeypatch):
    loop = asyncio.get_running_loop()
    families = []

    async def fake_getaddrinfo(host, port, family=0, type=0, proto=0, flags=0):
        families.append(family)
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("140.82.121.4", 0))]

    monkeypatch.setattr(loop, "getaddrinfo", fake_getaddrinfo)

    assert await resolve_address("github.com") == "140.82.121.4"
    assert families == [socket.AF_INET]


@pytest.mark.asyncio
async def test_resolve_address_falls_back_to_ipv6(monkeypatch):
    loop = asyncio.get_running_loop()

    async def fake_getaddrinfo(host, port, family=0, type=0, proto=0, flags=0):
        if family == socket.AF_INET:
            raise socket.gaierror(socket.EAI_NONAME, "No address associated with hostname")
        return [(socket.AF_INET6, socket.SOCK_STREAM, 6, "", ("2001:db8::1", 0, 0, 0))]

    monkeypatch.setattr(loop, "getaddrinfo", fake_getaddrinfo)

    assert await resolve_address("ipv6-only.example") == "2001:db8::1"


@pytest.mark.asyncio
async def test_resolve_address_reports_ipv4_error_when_all_families_fail(monkeypatch):
    loop = asyncio.get_running_loop()

    async def fake_getaddrinfo(host, port, family=0, type=0, proto=0, flags=0):
        raise socket.gaierror(socket.EAI_NONAME, f"lookup failed for family {family}")

    monkeypatch.setattr(loop, "getaddrinfo", fake_getaddrinfo)

    with pytest.raises(socket.gaierror, match=f"family {socket.AF_INET}"):
        await resolve_address("no-such-host.invalid")
