"""Ping based reachability check shared by all platforms."""

import asyncio
import logging
import re
import socket
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from trust_assistant.config import Settings
from trust_assistant.exceptions import CommandError
from trust_assistant.models import ReachabilityResult
from trust_assistant.platforms import Platform
from trust_assistant.process import CommandResult, run_command

logger = logging.getLogger(__name__)

# Extra time granted to the ping process beyond its own per-probe timeout
PING_GRACE_SECONDS = 2.0

MSG_DNS_FAILED = "DNS resolution failed: {error}"
MSG_DNS_TIMEOUT = "no answer within {timeout}s"
MSG_UNREACHABLE = "Target network unreachable"
MSG_HOST_DOWN = "Target host is down"
MSG_NO_ROUTE = "No route to host"
MSG_TIMEOUT = "Request timed out"
MSG_CANNOT_RESOLVE = "Cannot resolve host name"
MSG_CHECK_FAILED = "Network check failed: {error}"

_RTT_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)


def parse_round_trip(output: str) -> Optional[int]:
    """Round trip time in whole milliseconds from ping output."""
    match = _RTT_PATTERN.search(output)
    if not match:
        return None
    return int(round(float(match.group(1))))


async def resolve_address(domain: str) -> str:
    """
    Resolve a host name to its first IPv4 address, or to any address
    (IPv6 included) when the host has no IPv4 record.

    Raises:
        socket.gaierror: If resolution fails for every address family
    """
    loop = asyncio.get_running_loop()
    try:
        addr_info = await loop.getaddrinfo(domain, None, family=socket.AF_INET, type=socket.SOCK_STREAM)
    except socket.gaierror as ipv4_error:
        logger.debug(f"No IPv4 address for {domain} ({ipv4_error}), trying any family")
        try:
            addr_info = await loop.getaddrinfo(domain, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM)
        except socket.gaierror:
            raise ipv4_error
    if not addr_info:
        raise socket.gaierror(f"No address for {domain}")
    return addr_info[0][4][0]


class PingChecker(ABC):
    """Resolves a domain, then sends a single ICMP probe with the OS ping utility."""

    platform: Platform

    # (phrases, message) pairs, checked in order against the ping output
    failure_phrases: List[Tuple[Tuple[str, ...], str]] = []

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    @abstractmethod
    def ping_command(self, domain: str) -> List[str]:
        """Single probe, bounded by ``settings.ping_timeout``."""

    def is_success(self, result: CommandResult) -> bool:
        return result.ok

    def classify_failure(self, output: str) -> str:
        for phrases, message in self.failure_phrases:
            if any(phrase in output for phrase in phrases):
                return message
        return MSG_UNREACHABLE

    async def check_domain(self, domain: str) -> ReachabilityResult:
        """
        Check whether a domain answers a ping. Never raises.

        A DNS failure is reported without running ping at all.
        """
        logger.debug(f"[{self.platform.value}] checking domain: {domain}")

        try:
            ip_address = await asyncio.wait_for(resolve_address(domain), self.settings.ping_timeout)
            logger.debug(f"DNS resolved: {domain} -> {ip_address}")
        except asyncio.TimeoutError:
            logger.info(f"DNS resolution for {domain} timed out after {self.settings.ping_timeout}s")
            return ReachabilityResult(
                accessible=False,
                error_message=MSG_DNS_FAILED.format(error=MSG_DNS_TIMEOUT.format(timeout=self.settings.ping_timeout)),
            )
        except (socket.gaierror, UnicodeError) as e:
            logger.info(f"DNS resolution failed for {domain}: {e}")
            return ReachabilityResult(accessible=False, error_message=MSG_DNS_FAILED.format(error=e))

        start = time.monotonic()
        try:
            result = await run_command(
                self.ping_command(domain),
                timeout=self.settings.ping_timeout + PING_GRACE_SECONDS,
            )
        except CommandError as e:
            logger.warning(f"ping error for {domain}: {e}")
            return ReachabilityResult(
                accessible=False,
                error_message=MSG_CHECK_FAILED.format(error=e),
                ip=ip_address,
            )
        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.debug(f"ping output: {result.stdout.strip()}")

        if self.is_success(result):
            rtt = parse_round_trip(result.stdout)
            return ReachabilityResult(
                accessible=True,
                ip=ip_address,
                response_time_ms=rtt if rtt is not None else elapsed_ms,
            )

        return ReachabilityResult(
            accessible=False,
            error_message=self.classify_failure(result.output),
            ip=ip_address,
        )
