"""HTTP HEAD reachability checks."""

import errno
import logging
import socket
import time
from typing import Optional

import httpx

from trust_assistant.config import Settings
from trust_assistant.models import ReachabilityResult

logger = logging.getLogger(__name__)

MSG_CONNECTION_FAILED = "Connection failed"
MSG_CONNECTION_REFUSED = "Connection refused"
MSG_DNS_FAILED = "DNS resolution failed"
MSG_CONNECT_TIMEOUT = "Connection timed out"
MSG_REQUEST_TIMEOUT = "Request timed out"
MSG_CONNECTION_RESET = "Connection reset"
MSG_INVALID_URL = "Invalid URL: {error}"

_DNS_ERROR_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "no address associated",
    "temporary failure in name resolution",
)


def _root_causes(exc: BaseException):
    """The exception and every exception it was raised from."""
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify_transport_error(exc: BaseException) -> str:
    """
    Map a transport failure to a user-facing message by inspecting the
    underlying socket error, falling back to the exception text.
    """
    if isinstance(exc, httpx.ConnectTimeout):
        return MSG_CONNECT_TIMEOUT
    if isinstance(exc, httpx.TimeoutException):
        return MSG_REQUEST_TIMEOUT

    for cause in _root_causes(exc):
        if isinstance(cause, socket.gaierror):
            return MSG_DNS_FAILED
        if isinstance(cause, ConnectionRefusedError):
            return MSG_CONNECTION_REFUSED
        if isinstance(cause, ConnectionResetError):
            return MSG_CONNECTION_RESET
        if isinstance(cause, (TimeoutError, socket.timeout)):
            return MSG_CONNECT_TIMEOUT
        if isinstance(cause, OSError):
            if cause.errno == errno.ECONNREFUSED:
                return MSG_CONNECTION_REFUSED
            if cause.errno == errno.ECONNRESET:
                return MSG_CONNECTION_RESET
            if cause.errno == errno.ETIMEDOUT:
                return MSG_CONNECT_TIMEOUT

    text = str(exc)
    if any(hint in text.lower() for hint in _DNS_ERROR_HINTS):
        return MSG_DNS_FAILED
    if "connection refused" in text.lower():
        return MSG_CONNECTION_REFUSED
    if "connection reset" in text.lower():
        return MSG_CONNECTION_RESET
    return text or MSG_CONNECTION_FAILED


def _peer_ip(response: httpx.Response) -> Optional[str]:
    stream = response.extensions.get("network_stream")
    if stream is None:
        return None
    try:
        server_addr = stream.get_extra_info("server_addr")
    except Exception as e:
        logger.debug(f"Could not read peer address: {e}")
        return None
    if isinstance(server_addr, tuple) and server_addr:
        return str(server_addr[0])
    return None


class HttpChecker:
    """Checks a web service with a single HEAD request."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or Settings()
        self.transport = transport

    @property
    def timeout_ms(self) -> int:
        return int(self.settings.http_timeout * 1000)

    def _within_timeout(self, elapsed_ms: int) -> Optional[int]:
        return elapsed_ms if elapsed_ms < self.timeout_ms else None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout,
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=False,
            transport=self.transport,
        )

    async def check_url(self, url: str) -> ReachabilityResult:
        """
        Send a HEAD request; 2xx and 3xx count as accessible. Never raises.

        Args:
            url: e.g. "https://github.com" or "http://localhost:3000"

        Returns:
            ReachabilityResult with status code and response time when known
        """
        logger.debug(f"Checking URL: {url}")
        try:
            request_url = httpx.URL(url)
            if request_url.scheme not in ("http", "https") or not request_url.host:
                raise httpx.InvalidURL(f"Unsupported URL {url!r}")
        except (httpx.InvalidURL, TypeError) as e:
            logger.info(f"URL parsing error: {e}")
            return ReachabilityResult(accessible=False, error_message=MSG_INVALID_URL.format(error=e))

        start = time.monotonic()
        try:
            async with self._create_client() as client:
                response = await client.head(request_url)
        except httpx.TimeoutException as e:
            logger.info(f"HTTP request timeout for {url}: {e!r}")
            return ReachabilityResult(accessible=False, error_message=classify_transport_error(e))
        except httpx.HTTPError as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(f"HTTP request error for {url}: {e!r}")
            return ReachabilityResult(
                accessible=False,
                error_message=classify_transport_error(e),
                response_time_ms=self._within_timeout(elapsed_ms),
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        status = response.status_code
        logger.debug(f"HTTP response: {status} in {elapsed_ms}ms")
        accessible = 200 <= status < 400
        return ReachabilityResult(
            accessible=accessible,
            error_message=None if accessible else f"HTTP {status}",
            ip=_peer_ip(response),
            response_time_ms=self._within_timeout(elapsed_ms),
            status_code=status,
        )
