"""macOS ping: ``ping -c 1 -W <ms>``."""

from typing import List

from trust_assistant.network.base import (
    MSG_CANNOT_RESOLVE,
    MSG_HOST_DOWN,
    MSG_NO_ROUTE,
    MSG_TIMEOUT,
    PingChecker,
)
from trust_assistant.platforms import Platform


class MacOSPingChecker(PingChecker):
    platform = Platform.MACOS

    failure_phrases = [
        (("Host is down", "host down"), MSG_HOST_DOWN),
        (("No route to host",), MSG_NO_ROUTE),
        (("Request timeout", "100.0% packet loss"), MSG_TIMEOUT),
        (("cannot resolve",), MSG_CANNOT_RESOLVE),
    ]

    def ping_command(self, domain: str) -> List[str]:
        # BSD ping takes -W in milliseconds
        timeout_ms = int(self.settings.ping_timeout * 1000)
        return ["ping", "-c", "1", "-W", str(timeout_ms), domain]
