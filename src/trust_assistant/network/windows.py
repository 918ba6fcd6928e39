"""Windows ping: ``ping -n 1 -w <ms>``."""

from typing import List

from trust_assistant.network.base import (
    MSG_CANNOT_RESOLVE,
    MSG_HOST_DOWN,
    MSG_NO_ROUTE,
    MSG_TIMEOUT,
    PingChecker,
)
from trust_assistant.platforms import Platform
from trust_assistant.process import CommandResult


class WindowsPingChecker(PingChecker):
    platform = Platform.WINDOWS

    failure_phrases = [
        (("Destination host unreachable",), MSG_HOST_DOWN),
        (("Destination net unreachable", "General failure", "transmit failed"), MSG_NO_ROUTE),
        (("Request timed out", "100% loss"), MSG_TIMEOUT),
        (("could not find host",), MSG_CANNOT_RESOLVE),
    ]

    def ping_command(self, domain: str) -> List[str]:
        timeout_ms = int(self.settings.ping_timeout * 1000)
        return ["ping", "-n", "1", "-w", str(timeout_ms), domain]

    def is_success(self, result: CommandResult) -> bool:
        # Windows ping exits 0 on "Destination host unreachable" replies; only TTL lines are real echoes
        return result.ok and "ttl=" in result.stdout.lower()
