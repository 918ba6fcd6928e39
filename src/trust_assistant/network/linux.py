"""Linux ping: ``ping -c 1 -W <s>``."""

import math
from typing import List

from trust_assistant.network.base import (
    MSG_CANNOT_RESOLVE,
    MSG_HOST_DOWN,
    MSG_NO_ROUTE,
    MSG_TIMEOUT,
    PingChecker,
)
from trust_assistant.platforms import Platform


class LinuxPingChecker(PingChecker):
    platform = Platform.LINUX

    failure_phrases = [
        (("Destination Host Unreachable", "Host is down"), MSG_HOST_DOWN),
        (("Network is unreachable", "No route to host"), MSG_NO_ROUTE),
        (("100% packet loss",), MSG_TIMEOUT),
        (("Name or service not known", "Temporary failure in name resolution"), MSG_CANNOT_RESOLVE),
    ]

    def ping_command(self, domain: str) -> List[str]:
        # iputils ping takes -W in whole seconds
        timeout_s = max(1, math.ceil(self.settings.ping_timeout))
        return ["ping", "-c", "1", "-W", str(timeout_s), domain]
