"""Selects the reachability checker for a request and the running platform."""

import logging
from typing import Any, Dict, Mapping, Optional, Type, Union

from trust_assistant.config import Settings
from trust_assistant.exceptions import ConfigurationError
from trust_assistant.models import CheckType, ReachabilityRequest, ReachabilityResult
from trust_assistant.network.base import PingChecker
from trust_assistant.network.http import HttpChecker
from trust_assistant.network.linux import LinuxPingChecker
from trust_assistant.network.macos import MacOSPingChecker
from trust_assistant.network.windows import WindowsPingChecker
from trust_assistant.platforms import Platform, detect_platform

logger = logging.getLogger(__name__)

MSG_BAD_CONFIGURATION = "Invalid check configuration"

PING_CHECKERS: Dict[Platform, Type[PingChecker]] = {
    Platform.WINDOWS: WindowsPingChecker,
    Platform.MACOS: MacOSPingChecker,
    Platform.LINUX: LinuxPingChecker,
}

ReachabilityTarget = Union[str, Mapping[str, Any], ReachabilityRequest]


def get_ping_checker(platform: Optional[Platform] = None, settings: Optional[Settings] = None) -> PingChecker:
    platform = platform or detect_platform()
    return PING_CHECKERS[platform](settings)


def parse_reachability_request(target: Any) -> ReachabilityRequest:
    """
    Normalise a reachability target.

    A bare string is a domain to ping (legacy form). A mapping carries
    ``type`` ("ping" by default) plus ``domain`` or ``url``.

    Raises:
        ConfigurationError: If the target is malformed
    """
    if isinstance(target, ReachabilityRequest):
        return target
    if isinstance(target, str):
        if not target.strip():
            raise ConfigurationError("Empty domain")
        return ReachabilityRequest(type=CheckType.PING, domain=target.strip())
    if not isinstance(target, Mapping):
        raise ConfigurationError(f"Unsupported target type: {type(target).__name__}")

    raw_type = target.get("type") or CheckType.PING.value
    try:
        check_type = CheckType(str(raw_type).lower())
    except ValueError:
        raise ConfigurationError(f"Unknown check type: {raw_type!r}")

    if check_type == CheckType.HTTP:
        url = target.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ConfigurationError("HTTP check requires a url")
        return ReachabilityRequest(type=CheckType.HTTP, url=url.strip())

    domain = target.get("domain")
    if not isinstance(domain, str) or not domain.strip():
        raise ConfigurationError("Ping check requires a domain")
    return ReachabilityRequest(type=CheckType.PING, domain=domain.strip())


async def check_reachability(
    target: ReachabilityTarget,
    settings: Optional[Settings] = None,
    platform: Optional[Platform] = None,
) -> ReachabilityResult:
    """
    Check a target with the strategy it asks for.

    Malformed targets yield an immediate "bad configuration" result without
    any network activity.
    """
    try:
        request = parse_reachability_request(target)
    except ConfigurationError as e:
        logger.warning(f"Rejected reachability target {target!r}: {e}")
        return ReachabilityResult(accessible=False, error_message=MSG_BAD_CONFIGURATION)

    if request.type == CheckType.HTTP:
        return await HttpChecker(settings).check_url(request.url)
    return await get_ping_checker(platform, settings).check_domain(request.domain)
