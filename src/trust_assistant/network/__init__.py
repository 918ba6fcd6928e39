"""Reachability checks: OS ping per platform, HTTP HEAD everywhere."""

from trust_assistant.network.factory import (
    check_reachability,
    get_ping_checker,
    parse_reachability_request,
)
from trust_assistant.network.http import HttpChecker

__all__ = [
    "HttpChecker",
    "check_reachability",
    "get_ping_checker",
    "parse_reachability_request",
]
