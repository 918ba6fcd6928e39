"""Host platform detection."""

import sys
from enum import Enum
from typing import Optional


class Platform(str, Enum):
    """Platform families with their own trust store and ping behaviour."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"  # Linux and every unrecognised system


def detect_platform(system: Optional[str] = None) -> Platform:
    """
    Map an OS identifier to a platform family.

    Accepts both ``sys.platform`` values (``win32``, ``darwin``, ``linux``) and
    ``platform.system()`` values (``Windows``, ``Darwin``, ``Linux``).
    Anything unrecognised falls back to LINUX, whose implementations report
    "not installed" / "not accessible" instead of failing.

    Args:
        system: OS identifier (defaults to ``sys.platform``)

    Returns:
        Platform family
    """
    name = (system if system is not None else sys.platform).strip().lower()
    if name.startswith("win") or name == "cygwin":
        return Platform.WINDOWS
    if name == "darwin" or name == "macos":
        return Platform.MACOS
    return Platform.LINUX
